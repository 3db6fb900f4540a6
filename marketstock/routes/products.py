# marketstock/routes/products.py
from typing import List, Optional, Literal, Callable

from fastapi import APIRouter, Depends, HTTPException, Query, Request, UploadFile, File
from sqlalchemy.orm import Session

from marketstock.config import settings
from marketstock.database import get_db, get_session_factory
from marketstock.schemas.imports import ImportReport
import marketstock.schemas.product as product_schemas
from marketstock.utils import filters
from marketstock.utils.audit import client_ip, failure, write_log
from marketstock.utils.cache import QueryCache, get_query_cache, invalidate_after, PRODUCTS
from marketstock.utils.csv_import import CsvFormatError, import_products
from marketstock.utils.mutations import (
    NotFoundError, create_product, delete_product, update_product, update_product_status,
)
from marketstock.utils.queries import load_categories, load_markets, load_products, load_suppliers
from marketstock.utils.store import RemoteStore, StoreError, get_store

router = APIRouter(tags=["Products"])

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel", "text/plain"}


# ---- HELPERS ----
def _selection(value: Optional[str], name: str):
    try:
        return filters.parse_selection(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid {name}: {e}")


def _check_references(
    store: RemoteStore,
    cache: QueryCache,
    supplier_id: Optional[int],
    category_id: Optional[int],
    market_ids: List[int],
) -> None:
    """Reject ids that do not exist before anything is written."""
    if supplier_id is not None and supplier_id not in {s.id for s in load_suppliers(store, cache)}:
        raise HTTPException(status_code=422, detail=f"Unknown supplier: {supplier_id}")
    if category_id is not None and category_id not in {c.id for c in load_categories(store, cache)}:
        raise HTTPException(status_code=422, detail=f"Unknown category: {category_id}")
    known_markets = {m.id for m in load_markets(store, cache)} if market_ids else set()
    unknown = [m for m in market_ids if m not in known_markets]
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown market(s): {unknown}")


def _sync_log_status(result: product_schemas.ProductWriteResult) -> str:
    return "SUCCESS" if result.sync_status == "synced" else "PARTIAL"


# =========================
# STOCK VIEW
# =========================
@router.get("/products", response_model=List[product_schemas.ProductOut])
def list_products(
    market: Optional[str] = Query("all", description="Market id or 'all'"),
    q: Optional[str] = Query(None, description="Search in product names"),
    status: Literal["all", "low", "out"] = Query("all"),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    try:
        products = load_products(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return filters.stock_view(products, _selection(market, "market"), q, status)


# =========================
# CATALOGUE VIEW
# =========================
@router.get("/products/catalogue", response_model=List[product_schemas.ProductOut])
def list_catalogue(
    category: Optional[str] = Query("all", description="Category id or 'all'"),
    q: Optional[str] = Query(None, description="Search in product names and codes"),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    try:
        products = load_products(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return filters.catalogue_view(products, _selection(category, "category"), q)


# =========================
# CSV IMPORT
# =========================
@router.post("/products/import", response_model=ImportReport)
def import_products_csv(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    filename = (file.filename or "").lower()
    if not filename.endswith(".csv") and file.content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Please upload a valid CSV file")

    try:
        content = file.file.read()
    finally:
        file.file.close()

    try:
        categories = load_categories(store, cache)
        suppliers = load_suppliers(store, cache)
        markets = load_markets(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))

    with invalidate_after(cache, PRODUCTS):
        try:
            report = import_products(
                content, categories, suppliers, markets,
                session_factory=session_factory,
                max_workers=settings.IMPORT_MAX_WORKERS,
            )
        except CsvFormatError as e:
            raise failure(db, request, action="PRODUCTS_IMPORT", resource="products",
                          status_code=400, detail=str(e), meta={"file": file.filename})

    write_log(
        db, action="PRODUCTS_IMPORT", resource="products",
        status="SUCCESS" if not report.failed else "PARTIAL",
        ip=client_ip(request), meta={"file": file.filename, **report.model_dump()},
    )
    return report


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/products/{product_id}", response_model=product_schemas.ProductOut)
def get_product(
    product_id: int,
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    try:
        products = load_products(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    product = next((p for p in products if p.id == product_id), None)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# =========================
# CREATE
# =========================
@router.post("/products", response_model=product_schemas.ProductWriteResult)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    market_ids = [payload.market_id] if payload.market_id is not None else []
    _check_references(store, cache, payload.supplier_id, payload.category_id, market_ids)

    with invalidate_after(cache, PRODUCTS):
        try:
            result = create_product(store, payload)
        except StoreError as e:
            raise failure(db, request, action="PRODUCT_CREATE", resource="products",
                          status_code=502, detail=str(e), meta={"name": payload.name})

    write_log(
        db, action="PRODUCT_CREATE", resource="products", status=_sync_log_status(result),
        ip=client_ip(request), meta={"id": result.product.id, "sync_status": result.sync_status},
    )
    return result


# =========================
# UPDATE (scalar fields + market links)
# =========================
@router.put("/products/{product_id}", response_model=product_schemas.ProductWriteResult)
def edit_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    _check_references(
        store, cache, payload.supplier_id, payload.category_id,
        [link.market_id for link in payload.product_markets],
    )

    with invalidate_after(cache, PRODUCTS):
        try:
            result = update_product(store, product_id, payload)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Product not found")
        except StoreError as e:
            raise failure(db, request, action="PRODUCT_UPDATE", resource="products",
                          status_code=502, detail=str(e), meta={"id": product_id})

    write_log(
        db, action="PRODUCT_UPDATE", resource="products", status=_sync_log_status(result),
        ip=client_ip(request), meta={"id": product_id, "sync_status": result.sync_status},
    )
    return result


@router.patch("/products/{product_id}/status", response_model=product_schemas.ProductOut)
def change_product_status(
    product_id: int,
    payload: product_schemas.ProductStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, PRODUCTS):
        try:
            product = update_product_status(store, product_id, payload.status)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Product not found")
        except StoreError as e:
            raise failure(db, request, action="PRODUCT_STATUS", resource="products",
                          status_code=502, detail=str(e), meta={"id": product_id})

    write_log(db, action="PRODUCT_STATUS", resource="products", ip=client_ip(request),
              meta={"id": product_id, "status": payload.status})
    return product


# =========================
# DELETE
# =========================
@router.delete("/products/{product_id}")
def remove_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, PRODUCTS):
        try:
            delete_product(store, product_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Product not found")
        except StoreError as e:
            raise failure(db, request, action="PRODUCT_DELETE", resource="products",
                          status_code=502, detail=str(e), meta={"id": product_id})

    write_log(db, action="PRODUCT_DELETE", resource="products", ip=client_ip(request), meta={"id": product_id})
    return {"detail": f"Product {product_id} deleted"}
