# marketstock/routes/suppliers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from marketstock.config import settings, DeletePolicy
from marketstock.database import get_db
from marketstock.schemas.product import ProductOut
from marketstock.schemas.purchase_order import CompanyInfo
from marketstock.schemas.supplier import (
    AlertScope, SupplierCreate, SupplierOut, SupplierShare, SupplierUpdate, SupplierWithAlerts,
)
from marketstock.utils import filters
from marketstock.utils.audit import client_ip, failure, write_log
from marketstock.utils.cache import QueryCache, get_query_cache, invalidate_after, PRODUCTS, SUPPLIERS
from marketstock.utils.mutations import (
    NotFoundError, ReferenceInUseError, create_supplier, delete_supplier, update_supplier,
)
from marketstock.utils.pdf import render_purchase_order_pdf
from marketstock.utils.queries import load_categories, load_products, load_suppliers
from marketstock.utils.share import build_purchase_order, build_share
from marketstock.utils.store import RemoteStore, StoreError, get_store

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


def _selection(value: Optional[str]):
    try:
        return filters.parse_selection(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid market: {e}")


def _get_supplier(store: RemoteStore, cache: QueryCache, supplier_id: int) -> SupplierOut:
    supplier = next((s for s in load_suppliers(store, cache) if s.id == supplier_id), None)
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return supplier


# Supplier screen: cards with the number of low / out products
@router.get("", response_model=List[SupplierWithAlerts])
def list_suppliers(
    q: Optional[str] = Query(None, description="Search in supplier names"),
    market: Optional[str] = Query(None, description="Market id or 'all'"),
    scope: AlertScope = Query("market", description="Count alerts inside the market selection or across all products"),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    market_id = _selection(market)
    try:
        suppliers = load_suppliers(store, cache)
        products = load_products(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return [
        SupplierWithAlerts(
            **s.model_dump(),
            alert_count=filters.supplier_alert_count(products, s.id, scope=scope, market_id=market_id),
        )
        for s in filters.filter_suppliers(suppliers, q)
    ]


@router.post("", response_model=SupplierOut)
def add_supplier(
    payload: SupplierCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, SUPPLIERS):
        try:
            supplier = create_supplier(store, payload)
        except StoreError as e:
            raise failure(db, request, action="SUPPLIER_CREATE", resource="suppliers",
                          status_code=502, detail=str(e), meta={"name": payload.name})

    write_log(db, action="SUPPLIER_CREATE", resource="suppliers", ip=client_ip(request), meta={"id": supplier.id})
    return supplier


@router.put("/{supplier_id}", response_model=SupplierOut)
def edit_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, SUPPLIERS):
        try:
            supplier = update_supplier(store, supplier_id, payload)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Supplier not found")
        except StoreError as e:
            raise failure(db, request, action="SUPPLIER_UPDATE", resource="suppliers",
                          status_code=502, detail=str(e), meta={"id": supplier_id})

    write_log(db, action="SUPPLIER_UPDATE", resource="suppliers", ip=client_ip(request), meta={"id": supplier_id})
    return supplier


@router.delete("/{supplier_id}")
def remove_supplier(
    supplier_id: int,
    request: Request,
    policy: Optional[DeletePolicy] = Query(None, description="Override SUPPLIER_DELETE_POLICY"),
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    policy = policy or settings.SUPPLIER_DELETE_POLICY
    with invalidate_after(cache, SUPPLIERS, PRODUCTS):
        try:
            touched = delete_supplier(store, supplier_id, policy)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Supplier not found")
        except ReferenceInUseError as e:
            raise failure(db, request, action="SUPPLIER_DELETE", resource="suppliers",
                          status_code=409, detail=str(e), meta={"id": supplier_id, "policy": policy})
        except StoreError as e:
            raise failure(db, request, action="SUPPLIER_DELETE", resource="suppliers",
                          status_code=502, detail=str(e), meta={"id": supplier_id, "policy": policy})

    write_log(db, action="SUPPLIER_DELETE", resource="suppliers", ip=client_ip(request),
              meta={"id": supplier_id, "policy": policy, "products": touched})
    return {"detail": f"Supplier {supplier_id} deleted", "products_affected": touched}


# =========================
# SUPPLIER DRAWER
# =========================
def _supplier_products(store, cache, supplier_id: int, market: Optional[str]) -> List[ProductOut]:
    market_id = _selection(market)
    try:
        products = load_products(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return filters.supplier_products(products, supplier_id, market_id)


@router.get("/{supplier_id}/products", response_model=List[ProductOut])
def list_supplier_products(
    supplier_id: int,
    market: Optional[str] = Query(None),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    _get_supplier(store, cache, supplier_id)
    return _supplier_products(store, cache, supplier_id, market)


@router.get("/{supplier_id}/share", response_model=SupplierShare)
def share_restock_list(
    supplier_id: int,
    market: Optional[str] = Query(None),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    supplier = _get_supplier(store, cache, supplier_id)
    return build_share(supplier, _supplier_products(store, cache, supplier_id, market))


@router.get("/{supplier_id}/purchase-order")
def download_purchase_order(
    supplier_id: int,
    request: Request,
    market: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    supplier = _get_supplier(store, cache, supplier_id)
    products = _supplier_products(store, cache, supplier_id, market)
    try:
        category_names = {c.id: c.name for c in load_categories(store, cache)}
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))

    company = CompanyInfo(
        name=settings.COMPANY_NAME, address=settings.COMPANY_ADDRESS, phone=settings.COMPANY_PHONE,
    )
    order = build_purchase_order(supplier, products, company, category_names, vat_rate=settings.VAT_RATE)
    pdf_bytes = render_purchase_order_pdf(order)

    write_log(db, action="PURCHASE_ORDER", resource="suppliers", ip=client_ip(request),
              meta={"supplier_id": supplier_id, "number": order.number, "lines": len(order.lines)})
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{order.number}.pdf"'},
    )
