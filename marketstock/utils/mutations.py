# marketstock/utils/mutations.py
"""Writes against the store, one sequential call after another.

Nothing here is transactional. A product write is followed by separate writes
to the product_markets join table, and a failure between them is reported
through ``sync_status`` instead of being hidden.
"""
import logging
from typing import List, Optional

from marketstock.config import DeletePolicy
from marketstock.schemas.category import CategoryCreate, CategoryOut
from marketstock.schemas.market import MarketCreate, MarketOut
from marketstock.schemas.product import (
    ProductCreate, ProductMarketLink, ProductOut, ProductUpdate, ProductWriteResult, StockStatus,
)
from marketstock.schemas.supplier import SupplierCreate, SupplierOut, SupplierUpdate
from marketstock.utils.filters import market_product_count
from marketstock.utils.store import RemoteStore, StoreError

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    def __init__(self, resource: str, row_id: int):
        self.resource = resource
        self.row_id = row_id
        super().__init__(f"{resource} {row_id} not found")


class MarketInUseError(Exception):
    """Business rule: a market with linked products cannot be deleted."""

    def __init__(self, market_id: int, product_count: int):
        self.market_id = market_id
        self.product_count = product_count
        super().__init__(
            f"Impossible de supprimer ce marché car {product_count} produit(s) y sont associé(s)."
        )


class ReferenceInUseError(Exception):
    def __init__(self, resource: str, row_id: int, product_count: int):
        self.resource = resource
        self.row_id = row_id
        self.product_count = product_count
        super().__init__(f"{resource} {row_id} is referenced by {product_count} product(s)")


def _links(market_ids: List[int]) -> List[ProductMarketLink]:
    return [ProductMarketLink(market_id=m) for m in market_ids]


def _link_rows(product_id: int, market_ids: List[int]) -> List[dict]:
    return [{"product_id": product_id, "market_id": m} for m in market_ids]


# =========================
# PRODUCTS
# =========================
def create_product(store: RemoteStore, data: ProductCreate) -> ProductWriteResult:
    """Insert the product, then its single market link when one was chosen.

    If the link insert fails the product stays in place without it.
    """
    row = store.table("products").insert([data.model_dump(exclude={"market_id"})])[0]

    market_ids: List[int] = []
    sync_status = "synced"
    if data.market_id is not None:
        try:
            store.table("product_markets").insert(_link_rows(row["id"], [data.market_id]))
            market_ids = [data.market_id]
        except StoreError as e:
            logger.error("Product %s created without its market link: %s", row["id"], e)
            sync_status = "inconsistent"

    product = ProductOut.model_validate({**row, "product_markets": _links(market_ids)})
    return ProductWriteResult(product=product, sync_status=sync_status)


def _restore_links(store: RemoteStore, product_id: int, prior: Optional[List[int]]) -> str:
    if prior is None:
        return "inconsistent"
    if not prior:
        return "reverted"
    try:
        store.table("product_markets").insert(_link_rows(product_id, prior))
    except StoreError as e:
        logger.error("Could not restore market links of product %s: %s", product_id, e)
        return "inconsistent"
    return "reverted"


def update_product(store: RemoteStore, product_id: int, data: ProductUpdate) -> ProductWriteResult:
    """Replace the product's scalar fields and its whole market link set.

    1. update the product row (the link list is never part of it)
    2. delete every existing link of the product
    3. insert one link per desired market

    A failure in step 1 propagates and nothing else is attempted. Failures in
    steps 2-3 leave the new scalar values in place. When the prior link set
    is known to be in place again the result is "reverted", otherwise
    "inconsistent" and the returned link list is empty.
    """
    links = store.table("product_markets")

    row = store.table("products").update(product_id, data.scalar_fields())
    if row is None:
        raise NotFoundError("Product", product_id)

    try:
        prior: Optional[List[int]] = [
            r["market_id"] for r in links.select(columns=("market_id",), where={"product_id": product_id})
        ]
    except StoreError as e:
        logger.warning("Could not read prior market links of product %s: %s", product_id, e)
        prior = None

    desired = [link.market_id for link in data.product_markets]

    def result(sync_status: str, market_ids: List[int]) -> ProductWriteResult:
        product = ProductOut.model_validate({**row, "product_markets": _links(market_ids)})
        return ProductWriteResult(product=product, sync_status=sync_status)

    try:
        links.delete(product_id=product_id)
    except StoreError as e:
        logger.error("Could not clear market links of product %s: %s", product_id, e)
        if prior is None:
            return result("inconsistent", [])
        return result("reverted", prior)

    if desired:
        try:
            links.insert(_link_rows(product_id, desired))
        except StoreError as e:
            logger.error("Could not insert market links of product %s: %s", product_id, e)
            status = _restore_links(store, product_id, prior)
            return result(status, prior if status == "reverted" else [])

    return result("synced", desired)


def update_product_status(store: RemoteStore, product_id: int, status: StockStatus) -> ProductOut:
    row = store.table("products").update(product_id, {"status": status})
    if row is None:
        raise NotFoundError("Product", product_id)
    try:
        rels = store.table("product_markets").select(columns=("market_id",), where={"product_id": product_id})
        market_ids = [r["market_id"] for r in rels]
    except StoreError as e:
        logger.warning("Could not fetch market links of product %s: %s", product_id, e)
        market_ids = []
    return ProductOut.model_validate({**row, "product_markets": _links(market_ids)})


def delete_product(store: RemoteStore, product_id: int) -> None:
    """Remove the product's market links, then the product row.

    The links reference the product, so they have to go first. A failure on
    either write propagates; if only the product delete fails the product is
    left in place without links.
    """
    _require(store, "products", product_id, "Product")
    store.table("product_markets").delete(product_id=product_id)
    if not store.table("products").delete(id=product_id):
        raise NotFoundError("Product", product_id)


def _release_references(store: RemoteStore, column: str, ref_id: int, policy: DeletePolicy, resource: str) -> int:
    products = store.table("products")
    referencing = products.select(columns=("id",), where={column: ref_id})
    if not referencing:
        return 0
    if policy == "block":
        raise ReferenceInUseError(resource, ref_id, len(referencing))
    for ref in referencing:
        if policy == "cascade":
            delete_product(store, ref["id"])
        else:
            products.update(ref["id"], {column: None})
    logger.info("%s %s: %s product(s) handled with policy %s", resource, ref_id, len(referencing), policy)
    return len(referencing)


def _require(store: RemoteStore, table: str, row_id: int, resource: str) -> None:
    if not store.table(table).select(columns=("id",), where={"id": row_id}):
        raise NotFoundError(resource, row_id)


# =========================
# SUPPLIERS
# =========================
def create_supplier(store: RemoteStore, data: SupplierCreate) -> SupplierOut:
    row = store.table("suppliers").insert([data.model_dump()])[0]
    return SupplierOut.model_validate(row)


def update_supplier(store: RemoteStore, supplier_id: int, data: SupplierUpdate) -> SupplierOut:
    row = store.table("suppliers").update(supplier_id, data.model_dump())
    if row is None:
        raise NotFoundError("Supplier", supplier_id)
    return SupplierOut.model_validate(row)


def delete_supplier(store: RemoteStore, supplier_id: int, policy: DeletePolicy = "nullify") -> int:
    """Delete a supplier; returns how many products the policy touched."""
    _require(store, "suppliers", supplier_id, "Supplier")
    touched = _release_references(store, "supplier_id", supplier_id, policy, "Supplier")
    if not store.table("suppliers").delete(id=supplier_id):
        raise NotFoundError("Supplier", supplier_id)
    return touched


# =========================
# CATEGORIES
# =========================
def create_category(store: RemoteStore, data: CategoryCreate) -> CategoryOut:
    row = store.table("categories").insert([data.model_dump()])[0]
    return CategoryOut.model_validate(row)


def update_category(store: RemoteStore, category_id: int, data: CategoryCreate) -> CategoryOut:
    row = store.table("categories").update(category_id, data.model_dump())
    if row is None:
        raise NotFoundError("Category", category_id)
    return CategoryOut.model_validate(row)


def delete_category(store: RemoteStore, category_id: int, policy: DeletePolicy = "nullify") -> int:
    _require(store, "categories", category_id, "Category")
    touched = _release_references(store, "category_id", category_id, policy, "Category")
    if not store.table("categories").delete(id=category_id):
        raise NotFoundError("Category", category_id)
    return touched


# =========================
# MARKETS
# =========================
def create_market(store: RemoteStore, data: MarketCreate) -> MarketOut:
    row = store.table("markets").insert([data.model_dump()])[0]
    return MarketOut.model_validate(row)


def update_market(store: RemoteStore, market_id: int, data: MarketCreate) -> MarketOut:
    row = store.table("markets").update(market_id, data.model_dump())
    if row is None:
        raise NotFoundError("Market", market_id)
    return MarketOut.model_validate(row)


def delete_market(store: RemoteStore, market_id: int, products: List[ProductOut]) -> None:
    """Delete a market unless a product in ``products`` links to it.

    ``products`` may come from a fetch that lost its links, so an empty count
    is confirmed against the link table before anything is removed.
    """
    count = market_product_count(products, market_id)
    if count == 0:
        linked = store.table("product_markets").select(columns=("product_id",), where={"market_id": market_id})
        count = len({row["product_id"] for row in linked})
    if count > 0:
        raise MarketInUseError(market_id, count)
    if not store.table("markets").delete(id=market_id):
        raise NotFoundError("Market", market_id)
