# marketstock/utils/queries.py
import logging
from collections import defaultdict
from typing import Dict, List

from marketstock.schemas.category import CategoryOut
from marketstock.schemas.market import MarketOut
from marketstock.schemas.product import ProductOut, ProductMarketLink
from marketstock.schemas.supplier import SupplierOut
from marketstock.utils.cache import QueryCache, PRODUCTS, SUPPLIERS, MARKETS, CATEGORIES
from marketstock.utils.store import RemoteStore, StoreError

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = (
    "id", "name", "code", "status", "supplier_id", "category_id", "purchase_price", "sale_price",
)


def fetch_products(store: RemoteStore) -> List[ProductOut]:
    """All products, each with the market links attached.

    The join happens here rather than in the store. If the links cannot be
    fetched the products are still returned, with empty link lists.
    """
    rows = store.table("products").select(columns=PRODUCT_COLUMNS)
    if not rows:
        return []

    ids = [row["id"] for row in rows]
    try:
        relations = store.table("product_markets").select(
            columns=("product_id", "market_id"), in_=("product_id", ids)
        )
    except StoreError as e:
        logger.warning("Could not fetch product_markets relations: %s", e)
        return [ProductOut.model_validate({**row, "product_markets": []}) for row in rows]

    links_by_product: Dict[int, List[ProductMarketLink]] = defaultdict(list)
    for rel in relations:
        links_by_product[rel["product_id"]].append(ProductMarketLink(market_id=rel["market_id"]))

    return [
        ProductOut.model_validate({**row, "product_markets": links_by_product.get(row["id"], [])})
        for row in rows
    ]


def fetch_suppliers(store: RemoteStore) -> List[SupplierOut]:
    return [SupplierOut.model_validate(row) for row in store.table("suppliers").select(order_by="name")]


def fetch_markets(store: RemoteStore) -> List[MarketOut]:
    rows = store.table("markets").select(columns=("id", "name"), order_by="name")
    return [MarketOut.model_validate(row) for row in rows]


def fetch_categories(store: RemoteStore) -> List[CategoryOut]:
    return [CategoryOut.model_validate(row) for row in store.table("categories").select(order_by="name")]


# ---- cached reads ----
def load_products(store: RemoteStore, cache: QueryCache) -> List[ProductOut]:
    return cache.get(PRODUCTS, lambda: fetch_products(store))


def load_suppliers(store: RemoteStore, cache: QueryCache) -> List[SupplierOut]:
    return cache.get(SUPPLIERS, lambda: fetch_suppliers(store))


def load_markets(store: RemoteStore, cache: QueryCache) -> List[MarketOut]:
    return cache.get(MARKETS, lambda: fetch_markets(store))


def load_categories(store: RemoteStore, cache: QueryCache) -> List[CategoryOut]:
    return cache.get(CATEGORIES, lambda: fetch_categories(store))
