# marketstock/utils/filters.py
"""Pure in-memory filters for the stock, catalogue and supplier screens.

Inputs are never mutated; every function returns a new list.
"""
from typing import List, Literal, Optional, Sequence, Union

from marketstock.schemas.product import ProductOut
from marketstock.schemas.supplier import AlertScope, SupplierOut

ALL = "all"
ALERT_STATUSES = ("low", "out")

StatusFilter = Literal["all", "low", "out"]
Selection = Union[int, str, None]


def _is_all(value: Selection) -> bool:
    return value is None or value == "" or value == ALL


def filter_by_category(products: Sequence[ProductOut], category_id: Selection) -> List[ProductOut]:
    if _is_all(category_id):
        return list(products)
    return [p for p in products if p.category_id == int(category_id)]


def filter_by_market(products: Sequence[ProductOut], market_id: Selection) -> List[ProductOut]:
    """Products linked to ``market_id``; no selection or ``"all"`` passes everything."""
    if _is_all(market_id):
        return list(products)
    wanted = int(market_id)
    return [p for p in products if any(link.market_id == wanted for link in p.product_markets)]


def search_products(products: Sequence[ProductOut], query: Optional[str], include_code: bool = False) -> List[ProductOut]:
    if not query:
        return list(products)
    q = query.lower()
    return [
        p for p in products
        if q in p.name.lower() or (include_code and q in (p.code or "").lower())
    ]


def filter_by_status(products: Sequence[ProductOut], status: Optional[StatusFilter]) -> List[ProductOut]:
    if status in ALERT_STATUSES:
        return [p for p in products if p.status == status]
    return list(products)


def sort_by_code(products: Sequence[ProductOut]) -> List[ProductOut]:
    # Missing code sorts as "" so it comes first
    return sorted(products, key=lambda p: (p.code or "").lower())


def stock_view(
    products: Sequence[ProductOut],
    market_id: Selection = ALL,
    query: Optional[str] = None,
    status: Optional[StatusFilter] = ALL,
) -> List[ProductOut]:
    result = filter_by_market(products, market_id)
    result = search_products(result, query)
    return filter_by_status(result, status)


def catalogue_view(
    products: Sequence[ProductOut],
    category_id: Selection = ALL,
    query: Optional[str] = None,
) -> List[ProductOut]:
    result = filter_by_category(products, category_id)
    result = search_products(result, query, include_code=True)
    return sort_by_code(result)


def filter_suppliers(suppliers: Sequence[SupplierOut], query: Optional[str]) -> List[SupplierOut]:
    if not query:
        return list(suppliers)
    q = query.lower()
    return [s for s in suppliers if q in (s.name or "").lower()]


def supplier_products(
    products: Sequence[ProductOut], supplier_id: int, market_id: Selection = None
) -> List[ProductOut]:
    return [p for p in filter_by_market(products, market_id) if p.supplier_id == supplier_id]


def critical_products(products: Sequence[ProductOut]) -> List[ProductOut]:
    return [p for p in products if p.status in ALERT_STATUSES]


def supplier_alert_count(
    products: Sequence[ProductOut],
    supplier_id: int,
    scope: AlertScope = "all",
    market_id: Selection = None,
) -> int:
    """Low/out products of a supplier.

    ``scope="market"`` counts inside the ``market_id`` selection,
    ``scope="all"`` ignores the market entirely.
    """
    pool = filter_by_market(products, market_id) if scope == "market" else products
    return sum(1 for p in pool if p.supplier_id == supplier_id and p.status in ALERT_STATUSES)


def market_product_count(products: Sequence[ProductOut], market_id: int) -> int:
    return sum(1 for p in products if any(link.market_id == market_id for link in p.product_markets))


def parse_selection(value: Selection) -> Selection:
    """Normalise a query-string selection to an id or ``"all"``."""
    if _is_all(value):
        return ALL
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"expected an id or 'all', got {value!r}")
