# marketstock/utils/csv_import.py
import io
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from marketstock.schemas.imports import ImportReport
from marketstock.schemas.product import ProductCreate, STOCK_STATUSES
from marketstock.utils.mutations import create_product
from marketstock.utils.store import RemoteStore, StoreError

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("name", "code", "category", "supplier", "market", "purchase_price", "sale_price", "status")


class CsvFormatError(ValueError):
    pass


def read_csv_rows(content: bytes) -> List[Dict[str, str]]:
    """Parse a CSV file with a header row; every cell comes back as text."""
    try:
        df = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CsvFormatError(f"Unreadable CSV file: {e}") from e

    df.columns = [str(c).strip().lower() for c in df.columns]
    return df.to_dict(orient="records")


def _index_by_name(items) -> Dict[str, int]:
    # First entry wins when two share a name
    index: Dict[str, int] = {}
    for item in items:
        index.setdefault((item.name or "").strip().lower(), item.id)
    return index


def _cell(row: Dict[str, str], key: str) -> str:
    return str(row.get(key) or "").strip()


def _parse_price(raw: str) -> Optional[float]:
    if not raw:
        return None
    return float(raw.replace(",", "."))


def resolve_rows(rows: Sequence[Dict[str, str]], categories, suppliers, markets) -> Tuple[List[ProductCreate], int]:
    """Turn CSV rows into create payloads; returns (payloads, skipped_count).

    Category is mandatory and must match a known category by name; supplier
    and market are optional and become None when unknown.
    """
    category_ids = _index_by_name(categories)
    supplier_ids = _index_by_name(suppliers)
    market_ids = _index_by_name(markets)

    payloads: List[ProductCreate] = []
    skipped = 0
    for line, row in enumerate(rows, start=2):
        name = _cell(row, "name")
        category = _cell(row, "category")
        if not name or not category:
            logger.warning("CSV line %s skipped: name and category are required", line)
            skipped += 1
            continue

        category_id = category_ids.get(category.lower())
        if category_id is None:
            logger.warning('CSV line %s skipped: category "%s" not found for product "%s"', line, category, name)
            skipped += 1
            continue

        supplier = _cell(row, "supplier").lower()
        market = _cell(row, "market").lower()
        status = str(row.get("status") or "")

        try:
            payload = ProductCreate(
                name=name,
                code=_cell(row, "code") or None,
                category_id=category_id,
                supplier_id=supplier_ids.get(supplier) if supplier else None,
                market_id=market_ids.get(market) if market else None,
                purchase_price=_parse_price(_cell(row, "purchase_price")),
                sale_price=_parse_price(_cell(row, "sale_price")),
                status=status if status in STOCK_STATUSES else "available",
            )
        except ValueError as e:
            logger.warning('CSV line %s skipped: invalid values for product "%s": %s', line, name, e)
            skipped += 1
            continue
        payloads.append(payload)

    return payloads, skipped


def _create_one(session_factory: Callable[[], Session], payload: ProductCreate):
    db = session_factory()
    try:
        return create_product(RemoteStore(db), payload)
    finally:
        db.close()


def submit_products(
    payloads: Sequence[ProductCreate],
    session_factory: Callable[[], Session],
    max_workers: Optional[int] = None,
) -> Tuple[int, int]:
    """Create every payload concurrently, each on its own session; returns (created, failed)."""
    created = failed = 0
    if not payloads:
        return created, failed

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(_create_one, session_factory, p): p for p in payloads}
        for future in as_completed(futures):
            try:
                result = future.result()
            except StoreError as e:
                failed += 1
                logger.error('Import of "%s" failed: %s', futures[future].name, e)
                continue
            created += 1
            if result.sync_status != "synced":
                logger.warning('Product "%s" imported without its market link', result.product.name)

    return created, failed


def import_products(
    content: bytes,
    categories,
    suppliers,
    markets,
    session_factory: Callable[[], Session],
    max_workers: Optional[int] = None,
) -> ImportReport:
    rows = read_csv_rows(content)
    payloads, skipped = resolve_rows(rows, categories, suppliers, markets)
    created, failed = submit_products(payloads, session_factory, max_workers)
    logger.info("CSV import: %s rows, %s created, %s skipped, %s failed", len(rows), created, skipped, failed)
    return ImportReport(total=len(rows), created=created, skipped=skipped, failed=failed)
