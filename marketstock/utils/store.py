# marketstock/utils/store.py
"""Generic per-table access to the relational store.

Every call commits (or rolls back) on its own, so a sequence of calls is
never atomic. Callers that need several writes to agree with each other have
to deal with partial failure themselves.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketstock.database import get_db
from marketstock.models import Category, Market, Product, ProductMarket, Supplier

logger = logging.getLogger(__name__)

TABLES = {
    "products": Product,
    "product_markets": ProductMarket,
    "suppliers": Supplier,
    "markets": Market,
    "categories": Category,
}

Row = Dict[str, Any]


class StoreError(Exception):
    """A store call failed; nothing from that call was persisted."""

    def __init__(self, table: str, operation: str, detail: str):
        self.table = table
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} on '{table}' failed: {detail}")


class Table:
    def __init__(self, db: Session, name: str):
        if name not in TABLES:
            raise KeyError(f"Unknown table: {name}")
        self.db = db
        self.name = name
        self.model = TABLES[name]

    def _column(self, name: str):
        column = getattr(self.model, name, None)
        if column is None:
            raise StoreError(self.name, "select", f"unknown column '{name}'")
        return column

    def _to_row(self, obj) -> Row:
        return {c.name: getattr(obj, c.name) for c in self.model.__table__.columns}

    def _fail(self, operation: str, exc: Exception):
        self.db.rollback()
        logger.error("Store %s on %s failed: %s", operation, self.name, exc)
        raise StoreError(self.name, operation, str(exc)) from exc

    def select(
        self,
        columns: Optional[Sequence[str]] = None,
        where: Optional[Dict[str, Any]] = None,
        in_: Optional[Tuple[str, Iterable[Any]]] = None,
        order_by: Optional[str] = None,
    ) -> List[Row]:
        query = self.db.query(self.model)
        for key, value in (where or {}).items():
            query = query.filter(self._column(key) == value)
        if in_ is not None:
            key, values = in_
            query = query.filter(self._column(key).in_(list(values)))
        if order_by:
            query = query.order_by(self._column(order_by).asc(), self.model.id.asc())
        try:
            rows = [self._to_row(obj) for obj in query.all()]
        except SQLAlchemyError as e:
            self._fail("select", e)
        if columns:
            rows = [{c: row[c] for c in columns} for row in rows]
        return rows

    def insert(self, rows: Sequence[Row]) -> List[Row]:
        objs = [self.model(**row) for row in rows]
        try:
            self.db.add_all(objs)
            self.db.commit()
            for obj in objs:
                self.db.refresh(obj)
        except SQLAlchemyError as e:
            self._fail("insert", e)
        return [self._to_row(obj) for obj in objs]

    def update(self, row_id: int, values: Row) -> Optional[Row]:
        """Update one row by identity. Returns None when the row does not exist."""
        try:
            obj = self.db.get(self.model, row_id)
            if obj is None:
                return None
            for key, value in values.items():
                setattr(obj, key, value)
            self.db.commit()
            self.db.refresh(obj)
        except SQLAlchemyError as e:
            self._fail("update", e)
        return self._to_row(obj)

    def delete(self, **where: Any) -> int:
        """Delete rows matching every given column == value; returns the count."""
        if not where:
            raise ValueError("delete() needs at least one filter")
        query = self.db.query(self.model)
        for key, value in where.items():
            query = query.filter(self._column(key) == value)
        try:
            count = query.delete(synchronize_session="fetch")
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("delete", e)
        return count


class RemoteStore:
    def __init__(self, db: Session):
        self.db = db

    def table(self, name: str) -> Table:
        return Table(self.db, name)


def get_store(db: Session = Depends(get_db)) -> RemoteStore:
    return RemoteStore(db)
