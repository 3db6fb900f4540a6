import pytest
from sqlalchemy.exc import OperationalError

from marketstock.utils.store import StoreError, Table

from helpers import add_product


def test_insert_returns_rows_with_ids(store):
    rows = store.table("markets").insert([{"name": "Nord"}, {"name": "Sud"}])
    assert [r["name"] for r in rows] == ["Nord", "Sud"]
    assert all(isinstance(r["id"], int) for r in rows)


def test_select_filters_and_orders(store):
    store.table("categories").insert([{"name": "Légumes"}, {"name": "Fruits"}])
    rows = store.table("categories").select(columns=("name",), order_by="name")
    assert rows == [{"name": "Fruits"}, {"name": "Légumes"}]


def test_select_in(store):
    a = add_product(store, name="A")
    add_product(store, name="B")
    c = add_product(store, name="C")
    rows = store.table("products").select(columns=("name",), in_=("id", [a["id"], c["id"]]), order_by="name")
    assert [r["name"] for r in rows] == ["A", "C"]


def test_update_missing_row_returns_none(store):
    assert store.table("markets").update(999, {"name": "X"}) is None


def test_update_and_delete(store):
    market = store.table("markets").insert([{"name": "Nord"}])[0]
    assert store.table("markets").update(market["id"], {"name": "Nord-Est"})["name"] == "Nord-Est"
    assert store.table("markets").delete(id=market["id"]) == 1
    assert store.table("markets").delete(id=market["id"]) == 0


def test_delete_without_filter_is_refused(store):
    with pytest.raises(ValueError):
        store.table("markets").delete()


def test_unknown_table():
    with pytest.raises(KeyError):
        Table(None, "orders")


def test_driver_errors_become_store_errors(store, monkeypatch):
    def boom(self):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr("sqlalchemy.orm.Query.all", boom)
    with pytest.raises(StoreError) as exc:
        store.table("markets").select()
    assert exc.value.table == "markets"
    assert exc.value.operation == "select"


def test_foreign_keys_are_enforced(store, seed):
    with pytest.raises(StoreError) as exc:
        store.table("product_markets").insert([{"product_id": 999, "market_id": seed["markets"][0]}])
    assert exc.value.operation == "insert"


def test_product_delete_cascades_to_links(store, seed):
    product = add_product(store, market_ids=seed["markets"])
    assert store.table("products").delete(id=product["id"]) == 1
    assert store.table("product_markets").select(where={"product_id": product["id"]}) == []
