import pytest

from marketstock.schemas.category import CategoryCreate
from marketstock.schemas.market import MarketCreate
from marketstock.schemas.product import ProductCreate, ProductUpdate
from marketstock.schemas.supplier import SupplierCreate
from marketstock.utils import mutations
from marketstock.utils.queries import fetch_products
from marketstock.utils.store import StoreError, Table

from helpers import add_product


def links_of(store, product_id):
    rows = store.table("product_markets").select(columns=("market_id",), where={"product_id": product_id})
    return sorted(r["market_id"] for r in rows)


def fail_on(monkeypatch, method, table="product_markets", after=0):
    """Make ``Table.<method>`` raise for ``table`` once it has succeeded ``after`` times."""
    original = getattr(Table, method)
    calls = {"n": 0}

    def patched(self, *args, **kwargs):
        if self.name == table:
            calls["n"] += 1
            if calls["n"] > after:
                raise StoreError(table, method, "injected failure")
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Table, method, patched)


def update_payload(name="Pommes", markets=(), **values):
    return ProductUpdate(name=name, product_markets=[{"market_id": m} for m in markets], **values)


# =========================
# CREATE
# =========================
def test_create_product_with_market(store, seed):
    m1 = seed["markets"][0]
    result = mutations.create_product(
        store, ProductCreate(name="Pommes", status="low", sale_price=10, purchase_price=5, market_id=m1)
    )
    assert result.sync_status == "synced"
    assert result.product.market_ids() == [m1]
    assert result.product.margin == 50.0

    listed = fetch_products(store)
    assert listed[0].status == "low"
    assert links_of(store, result.product.id) == [m1]


def test_create_product_without_market(store, seed):
    result = mutations.create_product(store, ProductCreate(name="Poires"))
    assert result.sync_status == "synced"
    assert result.product.product_markets == []
    assert result.product.status == "available"


def test_create_product_link_failure_keeps_product(store, seed, monkeypatch):
    fail_on(monkeypatch, "insert")
    result = mutations.create_product(store, ProductCreate(name="Pommes", market_id=seed["markets"][0]))
    assert result.sync_status == "inconsistent"
    assert result.product.product_markets == []
    assert [p.name for p in fetch_products(store)] == ["Pommes"]


def test_create_product_row_failure_propagates(store, monkeypatch):
    fail_on(monkeypatch, "insert", table="products")
    with pytest.raises(StoreError):
        mutations.create_product(store, ProductCreate(name="Pommes"))
    assert fetch_products(store) == []


# =========================
# UPDATE SAGA
# =========================
def test_update_replaces_link_set(store, seed):
    m1, m2 = seed["markets"]
    m3 = store.table("markets").insert([{"name": "Marché Raspail"}])[0]["id"]
    product = add_product(store, market_ids=[m1, m2])

    result = mutations.update_product(store, product["id"], update_payload(name="Pommes Gala", markets=[m3]))
    assert result.sync_status == "synced"
    assert result.product.name == "Pommes Gala"
    assert result.product.market_ids() == [m3]
    assert links_of(store, product["id"]) == [m3]


def test_update_with_empty_link_set(store, seed):
    product = add_product(store, market_ids=seed["markets"])
    result = mutations.update_product(store, product["id"], update_payload())
    assert result.sync_status == "synced"
    assert links_of(store, product["id"]) == []


def test_update_missing_product(store):
    with pytest.raises(mutations.NotFoundError):
        mutations.update_product(store, 42, update_payload())


def test_update_scalar_failure_touches_nothing(store, seed, monkeypatch):
    product = add_product(store, market_ids=[seed["markets"][0]])
    fail_on(monkeypatch, "update", table="products")
    with pytest.raises(StoreError):
        mutations.update_product(store, product["id"], update_payload(name="Autre", markets=[seed["markets"][1]]))
    assert links_of(store, product["id"]) == [seed["markets"][0]]
    assert fetch_products(store)[0].name == "Pommes"


def test_update_insert_failure_restores_prior_links(store, seed, monkeypatch):
    m1, m2 = seed["markets"]
    product = add_product(store, market_ids=[m1])
    # first insert (new links) fails, the restore goes through
    original = Table.insert
    calls = {"n": 0}

    def insert(self, rows):
        if self.name == "product_markets":
            calls["n"] += 1
            if calls["n"] == 1:
                raise StoreError("product_markets", "insert", "injected failure")
        return original(self, rows)

    monkeypatch.setattr(Table, "insert", insert)
    result = mutations.update_product(store, product["id"], update_payload(name="Pommes bio", markets=[m2]))

    assert result.sync_status == "reverted"
    assert result.product.name == "Pommes bio"
    assert result.product.market_ids() == [m1]
    assert links_of(store, product["id"]) == [m1]


def test_update_insert_and_restore_failure_is_inconsistent(store, seed, monkeypatch):
    m1, m2 = seed["markets"]
    product = add_product(store, market_ids=[m1])
    fail_on(monkeypatch, "insert")

    result = mutations.update_product(store, product["id"], update_payload(markets=[m2]))
    assert result.sync_status == "inconsistent"
    assert result.product.product_markets == []
    assert links_of(store, product["id"]) == []


def test_update_delete_failure_leaves_prior_links(store, seed, monkeypatch):
    m1, m2 = seed["markets"]
    product = add_product(store, market_ids=[m1])
    fail_on(monkeypatch, "delete")

    result = mutations.update_product(store, product["id"], update_payload(name="Renommé", markets=[m2]))
    assert result.sync_status == "reverted"
    assert result.product.name == "Renommé"
    assert links_of(store, product["id"]) == [m1]


def test_update_without_prior_read_is_inconsistent(store, seed, monkeypatch):
    m1, m2 = seed["markets"]
    product = add_product(store, market_ids=[m1])
    fail_on(monkeypatch, "select")
    fail_on(monkeypatch, "delete")

    result = mutations.update_product(store, product["id"], update_payload(markets=[m2]))
    assert result.sync_status == "inconsistent"
    assert result.product.product_markets == []


# =========================
# STATUS / DELETE
# =========================
def test_update_status_keeps_links(store, seed):
    product = add_product(store, market_ids=[seed["markets"][0]], purchase_price=2.0)
    out = mutations.update_product_status(store, product["id"], "out")
    assert out.status == "out"
    assert out.purchase_price == 2.0
    assert out.market_ids() == [seed["markets"][0]]


def test_update_status_missing(store):
    with pytest.raises(mutations.NotFoundError):
        mutations.update_product_status(store, 5, "low")


def test_delete_product_removes_links(store, seed):
    product = add_product(store, market_ids=seed["markets"])
    mutations.delete_product(store, product["id"])
    assert fetch_products(store) == []
    assert links_of(store, product["id"]) == []
    with pytest.raises(mutations.NotFoundError):
        mutations.delete_product(store, product["id"])


def test_delete_created_product_with_market(store, seed):
    result = mutations.create_product(store, ProductCreate(name="Tomates", market_id=seed["markets"][0]))
    mutations.delete_product(store, result.product.id)
    assert fetch_products(store) == []
    assert links_of(store, result.product.id) == []


def test_delete_product_link_failure_keeps_product(store, seed, monkeypatch):
    product = add_product(store, market_ids=seed["markets"])
    fail_on(monkeypatch, "delete")
    with pytest.raises(StoreError):
        mutations.delete_product(store, product["id"])
    assert [p.id for p in fetch_products(store)] == [product["id"]]
    assert links_of(store, product["id"]) == sorted(seed["markets"])


# =========================
# MARKETS
# =========================
def test_delete_market_in_use_is_blocked(store, seed):
    m1 = seed["markets"][0]
    add_product(store, market_ids=[m1], name="A")
    add_product(store, market_ids=[m1], name="B")

    with pytest.raises(mutations.MarketInUseError) as exc:
        mutations.delete_market(store, m1, fetch_products(store))
    assert exc.value.product_count == 2
    assert "2 produit(s)" in str(exc.value)
    assert len(store.table("markets").select()) == 2


def test_delete_market_checks_links_when_list_is_degraded(store, seed):
    m1 = seed["markets"][0]
    add_product(store, market_ids=[m1])
    # products fetched without their links
    degraded = [p.model_copy(update={"product_markets": []}) for p in fetch_products(store)]

    with pytest.raises(mutations.MarketInUseError) as exc:
        mutations.delete_market(store, m1, degraded)
    assert exc.value.product_count == 1
    assert len(store.table("markets").select()) == 2


def test_delete_unused_market(store, seed):
    m2 = seed["markets"][1]
    add_product(store, market_ids=[seed["markets"][0]])
    mutations.delete_market(store, m2, fetch_products(store))
    assert [m["id"] for m in store.table("markets").select()] == [seed["markets"][0]]
    with pytest.raises(mutations.NotFoundError):
        mutations.delete_market(store, m2, fetch_products(store))


def test_market_create_and_rename(store):
    market = mutations.create_market(store, MarketCreate(name="  Nord "))
    assert market.name == "Nord"
    assert mutations.update_market(store, market.id, MarketCreate(name="Sud")).name == "Sud"
    with pytest.raises(mutations.NotFoundError):
        mutations.update_market(store, 999, MarketCreate(name="X"))


# =========================
# SUPPLIERS / CATEGORIES (delete policies)
# =========================
def test_delete_supplier_nullifies_products(store, seed):
    s1 = seed["suppliers"][0]
    product = add_product(store, supplier_id=s1)
    touched = mutations.delete_supplier(store, s1, "nullify")
    assert touched == 1
    assert fetch_products(store)[0].supplier_id is None
    assert product["id"] == fetch_products(store)[0].id


def test_delete_supplier_block(store, seed):
    s1 = seed["suppliers"][0]
    add_product(store, supplier_id=s1)
    with pytest.raises(mutations.ReferenceInUseError) as exc:
        mutations.delete_supplier(store, s1, "block")
    assert exc.value.product_count == 1
    assert len(store.table("suppliers").select()) == 2


def test_delete_category_cascade(store, seed):
    c1, c2 = seed["categories"]
    doomed = add_product(store, market_ids=[seed["markets"][0]], category_id=c1, name="A")
    add_product(store, category_id=c2, name="B")

    assert mutations.delete_category(store, c1, "cascade") == 1
    assert [p.name for p in fetch_products(store)] == ["B"]
    assert links_of(store, doomed["id"]) == []


def test_delete_unreferenced_and_missing(store, seed):
    assert mutations.delete_category(store, seed["categories"][1], "block") == 0
    with pytest.raises(mutations.NotFoundError):
        mutations.delete_category(store, 999)
    with pytest.raises(mutations.NotFoundError):
        mutations.delete_supplier(store, 999)


def test_supplier_and_category_create(store):
    supplier = mutations.create_supplier(store, SupplierCreate(name="Bio Sud", phone_number=612345678))
    assert supplier.phone_number == "612345678"
    category = mutations.create_category(store, CategoryCreate(name="Fromages"))
    assert mutations.update_category(store, category.id, CategoryCreate(name="Crèmerie")).name == "Crèmerie"
