from helpers import add_product


def test_markets_list_with_counts(client, store, seed):
    m1, m2 = seed["markets"]
    add_product(store, market_ids=[m1])
    add_product(store, market_ids=[m1, m2])

    markets = client.get("/markets").json()
    assert [m["name"] for m in markets] == ["Marché Aligre", "Marché Bastille"]
    assert {m["id"]: m["product_count"] for m in markets} == {m1: 2, m2: 1}


def test_market_create_rename(client):
    market = client.post("/markets", json={"name": "Marché Raspail"}).json()
    assert client.put(f"/markets/{market['id']}", json={"name": "Raspail"}).json()["name"] == "Raspail"
    assert [m["name"] for m in client.get("/markets").json()] == ["Raspail"]
    assert client.put("/markets/999", json={"name": "X"}).status_code == 404
    assert client.post("/markets", json={"name": "   "}).status_code == 422


def test_market_delete_blocked_while_in_use(client, store, seed):
    m1, m2 = seed["markets"]
    add_product(store, market_ids=[m1])
    add_product(store, market_ids=[m1])

    resp = client.delete(f"/markets/{m1}")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Impossible de supprimer ce marché car 2 produit(s) y sont associé(s)."
    assert len(client.get("/markets").json()) == 2

    assert client.delete(f"/markets/{m2}").status_code == 200
    assert [m["id"] for m in client.get("/markets").json()] == [m1]
    assert client.delete(f"/markets/{m2}").status_code == 404


def test_categories_crud(client, store, seed):
    c1, c2 = seed["categories"]
    assert [c["name"] for c in client.get("/categories").json()] == ["Fruits", "Épicerie"]

    created = client.post("/categories", json={"name": "Fromages"}).json()
    assert client.put(f"/categories/{created['id']}", json={"name": "Crèmerie"}).json()["name"] == "Crèmerie"

    add_product(store, category_id=c1)
    assert client.delete(f"/categories/{c1}", params={"policy": "block"}).status_code == 409
    resp = client.delete(f"/categories/{c1}")
    assert resp.json()["products_affected"] == 1
    assert client.get("/products").json()[0]["category_id"] is None
    assert client.delete("/categories/999").status_code == 404


def test_logs_record_outcomes(client, seed):
    client.post("/markets", json={"name": "Nord"})
    client.delete(f"/markets/{seed['markets'][0]}")
    client.post("/markets", json={"name": "Sud"})

    page = client.get("/logs", params={"resource": "markets", "page_size": 2}).json()
    assert page["total"] == 3
    assert len(page["items"]) == 2
    assert page["items"][0]["action"] == "MARKET_CREATE"

    assert client.get("/logs", params={"status": "fail"}).json()["total"] == 0
    assert client.get("/logs", params={"date_from": "yesterday"}).status_code == 422
