from marketstock.schemas.product import ProductOut


def product(id, name="Pommes", markets=(), **values) -> ProductOut:
    return ProductOut(
        id=id,
        name=name,
        product_markets=[{"market_id": m} for m in markets],
        **values,
    )


def add_product(store, market_ids=(), **values) -> dict:
    """Insert a product row and its market links straight into the store."""
    row = {"name": "Pommes", "status": "available", **values}
    created = store.table("products").insert([row])[0]
    if market_ids:
        store.table("product_markets").insert(
            [{"product_id": created["id"], "market_id": m} for m in market_ids]
        )
    return created
