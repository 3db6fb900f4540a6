# marketstock/routes/markets.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from marketstock.database import get_db
from marketstock.schemas.market import MarketCreate, MarketOut, MarketWithCount
from marketstock.utils import filters
from marketstock.utils.audit import client_ip, failure, write_log
from marketstock.utils.cache import QueryCache, get_query_cache, invalidate_after, MARKETS
from marketstock.utils.mutations import (
    MarketInUseError, NotFoundError, create_market, delete_market, update_market,
)
from marketstock.utils.queries import load_markets, load_products
from marketstock.utils.store import RemoteStore, StoreError, get_store

router = APIRouter(prefix="/markets", tags=["Markets"])


@router.get("", response_model=List[MarketWithCount])
def list_markets(
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    try:
        markets = load_markets(store, cache)
        products = load_products(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [
        MarketWithCount(**m.model_dump(), product_count=filters.market_product_count(products, m.id))
        for m in markets
    ]


@router.post("", response_model=MarketOut)
def add_market(
    payload: MarketCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, MARKETS):
        try:
            market = create_market(store, payload)
        except StoreError as e:
            raise failure(db, request, action="MARKET_CREATE", resource="markets",
                          status_code=502, detail=str(e), meta={"name": payload.name})

    write_log(db, action="MARKET_CREATE", resource="markets", ip=client_ip(request), meta={"id": market.id})
    return market


@router.put("/{market_id}", response_model=MarketOut)
def rename_market(
    market_id: int,
    payload: MarketCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, MARKETS):
        try:
            market = update_market(store, market_id, payload)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Market not found")
        except StoreError as e:
            raise failure(db, request, action="MARKET_UPDATE", resource="markets",
                          status_code=502, detail=str(e), meta={"id": market_id})

    write_log(db, action="MARKET_UPDATE", resource="markets", ip=client_ip(request), meta={"id": market_id})
    return market


@router.delete("/{market_id}")
def remove_market(
    market_id: int,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    try:
        products = load_products(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))

    with invalidate_after(cache, MARKETS):
        try:
            delete_market(store, market_id, products)
        except MarketInUseError as e:
            raise failure(db, request, action="MARKET_DELETE", resource="markets", status_code=409,
                          detail=str(e), meta={"id": market_id, "products": e.product_count})
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Market not found")
        except StoreError as e:
            raise failure(db, request, action="MARKET_DELETE", resource="markets",
                          status_code=502, detail=str(e), meta={"id": market_id})

    write_log(db, action="MARKET_DELETE", resource="markets", ip=client_ip(request), meta={"id": market_id})
    return {"detail": f"Market {market_id} deleted"}
