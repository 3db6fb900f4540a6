# marketstock/routes/categories.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from marketstock.config import settings, DeletePolicy
from marketstock.database import get_db
from marketstock.schemas.category import CategoryCreate, CategoryOut
from marketstock.utils.audit import client_ip, failure, write_log
from marketstock.utils.cache import QueryCache, get_query_cache, invalidate_after, CATEGORIES, PRODUCTS
from marketstock.utils.mutations import (
    NotFoundError, ReferenceInUseError, create_category, delete_category, update_category,
)
from marketstock.utils.queries import load_categories
from marketstock.utils.store import RemoteStore, StoreError, get_store

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=List[CategoryOut])
def list_categories(
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    try:
        return load_categories(store, cache)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("", response_model=CategoryOut)
def add_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, CATEGORIES):
        try:
            category = create_category(store, payload)
        except StoreError as e:
            raise failure(db, request, action="CATEGORY_CREATE", resource="categories",
                          status_code=502, detail=str(e), meta={"name": payload.name})

    write_log(db, action="CATEGORY_CREATE", resource="categories", ip=client_ip(request), meta={"id": category.id})
    return category


@router.put("/{category_id}", response_model=CategoryOut)
def rename_category(
    category_id: int,
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    with invalidate_after(cache, CATEGORIES):
        try:
            category = update_category(store, category_id, payload)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Category not found")
        except StoreError as e:
            raise failure(db, request, action="CATEGORY_UPDATE", resource="categories",
                          status_code=502, detail=str(e), meta={"id": category_id})

    write_log(db, action="CATEGORY_UPDATE", resource="categories", ip=client_ip(request), meta={"id": category_id})
    return category


@router.delete("/{category_id}")
def remove_category(
    category_id: int,
    request: Request,
    policy: Optional[DeletePolicy] = Query(None, description="Override CATEGORY_DELETE_POLICY"),
    db: Session = Depends(get_db),
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
):
    policy = policy or settings.CATEGORY_DELETE_POLICY
    with invalidate_after(cache, CATEGORIES, PRODUCTS):
        try:
            touched = delete_category(store, category_id, policy)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Category not found")
        except ReferenceInUseError as e:
            raise failure(db, request, action="CATEGORY_DELETE", resource="categories",
                          status_code=409, detail=str(e), meta={"id": category_id, "policy": policy})
        except StoreError as e:
            raise failure(db, request, action="CATEGORY_DELETE", resource="categories",
                          status_code=502, detail=str(e), meta={"id": category_id, "policy": policy})

    write_log(db, action="CATEGORY_DELETE", resource="categories", ip=client_ip(request),
              meta={"id": category_id, "policy": policy, "products": touched})
    return {"detail": f"Category {category_id} deleted", "products_affected": touched}
