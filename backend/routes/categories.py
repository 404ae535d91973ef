# backend/routes/categories.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import Principal, get_current_user, get_optional_user, ensure_staff, sees_inactive
from utils.audit import write_log, client_ip
from services.catalog import CatalogService
import schemas.category as category_schemas

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=List[category_schemas.CategoryOut])
def list_categories(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    if include_inactive:
        ensure_staff(current_user)
    return CatalogService(db).list_categories(include_inactive=include_inactive)


@router.get("/{category_id}", response_model=category_schemas.CategoryOut)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    return CatalogService(db).get_category(category_id, include_inactive=sees_inactive(current_user))


@router.post("", response_model=category_schemas.CategoryOut, status_code=201)
def create_category(
    payload: category_schemas.CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    category = CatalogService(db).create_category(current_user, payload)
    write_log(
        db, actor=current_user, action="CATEGORY_CREATE", resource="categories",
        ip=client_ip(request), meta={"id": category.id, "slug": category.slug},
    )
    return category


@router.patch("/{category_id}", response_model=category_schemas.CategoryOut)
def update_category(
    category_id: int,
    payload: category_schemas.CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    category = CatalogService(db).update_category(current_user, category_id, payload)
    write_log(
        db, actor=current_user, action="CATEGORY_EDIT", resource="categories",
        ip=client_ip(request), meta={"id": category.id, "fields": sorted(payload.model_fields_set)},
    )
    return category


# Soft delete; refused while active products still use the category
@router.delete("/{category_id}", response_model=category_schemas.CategoryOut)
def deactivate_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    category = CatalogService(db).deactivate_category(current_user, category_id)
    write_log(
        db, actor=current_user, action="CATEGORY_DEACTIVATE", resource="categories",
        ip=client_ip(request), meta={"id": category.id},
    )
    return category
