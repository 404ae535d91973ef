# backend/routes/brands.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import Principal, get_current_user, get_optional_user, ensure_staff, sees_inactive
from utils.audit import write_log, client_ip
from services.catalog import CatalogService
import schemas.brand as brand_schemas

router = APIRouter(prefix="/brands", tags=["Brands"])


@router.get("", response_model=List[brand_schemas.BrandOut])
def list_brands(
    featured: Optional[bool] = Query(None),
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    if include_inactive:
        ensure_staff(current_user)
    return CatalogService(db).list_brands(include_inactive=include_inactive, featured=featured)


@router.get("/{brand_id}", response_model=brand_schemas.BrandOut)
def get_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    return CatalogService(db).get_brand(brand_id, include_inactive=sees_inactive(current_user))


@router.post("", response_model=brand_schemas.BrandOut, status_code=201)
def create_brand(
    payload: brand_schemas.BrandCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    brand = CatalogService(db).create_brand(current_user, payload)
    write_log(
        db, actor=current_user, action="BRAND_CREATE", resource="brands",
        ip=client_ip(request), meta={"id": brand.id, "slug": brand.slug},
    )
    return brand


@router.patch("/{brand_id}", response_model=brand_schemas.BrandOut)
def update_brand(
    brand_id: int,
    payload: brand_schemas.BrandUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    brand = CatalogService(db).update_brand(current_user, brand_id, payload)
    write_log(
        db, actor=current_user, action="BRAND_EDIT", resource="brands",
        ip=client_ip(request), meta={"id": brand.id, "fields": sorted(payload.model_fields_set)},
    )
    return brand


@router.delete("/{brand_id}", response_model=brand_schemas.BrandOut)
def deactivate_brand(
    brand_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    brand = CatalogService(db).deactivate_brand(current_user, brand_id)
    write_log(
        db, actor=current_user, action="BRAND_DEACTIVATE", resource="brands",
        ip=client_ip(request), meta={"id": brand.id},
    )
    return brand
