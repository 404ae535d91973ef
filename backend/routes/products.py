# backend/routes/products.py
from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import Principal, get_current_user, get_optional_user, ensure_staff, sees_inactive
from utils.audit import write_log, client_ip
from services.catalog import CatalogService
from services.images import ImageService
from services.inventory import InventoryService
import schemas.product as product_schemas
import schemas.image as image_schemas
import schemas.variant as variant_schemas

router = APIRouter(prefix="/products", tags=["Products"])


# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=product_schemas.ProductListPage)
def list_products(
    name: Optional[str] = Query(None),
    category_id: Optional[int] = Query(None),
    brand_id: Optional[int] = Query(None),
    featured: Optional[bool] = Query(None),
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    # Inactive products are back-office data
    if include_inactive:
        ensure_staff(current_user)

    items, total = CatalogService(db).list_products(
        name=name, category_id=category_id, brand_id=brand_id, featured=featured,
        include_inactive=include_inactive, page=page, page_size=page_size,
    )
    serialized = [product_schemas.ProductOut.model_validate(p) for p in items]
    return {"items": serialized, "total": total, "page": page, "page_size": page_size}


@router.get("/slug/{slug}", response_model=product_schemas.ProductOut)
def get_product_by_slug(slug: str, db: Session = Depends(get_db)):
    return CatalogService(db).get_product_by_slug(slug)


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=product_schemas.ProductOut)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    return CatalogService(db).get_product(product_id, include_inactive=sees_inactive(current_user))


@router.post("", response_model=product_schemas.ProductOut, status_code=201)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    product = CatalogService(db).create_product(current_user, payload)
    write_log(
        db, actor=current_user, action="PRODUCT_CREATE", resource="products",
        ip=client_ip(request), meta={"id": product.id, "sku": product.sku, "slug": product.slug},
    )
    return product


@router.patch("/{product_id}", response_model=product_schemas.ProductOut)
def edit_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    product = CatalogService(db).update_product(current_user, product_id, payload)
    write_log(
        db, actor=current_user, action="PRODUCT_EDIT", resource="products",
        ip=client_ip(request), meta={"id": product.id, "fields": sorted(payload.model_fields_set)},
    )
    return product


# =========================
# SOFT DELETE
# =========================
@router.delete("/{product_id}", response_model=product_schemas.ProductOut)
def deactivate_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    product = CatalogService(db).deactivate_product(current_user, product_id)
    write_log(
        db, actor=current_user, action="PRODUCT_DEACTIVATE", resource="products",
        ip=client_ip(request), meta={"id": product.id},
    )
    return product


# =========================
# IMAGES
# =========================
@router.get("/{product_id}/images", response_model=List[image_schemas.ImageOut])
def list_images(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    CatalogService(db).get_product(product_id, include_inactive=sees_inactive(current_user))
    return ImageService(db).list_images(product_id)


@router.post("/{product_id}/images", response_model=image_schemas.ImageOut, status_code=201)
def add_image(
    product_id: int,
    payload: image_schemas.ImageCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    image = ImageService(db).add_image(current_user, product_id, payload)
    write_log(
        db, actor=current_user, action="IMAGE_ADD", resource="images",
        ip=client_ip(request), meta={"id": image.id, "product_id": product_id},
    )
    return image


# =========================
# VARIANTS
# =========================
@router.get("/{product_id}/variants", response_model=List[variant_schemas.VariantOut])
def list_variants(
    product_id: int,
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    if include_inactive:
        ensure_staff(current_user)
    CatalogService(db).get_product(product_id, include_inactive=sees_inactive(current_user))
    return InventoryService(db).list_variants(product_id, include_inactive=include_inactive)


@router.post("/{product_id}/variants", response_model=variant_schemas.VariantOut, status_code=201)
def add_variant(
    product_id: int,
    payload: variant_schemas.VariantCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    variant = InventoryService(db).create_variant(current_user, product_id, payload)
    write_log(
        db, actor=current_user, action="VARIANT_CREATE", resource="variants",
        ip=client_ip(request), meta={"id": variant.id, "sku": variant.sku},
    )
    return variant
