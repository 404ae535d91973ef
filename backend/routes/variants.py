# backend/routes/variants.py
from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import Principal, get_current_user, get_optional_user, sees_inactive
from utils.audit import write_log, client_ip
from services.inventory import InventoryService
import schemas.variant as variant_schemas

router = APIRouter(prefix="/variants", tags=["Variants"])


@router.get("/{variant_id}", response_model=variant_schemas.VariantOut)
def get_variant(
    variant_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(get_optional_user),
):
    return InventoryService(db).get_variant(variant_id, include_inactive=sees_inactive(current_user))


# Idempotent soft delete
@router.delete("/{variant_id}", response_model=variant_schemas.VariantOut)
def deactivate_variant(
    variant_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    variant = InventoryService(db).deactivate_variant(current_user, variant_id)
    write_log(
        db, actor=current_user, action="VARIANT_DEACTIVATE", resource="variants",
        ip=client_ip(request), meta={"id": variant.id},
    )
    return variant
