# backend/routes/coupons.py
from typing import List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import Principal, get_current_user, staff_required
from utils.audit import write_log, client_ip
from services.coupons import CouponService
import schemas.coupon as coupon_schemas

router = APIRouter(prefix="/coupons", tags=["Coupons"])


@router.get("", response_model=coupon_schemas.CouponPage)
def list_coupons(
    active_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(staff_required),
):
    items, total = CouponService(db).list_coupons(active_only=active_only, page=page, page_size=page_size)
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# Checkout preview; never consumes a use
@router.post("/validate", response_model=coupon_schemas.CouponValidationOut)
def validate_coupon(
    payload: coupon_schemas.CouponValidateRequest,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    check = CouponService(db).validate_coupon(
        payload.code, payload.cart_total, user_id=current_user.user_id, product_ids=payload.product_ids,
    )
    return {
        "valid": check.valid,
        "reason": check.reason.value if check.reason else None,
        # Details of a code that does not resolve stay hidden
        "coupon": check.coupon if check.valid else None,
        "discount_amount": check.discount_amount,
    }


@router.get("/{coupon_id}", response_model=coupon_schemas.CouponOut)
def get_coupon(coupon_id: int, db: Session = Depends(get_db), current_user: Principal = Depends(staff_required)):
    return CouponService(db).get_coupon(coupon_id)


@router.get("/{coupon_id}/analytics", response_model=coupon_schemas.CouponAnalyticsOut)
def coupon_analytics(coupon_id: int, db: Session = Depends(get_db), current_user: Principal = Depends(staff_required)):
    return CouponService(db).get_coupon_analytics(coupon_id)


@router.get("/{coupon_id}/usages", response_model=List[coupon_schemas.CouponUsageOut])
def list_usages(coupon_id: int, db: Session = Depends(get_db), current_user: Principal = Depends(staff_required)):
    return CouponService(db).list_usages(coupon_id)


@router.post("", response_model=coupon_schemas.CouponOut, status_code=201)
def create_coupon(
    payload: coupon_schemas.CouponCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    coupon = CouponService(db).create_coupon(current_user, payload)
    write_log(
        db, actor=current_user, action="COUPON_CREATE", resource="coupons",
        ip=client_ip(request), meta={"id": coupon.id, "code": coupon.code},
    )
    return coupon


@router.patch("/{coupon_id}", response_model=coupon_schemas.CouponOut)
def update_coupon(
    coupon_id: int,
    payload: coupon_schemas.CouponUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    coupon = CouponService(db).update_coupon(current_user, coupon_id, payload)
    write_log(
        db, actor=current_user, action="COUPON_EDIT", resource="coupons",
        ip=client_ip(request), meta={"id": coupon.id, "fields": sorted(payload.model_fields_set)},
    )
    return coupon


@router.post("/{coupon_id}/redeem", response_model=coupon_schemas.CouponOut)
def redeem_coupon(
    coupon_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    coupon = CouponService(db).redeem_coupon(current_user, coupon_id)
    write_log(
        db, actor=current_user, action="COUPON_REDEEM", resource="coupons",
        ip=client_ip(request), meta={"id": coupon.id, "used_count": coupon.used_count},
    )
    return coupon


@router.delete("/{coupon_id}", response_model=coupon_schemas.CouponOut)
def deactivate_coupon(
    coupon_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    coupon = CouponService(db).deactivate_coupon(current_user, coupon_id)
    write_log(
        db, actor=current_user, action="COUPON_DEACTIVATE", resource="coupons",
        ip=client_ip(request), meta={"id": coupon.id},
    )
    return coupon
