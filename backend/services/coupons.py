# backend/services/coupons.py
"""Coupon validation and redemption.

Validation is read-only. Redemption is a single conditional increment, so the
limit is re-checked by the database in the same statement that consumes a use:

    UPDATE coupons SET used_count = used_count + 1
    WHERE id = :id AND (usage_limit IS NULL OR used_count < usage_limit)
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from database import transaction
from errors import ErrorType
from exceptions import AppException
from models.coupon import Coupon, CouponUsage, DiscountType
from models.order import Order
from schemas.coupon import CouponCreate, CouponUpdate
from utils.tokenJWT import Principal, ensure_staff

logger = logging.getLogger(__name__)

REASON_MESSAGES = {
    ErrorType.COUPON_NOT_FOUND: "Coupon not found",
    ErrorType.COUPON_EXPIRED: "Coupon is not valid at this time",
    ErrorType.COUPON_MINIMUM_NOT_MET: "Cart total is below the coupon minimum",
    ErrorType.COUPON_LIMIT_REACHED: "Coupon usage limit reached",
    ErrorType.COUPON_USER_LIMIT_REACHED: "You have already used this coupon the maximum number of times",
    ErrorType.COUPON_FIRST_ORDER_ONLY: "Coupon is only valid on a first order",
    ErrorType.COUPON_NOT_APPLICABLE: "Coupon does not apply to the products in this cart",
}


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_discount(coupon: Coupon, cart_total: float) -> float:
    if coupon.discount_type == DiscountType.PERCENTAGE:
        amount = cart_total * coupon.discount_value / 100
    elif coupon.discount_type == DiscountType.FIXED_AMOUNT:
        amount = min(coupon.discount_value, cart_total)
    else:
        # Free shipping is priced by the shipping step, not here
        amount = 0.0
    return round(amount, 2)


@dataclass
class CouponValidation:
    valid: bool
    coupon: Optional[Coupon] = None
    reason: Optional[ErrorType] = None
    discount_amount: float = 0.0

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES.get(self.reason) if self.reason else None

    def raise_for_reason(self):
        if not self.valid:
            raise AppException(self.reason, self.message)


class CouponService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, coupon_id: int) -> Coupon:
        coupon = self.db.get(Coupon, coupon_id)
        if coupon is None:
            raise AppException(ErrorType.COUPON_NOT_FOUND, f"Coupon {coupon_id} not found")
        return coupon

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return self.db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()

    # =========================
    # ADMIN
    # =========================
    def create_coupon(self, actor: Principal, payload: CouponCreate) -> Coupon:
        ensure_staff(actor)
        code = normalize_code(payload.code)
        if self.get_by_code(code):
            raise AppException(ErrorType.DUPLICATE_KEY, f"Coupon code '{code}' already exists")

        coupon = Coupon(
            code=code, name=payload.name, description=payload.description,
            discount_type=DiscountType(payload.discount_type), discount_value=payload.discount_value,
            minimum_amount=payload.minimum_amount, usage_limit=payload.usage_limit, used_count=0,
            usage_limit_per_user=payload.usage_limit_per_user,
            first_time_customers_only=payload.first_time_customers_only,
            applicable_products=payload.applicable_products, excluded_products=payload.excluded_products,
            valid_from=as_utc(payload.valid_from), valid_to=as_utc(payload.valid_to),
            is_active=payload.is_active,
        )
        with transaction(self.db):
            self.db.add(coupon)
        self.db.refresh(coupon)
        return coupon

    def update_coupon(self, actor: Principal, coupon_id: int, payload: CouponUpdate) -> Coupon:
        ensure_staff(actor)
        coupon = self._get(coupon_id)
        changes = payload.model_dump(exclude_unset=True)

        if "discount_type" in changes:
            if changes["discount_type"] is None:
                raise AppException(ErrorType.VALIDATION_ERROR, "'discount_type' cannot be null")
            changes["discount_type"] = DiscountType(changes["discount_type"])
        for field in ("discount_value", "first_time_customers_only"):
            if field in changes and changes[field] is None:
                raise AppException(ErrorType.VALIDATION_ERROR, f"'{field}' cannot be null")
        for field in ("valid_from", "valid_to"):
            if field in changes:
                changes[field] = as_utc(changes[field])

        discount_type = changes.get("discount_type", coupon.discount_type)
        discount_value = changes.get("discount_value", coupon.discount_value)
        if discount_type == DiscountType.PERCENTAGE and discount_value > 100:
            raise AppException(ErrorType.VALIDATION_ERROR, "percentage discount cannot exceed 100")

        valid_from = changes.get("valid_from", as_utc(coupon.valid_from))
        valid_to = changes.get("valid_to", as_utc(coupon.valid_to))
        if valid_from and valid_to and valid_from > valid_to:
            raise AppException(ErrorType.VALIDATION_ERROR, "valid_from must not be after valid_to")

        limit = changes.get("usage_limit", coupon.usage_limit)
        if limit is not None and limit < coupon.used_count:
            raise AppException(
                ErrorType.VALIDATION_ERROR,
                f"usage_limit {limit} is below the {coupon.used_count} redemptions already made",
            )

        with transaction(self.db):
            for field, value in changes.items():
                setattr(coupon, field, value)
        self.db.refresh(coupon)
        return coupon

    def deactivate_coupon(self, actor: Principal, coupon_id: int) -> Coupon:
        ensure_staff(actor)
        coupon = self._get(coupon_id)
        if coupon.is_active:
            with transaction(self.db):
                coupon.is_active = False
            self.db.refresh(coupon)
        return coupon

    def get_coupon(self, coupon_id: int) -> Coupon:
        return self._get(coupon_id)

    def list_coupons(self, active_only: bool = False, page: int = 1, page_size: int = 20) -> Tuple[List[Coupon], int]:
        query = self.db.query(Coupon)
        if active_only:
            query = query.filter(Coupon.is_active.is_(True))
        total = query.count()
        items = query.order_by(Coupon.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    def list_usages(self, coupon_id: int) -> List[CouponUsage]:
        self._get(coupon_id)
        return (
            self.db.query(CouponUsage)
            .filter(CouponUsage.coupon_id == coupon_id)
            .order_by(CouponUsage.id.desc())
            .all()
        )

    # =========================
    # VALIDATION / REDEMPTION
    # =========================
    def validate_coupon(
        self,
        code: str,
        cart_total: float,
        now: Optional[datetime] = None,
        user_id: Optional[str] = None,
        product_ids: Optional[Iterable[int]] = None,
        current_order_id: Optional[int] = None,
    ) -> CouponValidation:
        """Check a code against a cart. First failing check wins; nothing is written.

        Order of checks: active, validity window, minimum amount, global limit,
        then the per-customer restrictions (per-user limit, first order only)
        and finally the product restrictions. Customer checks need ``user_id``
        and product checks need ``product_ids``; each is skipped without it.
        ``current_order_id`` names an order being placed in the same
        transaction so it does not count as a previous order.
        """
        now = as_utc(now) or datetime.now(timezone.utc)

        coupon = self.get_by_code(code)
        if coupon is None or not coupon.is_active:
            return CouponValidation(valid=False, reason=ErrorType.COUPON_NOT_FOUND)

        valid_from, valid_to = as_utc(coupon.valid_from), as_utc(coupon.valid_to)
        if (valid_from and now < valid_from) or (valid_to and now > valid_to):
            return CouponValidation(valid=False, coupon=coupon, reason=ErrorType.COUPON_EXPIRED)

        if coupon.minimum_amount is not None and cart_total < coupon.minimum_amount:
            return CouponValidation(valid=False, coupon=coupon, reason=ErrorType.COUPON_MINIMUM_NOT_MET)

        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            return CouponValidation(valid=False, coupon=coupon, reason=ErrorType.COUPON_LIMIT_REACHED)

        reason = self._restriction_failure(coupon, user_id, product_ids, current_order_id)
        if reason is not None:
            return CouponValidation(valid=False, coupon=coupon, reason=reason)

        return CouponValidation(valid=True, coupon=coupon, discount_amount=compute_discount(coupon, cart_total))

    def _restriction_failure(
        self,
        coupon: Coupon,
        user_id: Optional[str],
        product_ids: Optional[Iterable[int]],
        current_order_id: Optional[int],
    ) -> Optional[ErrorType]:
        if user_id is not None:
            if coupon.usage_limit_per_user is not None:
                used_by_user = (
                    self.db.query(func.count(CouponUsage.id))
                    .filter(CouponUsage.coupon_id == coupon.id, CouponUsage.user_id == user_id)
                    .scalar()
                )
                if used_by_user >= coupon.usage_limit_per_user:
                    return ErrorType.COUPON_USER_LIMIT_REACHED

            if coupon.first_time_customers_only:
                previous = self.db.query(func.count(Order.id)).filter(Order.user_id == user_id)
                if current_order_id is not None:
                    previous = previous.filter(Order.id != current_order_id)
                if previous.scalar() > 0:
                    return ErrorType.COUPON_FIRST_ORDER_ONLY

        if product_ids is not None:
            cart = set(product_ids)
            # An empty applicable list means every product qualifies
            if coupon.applicable_products and not cart & set(coupon.applicable_products):
                return ErrorType.COUPON_NOT_APPLICABLE
            if coupon.excluded_products and cart & set(coupon.excluded_products):
                return ErrorType.COUPON_NOT_APPLICABLE
        return None

    def get_coupon_analytics(self, coupon_id: int) -> dict:
        coupon = self._get(coupon_id)
        usage_count, discount_total, revenue = (
            self.db.query(
                func.count(CouponUsage.id),
                func.coalesce(func.sum(CouponUsage.discount_amount), 0.0),
                func.coalesce(func.sum(CouponUsage.order_total), 0.0),
            )
            .filter(CouponUsage.coupon_id == coupon_id)
            .one()
        )
        return {
            "coupon_id": coupon.id,
            "coupon_code": coupon.code,
            "usage_count": usage_count,
            "discount_amount": round(discount_total, 2),
            "revenue_generated": round(revenue, 2),
            "average_order_value": round(revenue / usage_count, 2) if usage_count else 0.0,
        }

    def apply_redemption(self, coupon_id: int) -> None:
        """Consume one use inside the caller's transaction."""
        table = Coupon.__table__
        stmt = (
            update(table)
            .where(
                table.c.id == coupon_id,
                or_(table.c.usage_limit.is_(None), table.c.used_count < table.c.usage_limit),
            )
            .values(used_count=table.c.used_count + 1)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            if self.db.get(Coupon, coupon_id) is None:
                raise AppException(ErrorType.COUPON_NOT_FOUND, f"Coupon {coupon_id} not found")
            raise AppException(ErrorType.COUPON_LIMIT_REACHED, REASON_MESSAGES[ErrorType.COUPON_LIMIT_REACHED])

    def redeem_coupon(self, actor: Principal, coupon_id: int) -> Coupon:
        ensure_staff(actor)
        with transaction(self.db):
            self.apply_redemption(coupon_id)
        coupon = self._get(coupon_id)
        self.db.refresh(coupon)
        logger.info("Coupon %s redeemed (%s/%s)", coupon.code, coupon.used_count, coupon.usage_limit)
        return coupon
