# backend/models/coupon.py
import enum

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, CheckConstraint, Enum, JSON, func
from sqlalchemy.orm import relationship
from database import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_SHIPPING = "free_shipping"


# Discount code. The code is stored upper-cased so lookups are case-insensitive.
class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    description = Column(String, nullable=True)

    discount_type = Column(
        Enum(DiscountType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    discount_value = Column(Float, CheckConstraint("discount_value >= 0"), nullable=False, default=0)
    minimum_amount = Column(Float, nullable=True)

    # used_count only moves through the conditional increment in CouponService.apply_redemption
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, CheckConstraint("used_count >= 0"), nullable=False, default=0)
    # Counted from coupon_usages rows of the caller, not a counter column
    usage_limit_per_user = Column(Integer, nullable=True)

    # Restrictions checked after the limits; product lists hold product ids
    first_time_customers_only = Column(Boolean, nullable=False, default=False)
    applicable_products = Column(JSON, nullable=True)
    excluded_products = Column(JSON, nullable=True)

    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_to = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    usages = relationship("CouponUsage", back_populates="coupon")

    __table_args__ = (
        CheckConstraint("usage_limit IS NULL OR used_count <= usage_limit", name="ck_coupon_usage_within_limit"),
    )


# One row per successful redemption
class CouponUsage(Base):
    __tablename__ = "coupon_usages"

    id = Column(Integer, primary_key=True, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    discount_amount = Column(Float, nullable=False, default=0)
    order_total = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    coupon = relationship("Coupon", back_populates="usages")
