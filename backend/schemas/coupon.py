# backend/schemas/coupon.py
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import List, Optional, Literal

from schemas.product import ORMBase, StrictPayload

DiscountKind = Literal["percentage", "fixed_amount", "free_shipping"]


def _check_discount(discount_type, discount_value):
    if discount_type == "percentage" and discount_value is not None and discount_value > 100:
        raise ValueError("percentage discount cannot exceed 100")


def _check_window(valid_from, valid_to):
    if valid_from and valid_to and valid_from > valid_to:
        raise ValueError("valid_from must not be after valid_to")


class CouponCreate(StrictPayload):
    code: str = Field(min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None
    discount_type: DiscountKind
    discount_value: float = Field(default=0, ge=0)
    minimum_amount: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=1)
    usage_limit_per_user: Optional[int] = Field(default=None, ge=1)
    first_time_customers_only: bool = False
    applicable_products: Optional[List[int]] = None
    excluded_products: Optional[List[int]] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _consistent(self):
        _check_discount(self.discount_type, self.discount_value)
        _check_window(self.valid_from, self.valid_to)
        return self


class CouponUpdate(StrictPayload):
    """Mutable coupon fields. The code itself is fixed once issued."""
    name: Optional[str] = None
    description: Optional[str] = None
    discount_type: Optional[DiscountKind] = None
    discount_value: Optional[float] = Field(None, ge=0)
    minimum_amount: Optional[float] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    usage_limit_per_user: Optional[int] = Field(None, ge=1)
    first_time_customers_only: Optional[bool] = None
    applicable_products: Optional[List[int]] = None
    excluded_products: Optional[List[int]] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None

    @model_validator(mode="after")
    def _consistent(self):
        _check_discount(self.discount_type, self.discount_value)
        _check_window(self.valid_from, self.valid_to)
        return self


class CouponOut(ORMBase):
    id: int
    code: str
    name: Optional[str] = None
    description: Optional[str] = None
    discount_type: DiscountKind
    discount_value: float
    minimum_amount: Optional[float] = None
    usage_limit: Optional[int] = None
    used_count: int
    usage_limit_per_user: Optional[int] = None
    first_time_customers_only: bool = False
    applicable_products: Optional[List[int]] = None
    excluded_products: Optional[List[int]] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    is_active: bool

    @field_validator("discount_type", mode="before")
    @classmethod
    def _plain_discount_type(cls, value):
        return getattr(value, "value", value)


class CouponValidateRequest(StrictPayload):
    code: str = Field(min_length=1)
    cart_total: float = Field(ge=0)
    # Product restrictions are only checked when the cart contents are sent
    product_ids: Optional[List[int]] = None


class CouponValidationOut(BaseModel):
    valid: bool
    reason: Optional[str] = None
    coupon: Optional[CouponOut] = None
    discount_amount: float = 0


class CouponUsageOut(ORMBase):
    id: int
    coupon_id: int
    order_id: Optional[int] = None
    user_id: Optional[str] = None
    discount_amount: float
    order_total: float
    created_at: Optional[datetime] = None


class CouponAnalyticsOut(BaseModel):
    coupon_id: int
    coupon_code: str
    usage_count: int
    discount_amount: float
    revenue_generated: float
    average_order_value: float


class CouponPage(BaseModel):
    items: List[CouponOut]
    total: int
    page: int
    page_size: int
