# backend/schemas/variant.py
from pydantic import Field
from typing import Optional

from schemas.product import ORMBase, StrictPayload


class VariantCreate(StrictPayload):
    size_id: Optional[int] = None
    color_id: Optional[int] = None
    # Derived from the product SKU, size and color when omitted
    sku: Optional[str] = Field(default=None, min_length=1)
    stock_quantity: int = Field(default=0, ge=0)
    price_override: Optional[float] = Field(default=None, ge=0)


class VariantOut(ORMBase):
    id: int
    product_id: int
    size_id: Optional[int] = None
    color_id: Optional[int] = None
    sku: str
    stock_quantity: int
    price_override: Optional[float] = None
    is_active: bool
