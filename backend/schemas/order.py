from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from schemas.product import StrictPayload


# One requested line of an order intent
class OrderLineIn(StrictPayload):
    variant_id: int
    quantity: int = Field(gt=0)


# Input schema for placing an order intent
class OrderIntentCreate(StrictPayload):
    lines: List[OrderLineIn]
    coupon_code: Optional[str] = None


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    variant_id: int
    product_id: int
    product_name: str
    qty: int
    unit_price: float
    line_total: float


# Output schema representing the committed order
class OrderResponse(BaseModel):
    id: int
    status: str
    subtotal: float
    discount_amount: float
    total_amount: float
    coupon_code: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int
