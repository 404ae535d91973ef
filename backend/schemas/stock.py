# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

from schemas.product import StrictPayload

# Allowed adjustment modes
AdjustMode = Literal["set", "add", "subtract"]

# Movement types recorded in the ledger
StockMovementType = Literal["SET", "ADD", "SUBTRACT", "SALE"]


# Request for a manual stock adjustment
class StockAdjustment(StrictPayload):
    mode: AdjustMode
    quantity: int = Field(ge=0)
    reason: Optional[str] = None


# Schema for returning stock movement details
class StockMovementResponse(BaseModel):
    id: int
    variant_id: int
    type: StockMovementType
    qty: int
    previous_quantity: int
    new_quantity: int
    reason: Optional[str] = None
    order_id: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Paginated response for stock movement history
class StockMovementPage(BaseModel):
    items: List[StockMovementResponse]
    total: int
    page: int
    page_size: int


class LowStockItem(BaseModel):
    variant_id: int
    sku: str
    stock_quantity: int
    product_id: int
    product_name: str


class InventoryStats(BaseModel):
    total_variants: int
    low_stock: int
    out_of_stock: int
    threshold: int
