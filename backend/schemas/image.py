# backend/schemas/image.py
from pydantic import Field
from typing import Optional

from schemas.product import ORMBase, StrictPayload


class ImageCreate(StrictPayload):
    url: str = Field(min_length=1)
    alt_text: Optional[str] = None
    # Appended after the last image when omitted
    sort_order: Optional[int] = Field(default=None, ge=0)


class ImageUpdate(StrictPayload):
    alt_text: Optional[str] = None
    sort_order: Optional[int] = Field(default=None, ge=0)


class ImageOut(ORMBase):
    id: int
    product_id: int
    url: str
    alt_text: Optional[str] = None
    sort_order: int
    is_active: bool
