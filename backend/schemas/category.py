# backend/schemas/category.py
from pydantic import Field
from typing import Optional

from schemas.product import ORMBase, StrictPayload


class CategoryCreate(StrictPayload):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(StrictPayload):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    sort_order: Optional[int] = None


class CategoryOut(ORMBase):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    sort_order: int
    is_active: bool
