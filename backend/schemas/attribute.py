# backend/schemas/attribute.py
from pydantic import Field
from typing import Optional

from schemas.product import ORMBase, StrictPayload


class SizeCreate(StrictPayload):
    name: str = Field(min_length=1)
    sort_order: int = 0


class SizeOut(ORMBase):
    id: int
    name: str
    sort_order: int


class ColorCreate(StrictPayload):
    name: str = Field(min_length=1)
    hex: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class ColorOut(ORMBase):
    id: int
    name: str
    hex: Optional[str] = None
