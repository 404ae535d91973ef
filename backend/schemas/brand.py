# backend/schemas/brand.py
from pydantic import Field
from typing import Optional

from schemas.product import ORMBase, StrictPayload

# ISO 3166-1 alpha-2, e.g. "AR"
COUNTRY_PATTERN = r"^[A-Za-z]{2}$"
URL_PATTERN = r"^https?://\S+$"


class BrandCreate(StrictPayload):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)
    website_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)
    country: Optional[str] = Field(default=None, pattern=COUNTRY_PATTERN)
    is_featured: bool = False
    is_active: bool = True


class BrandUpdate(StrictPayload):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    website_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    country: Optional[str] = Field(None, pattern=COUNTRY_PATTERN)
    is_featured: Optional[bool] = None


class BrandOut(ORMBase):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    website_url: Optional[str] = None
    country: Optional[str] = None
    is_featured: bool
    is_active: bool
