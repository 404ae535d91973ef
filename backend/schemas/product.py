# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Payload schemas refuse fields they do not declare
class StrictPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")


# Schema for creating a new product
class ProductCreate(StrictPayload):
    name: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    # Generated from the name when omitted
    slug: Optional[str] = None
    description: Optional[str] = None
    price_regular: float = Field(ge=0)
    price_sale: Optional[float] = Field(default=None, ge=0)
    is_active: bool = True
    is_featured: bool = False
    category_id: Optional[int] = None
    brand_id: Optional[int] = None

    @model_validator(mode="after")
    def _sale_not_above_regular(self):
        if self.price_sale is not None and self.price_sale > self.price_regular:
            raise ValueError("price_sale must not exceed price_regular")
        return self


# Schema for partial product updates
class ProductUpdate(StrictPayload):
    """Every mutable product field; anything else is rejected."""
    name: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price_regular: Optional[float] = Field(None, ge=0)
    price_sale: Optional[float] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    category_id: Optional[int] = None
    brand_id: Optional[int] = None


# Full product representation including ID
class ProductOut(ORMBase):
    id: int
    name: str
    slug: str
    sku: str
    description: Optional[str] = None
    price_regular: float
    price_sale: Optional[float] = None
    is_active: bool
    is_featured: bool
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    cover_image_url: Optional[str] = None


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int
