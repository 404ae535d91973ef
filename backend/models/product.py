# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# Catalog entry sold in the storefront. Stock lives on its variants.
# Soft-deleted through is_active; rows are never removed so slugs and SKUs
# are never handed out twice.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    sku = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)

    # Prices are checked by the database as well as by the service layer.
    price_regular = Column(Float, CheckConstraint("price_regular >= 0"), nullable=False)
    price_sale = Column(Float, CheckConstraint("price_sale IS NULL OR price_sale >= 0"), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    brand = relationship("Brand", back_populates="products")
    variants = relationship("ProductVariant", back_populates="product")
    images = relationship("ProductImage", back_populates="product", order_by="ProductImage.sort_order")

    @property
    def effective_price(self) -> float:
        return self.price_sale if self.price_sale is not None else self.price_regular

    @property
    def cover_image_url(self):
        active = [img for img in self.images if img.is_active]
        if not active:
            return None
        return min(active, key=lambda img: (img.sort_order, img.id)).url


# Image reference kept in external object storage.
# The active image with the lowest sort_order is the cover.
class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    url = Column(String, nullable=False)
    alt_text = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", back_populates="images")
