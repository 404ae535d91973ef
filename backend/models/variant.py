# backend/models/variant.py
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Purchasable size/color combination of a product with its own stock count.
class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    size_id = Column(Integer, ForeignKey("sizes.id"), nullable=True)
    color_id = Column(Integer, ForeignKey("colors.id"), nullable=True)

    sku = Column(String, unique=True, nullable=False, index=True)

    # Only changed through the stock ledger's conditional updates.
    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=False, default=0)
    price_override = Column(Float, CheckConstraint("price_override IS NULL OR price_override >= 0"), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="variants")
    size = relationship("Size")
    color = relationship("Color")
