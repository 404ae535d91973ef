# backend/models/stock.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False, index=True)
    # Subject of the identity provider token that caused the movement
    user_id = Column(String(64), nullable=True)

    # Movement classification (SET, ADD, SUBTRACT, SALE)
    type = Column(String, nullable=False)

    # Signed change and the quantities on both sides of it
    qty = Column(Integer, nullable=False)
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)

    reason = Column(String, nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    variant = relationship("ProductVariant")
