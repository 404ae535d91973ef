# backend/services/inventory.py
"""Variant stock ledger.

Stock is never read into Python, changed and written back. Every adjustment is
one UPDATE whose WHERE clause carries the precondition, so the database
serializes concurrent writers on the variant row:

    subtract: SET stock_quantity = stock_quantity - :q WHERE id = :id AND stock_quantity >= :q
    add:      SET stock_quantity = stock_quantity + :q WHERE id = :id
    set:      SET stock_quantity = :q WHERE id = :id

A subtract that would go below zero matches no row and is reported as
InsufficientStock; nothing is clamped.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import settings
from database import transaction
from errors import ErrorType
from exceptions import AppException
from models.catalog import Color, Size
from models.product import Product
from models.stock import StockMovement
from models.variant import ProductVariant
from schemas.variant import VariantCreate
from utils.slug import generate_variant_sku
from utils.tokenJWT import Principal, ensure_staff

logger = logging.getLogger(__name__)

ADJUST_MODES = ("set", "add", "subtract")


class InventoryService:
    def __init__(self, db: Session, low_stock_threshold: Optional[int] = None):
        self.db = db
        self.low_stock_threshold = (
            low_stock_threshold if low_stock_threshold is not None else settings.LOW_STOCK_THRESHOLD
        )

    def _get_variant(self, variant_id: int, active_only: bool = False) -> ProductVariant:
        variant = self.db.get(ProductVariant, variant_id)
        if variant is None or (active_only and not variant.is_active):
            raise AppException(ErrorType.NOT_FOUND, f"Variant {variant_id} not found")
        return variant

    # =========================
    # VARIANTS
    # =========================
    def create_variant(self, actor: Principal, product_id: int, payload: VariantCreate) -> ProductVariant:
        ensure_staff(actor)
        product = self.db.get(Product, product_id)
        if product is None:
            raise AppException(ErrorType.NOT_FOUND, f"Product {product_id} not found")
        if not product.is_active:
            raise AppException(ErrorType.VALIDATION_ERROR, f"Product {product_id} is inactive")

        size = color = None
        if payload.size_id is not None:
            size = self.db.get(Size, payload.size_id)
            if size is None:
                raise AppException(ErrorType.NOT_FOUND, f"Size {payload.size_id} not found")
        if payload.color_id is not None:
            color = self.db.get(Color, payload.color_id)
            if color is None:
                raise AppException(ErrorType.NOT_FOUND, f"Color {payload.color_id} not found")

        sku = payload.sku.strip() if payload.sku else generate_variant_sku(
            product.sku, size.name if size else None, color.name if color else None
        )
        if self.db.query(ProductVariant.id).filter(ProductVariant.sku == sku).first():
            raise AppException(ErrorType.DUPLICATE_KEY, f"Variant with sku '{sku}' already exists")

        variant = ProductVariant(
            product_id=product.id, size_id=payload.size_id, color_id=payload.color_id,
            sku=sku, stock_quantity=payload.stock_quantity,
            price_override=payload.price_override, is_active=True,
        )
        with transaction(self.db):
            self.db.add(variant)
        self.db.refresh(variant)
        return variant

    def deactivate_variant(self, actor: Principal, variant_id: int) -> ProductVariant:
        """Soft delete; a variant that is already inactive is returned unchanged."""
        ensure_staff(actor)
        variant = self._get_variant(variant_id)
        if variant.is_active:
            with transaction(self.db):
                variant.is_active = False
            self.db.refresh(variant)
        return variant

    def get_variant(self, variant_id: int, include_inactive: bool = True) -> ProductVariant:
        return self._get_variant(variant_id, active_only=not include_inactive)

    def list_variants(self, product_id: int, include_inactive: bool = False) -> List[ProductVariant]:
        query = self.db.query(ProductVariant).filter(ProductVariant.product_id == product_id)
        if not include_inactive:
            query = query.filter(ProductVariant.is_active.is_(True))
        return query.order_by(ProductVariant.id.asc()).all()

    # =========================
    # STOCK
    # =========================
    def apply_adjustment(
        self,
        variant_id: int,
        quantity: int,
        mode: str,
        *,
        user_id: Optional[str] = None,
        reason: Optional[str] = None,
        movement_type: Optional[str] = None,
        order_id: Optional[int] = None,
    ) -> StockMovement:
        """Run one conditional update and record the movement, without committing.

        The caller owns the transaction; on InsufficientStock nothing has been
        written by this call.
        """
        if mode not in ADJUST_MODES:
            raise AppException(ErrorType.VALIDATION_ERROR, f"Unknown adjustment mode '{mode}'")
        if quantity is None or quantity < 0:
            raise AppException(ErrorType.VALIDATION_ERROR, "Quantity must be >= 0")

        variant = self._get_variant(variant_id, active_only=True)
        table = ProductVariant.__table__
        stmt = update(table).where(table.c.id == variant_id, table.c.is_active.is_(True))

        previous = None
        if mode == "add":
            stmt = stmt.values(stock_quantity=table.c.stock_quantity + quantity)
        elif mode == "subtract":
            stmt = stmt.where(table.c.stock_quantity >= quantity).values(
                stock_quantity=table.c.stock_quantity - quantity
            )
        else:
            # Overwrite on purpose; lock the row so the logged previous value is exact
            previous = (
                self.db.query(ProductVariant.stock_quantity)
                .filter(ProductVariant.id == variant_id)
                .with_for_update()
                .scalar()
            )
            stmt = stmt.values(stock_quantity=quantity)

        result = self.db.execute(stmt)
        if result.rowcount == 0:
            self.db.refresh(variant)
            if not variant.is_active:
                raise AppException(ErrorType.NOT_FOUND, f"Variant {variant_id} not found")
            raise AppException(
                ErrorType.INSUFFICIENT_STOCK,
                f"Insufficient stock for variant {variant.sku}: requested {quantity}, available {variant.stock_quantity}",
            )

        # Re-read inside the transaction that now holds the row
        self.db.refresh(variant)
        new_quantity = variant.stock_quantity
        if mode == "add":
            change = quantity
        elif mode == "subtract":
            change = -quantity
        else:
            change = new_quantity - previous
        previous = new_quantity - change

        movement = StockMovement(
            variant_id=variant.id, user_id=user_id, type=movement_type or mode.upper(),
            qty=change, previous_quantity=previous, new_quantity=new_quantity,
            reason=reason, order_id=order_id,
        )
        self.db.add(movement)
        self.db.flush()
        return movement

    def adjust_stock(
        self, actor: Principal, variant_id: int, quantity: int, mode: str, reason: Optional[str] = None
    ) -> StockMovement:
        ensure_staff(actor)
        with transaction(self.db):
            movement = self.apply_adjustment(
                variant_id, quantity, mode, user_id=actor.user_id, reason=reason
            )
        self.db.refresh(movement)
        logger.info(
            "Stock %s on variant %s: %s -> %s",
            mode, variant_id, movement.previous_quantity, movement.new_quantity,
        )
        return movement

    def list_low_stock(self, threshold: Optional[int] = None) -> List[ProductVariant]:
        limit = self.low_stock_threshold if threshold is None else threshold
        return (
            self.db.query(ProductVariant)
            .filter(ProductVariant.is_active.is_(True), ProductVariant.stock_quantity < limit)
            .order_by(ProductVariant.stock_quantity.asc(), ProductVariant.id.asc())
            .all()
        )

    def inventory_stats(self, threshold: Optional[int] = None) -> dict:
        limit = self.low_stock_threshold if threshold is None else threshold
        active = self.db.query(ProductVariant).filter(ProductVariant.is_active.is_(True))
        return {
            "total_variants": active.count(),
            "low_stock": active.filter(ProductVariant.stock_quantity < limit).count(),
            "out_of_stock": active.filter(ProductVariant.stock_quantity == 0).count(),
            "threshold": limit,
        }

    def list_movements(self, variant_id: int, page: int = 1, page_size: int = 20) -> Tuple[List[StockMovement], int]:
        self._get_variant(variant_id)
        query = self.db.query(StockMovement).filter(StockMovement.variant_id == variant_id)
        total = query.count()
        items = (
            query.order_by(StockMovement.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total
