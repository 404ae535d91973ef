# backend/services/orders.py
"""Order intents: take stock for every line and redeem the coupon as one unit.

All steps run in a single database transaction on the session handed in by
the caller. Nothing is committed until every line has been subtracted and the
coupon has been redeemed, so other readers never see a half-placed order. Any
failure rolls the whole transaction back.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from errors import ErrorType
from exceptions import AppException
from models.coupon import CouponUsage
from models.order import Order, OrderItem
from models.product import Product
from models.variant import ProductVariant
from services.coupons import CouponService
from services.inventory import InventoryService
from utils.tokenJWT import Principal

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        db: Session,
        inventory: Optional[InventoryService] = None,
        coupons: Optional[CouponService] = None,
    ):
        self.db = db
        self.inventory = inventory or InventoryService(db)
        self.coupons = coupons or CouponService(db)

    def _priced_lines(self, lines: Iterable) -> List[dict]:
        priced = []
        for line in lines:
            if line.quantity is None or line.quantity <= 0:
                raise AppException(ErrorType.VALIDATION_ERROR, "Line quantity must be > 0")
            variant = self.db.get(ProductVariant, line.variant_id)
            if variant is None or not variant.is_active:
                raise AppException(ErrorType.NOT_FOUND, f"Variant {line.variant_id} not found")
            product: Product = variant.product
            if product is None or not product.is_active:
                raise AppException(ErrorType.NOT_FOUND, f"Product of variant {line.variant_id} not found")

            unit_price = variant.price_override if variant.price_override is not None else product.effective_price
            priced.append({
                "variant_id": variant.id,
                "product_id": product.id,
                "qty": line.quantity,
                "unit_price": unit_price,
            })
        return priced

    def _abort(self, actor: Principal, applied: List[dict], coupon_code: Optional[str]):
        try:
            self.db.rollback()
        except SQLAlchemyError as exc:
            # The database may still hold these writes; someone has to look at them
            logger.error(
                "Order intent rollback failed for user %s; applied lines=%s coupon=%s; manual reconciliation required",
                actor.user_id if actor else None, applied, coupon_code,
            )
            raise AppException(ErrorType.STORAGE_UNAVAILABLE, "Rollback failed; order state needs reconciliation") from exc

    def place_order_intent(
        self,
        actor: Principal,
        lines: List,
        coupon_code: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Order:
        if actor is None:
            raise AppException(ErrorType.FORBIDDEN, "Forbidden")
        if not lines:
            raise AppException(ErrorType.VALIDATION_ERROR, "An order needs at least one line")

        # Everything below up to commit is one transaction
        priced = self._priced_lines(lines)
        subtotal = round(sum(p["unit_price"] * p["qty"] for p in priced), 2)

        applied: List[dict] = []
        try:
            order = Order(
                user_id=actor.user_id, status="committed",
                subtotal=subtotal, discount_amount=0.0, total_amount=subtotal,
            )
            self.db.add(order)
            self.db.flush()

            for p in priced:
                self.inventory.apply_adjustment(
                    p["variant_id"], p["qty"], "subtract",
                    user_id=actor.user_id, reason=f"Order {order.id}",
                    movement_type="SALE", order_id=order.id,
                )
                applied.append({"variant_id": p["variant_id"], "qty": p["qty"]})
                self.db.add(OrderItem(order_id=order.id, **p))

            if coupon_code:
                check = self.coupons.validate_coupon(
                    coupon_code, subtotal, now=now, user_id=actor.user_id,
                    product_ids=[p["product_id"] for p in priced], current_order_id=order.id,
                )
                check.raise_for_reason()
                self.coupons.apply_redemption(check.coupon.id)

                order.coupon_id = check.coupon.id
                order.discount_amount = check.discount_amount
                order.total_amount = round(subtotal - check.discount_amount, 2)
                self.db.add(CouponUsage(
                    coupon_id=check.coupon.id, order_id=order.id, user_id=actor.user_id,
                    discount_amount=check.discount_amount, order_total=subtotal,
                ))

            self.db.commit()
        except AppException:
            self._abort(actor, applied, coupon_code)
            raise
        except SQLAlchemyError as exc:
            self._abort(actor, applied, coupon_code)
            raise AppException(ErrorType.STORAGE_UNAVAILABLE, "Storage unavailable") from exc

        logger.info(
            "Order %s committed for user %s: %d line(s), total %.2f",
            order.id, actor.user_id, len(priced), order.total_amount,
        )
        return self.get_order(actor, order.id)

    def get_order(self, actor: Principal, order_id: int) -> Order:
        order = (
            self.db.query(Order)
            .options(joinedload(Order.items).joinedload(OrderItem.product), joinedload(Order.coupon))
            .filter(Order.id == order_id)
            .first()
        )
        # Customers only see their own orders
        if order is None or (not actor.is_staff and order.user_id != actor.user_id):
            raise AppException(ErrorType.NOT_FOUND, f"Order {order_id} not found")
        return order

    def list_orders(self, actor: Principal, page: int = 1, page_size: int = 20):
        query = self.db.query(Order)
        if not actor.is_staff:
            query = query.filter(Order.user_id == actor.user_id)
        total = query.count()
        items = (
            query.options(joinedload(Order.items).joinedload(OrderItem.product), joinedload(Order.coupon))
            .order_by(Order.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total
