import logging
import threading

import pytest
from sqlalchemy.exc import SQLAlchemyError

from errors import ErrorType
from exceptions import AppException
from models.coupon import Coupon, CouponUsage
from models.order import Order
from models.stock import StockMovement
from models.variant import ProductVariant
from schemas.order import OrderLineIn
from services.catalog import CatalogService
from services.orders import OrderService
from utils.tokenJWT import Principal


def _line(variant, quantity):
    return OrderLineIn(variant_id=variant.id, quantity=quantity)


def _snapshot(session_factory, *variants, coupon=None):
    session = session_factory()
    try:
        stock = [session.get(ProductVariant, v.id).stock_quantity for v in variants]
        used = session.get(Coupon, coupon.id).used_count if coupon else None
        return stock, used
    finally:
        session.close()


@pytest.fixture
def two_variants(make_product, make_variant):
    shirt = make_product(price_regular=100.0, price_sale=80.0)
    cap = make_product(price_regular=25.0)
    return make_variant(product=shirt, stock=5), make_variant(product=cap, stock=1)


class TestPlaceOrderIntent:
    def test_success_without_coupon(self, db, customer, session_factory, two_variants):
        shirt, cap = two_variants
        order = OrderService(db).place_order_intent(customer, [_line(shirt, 2), _line(cap, 1)])

        assert order.status == "committed"
        assert order.user_id == "customer-1"
        assert order.subtotal == 185.0
        assert order.discount_amount == 0
        assert order.total_amount == 185.0
        assert sorted((i.variant_id, i.qty, i.unit_price) for i in order.items) == sorted(
            [(shirt.id, 2, 80.0), (cap.id, 1, 25.0)]
        )
        assert _snapshot(session_factory, shirt, cap)[0] == [3, 0]

        sales = db.query(StockMovement).filter(StockMovement.order_id == order.id).all()
        assert sorted((m.variant_id, m.qty, m.type) for m in sales) == sorted(
            [(shirt.id, -2, "SALE"), (cap.id, -1, "SALE")]
        )

    def test_price_override_wins(self, db, customer, make_product, make_variant):
        product = make_product(price_regular=100.0, price_sale=90.0)
        variant = make_variant(product=product, price_override=70.0)
        order = OrderService(db).place_order_intent(customer, [_line(variant, 1)])
        assert order.items[0].unit_price == 70.0

    def test_coupon_applied_and_recorded(self, db, customer, session_factory, two_variants, make_coupon):
        shirt, _ = two_variants
        coupon = make_coupon(code="SAVE10", minimum_amount=50, usage_limit=10)

        order = OrderService(db).place_order_intent(customer, [_line(shirt, 2)], coupon_code="save10")

        assert order.subtotal == 160.0
        assert order.discount_amount == 16.0
        assert order.total_amount == 144.0
        assert order.coupon.code == "SAVE10"
        assert _snapshot(session_factory, shirt, coupon=coupon) == ([3], 1)

        usage = db.query(CouponUsage).filter(CouponUsage.order_id == order.id).one()
        assert (usage.user_id, usage.discount_amount, usage.order_total) == ("customer-1", 16.0, 160.0)

    def test_second_line_failure_rolls_back_first(self, db, customer, session_factory, two_variants):
        shirt, cap = two_variants
        with pytest.raises(AppException) as exc:
            OrderService(db).place_order_intent(customer, [_line(shirt, 2), _line(cap, 3)])

        assert exc.value.error_type == ErrorType.INSUFFICIENT_STOCK
        assert _snapshot(session_factory, shirt, cap)[0] == [5, 1]
        assert db.query(Order).count() == 0
        assert db.query(StockMovement).count() == 0

    def test_coupon_failure_rolls_back_stock(self, db, customer, session_factory, two_variants, make_coupon):
        shirt, _ = two_variants
        coupon = make_coupon(code="BIGSPEND", minimum_amount=1000)

        with pytest.raises(AppException) as exc:
            OrderService(db).place_order_intent(customer, [_line(shirt, 1)], coupon_code="BIGSPEND")

        assert exc.value.error_type == ErrorType.COUPON_MINIMUM_NOT_MET
        assert _snapshot(session_factory, shirt, coupon=coupon) == ([5], 0)
        assert db.query(Order).count() == 0

    def test_exhausted_coupon_rolls_back_stock(self, db, admin, customer, session_factory, two_variants, make_coupon):
        shirt, _ = two_variants
        coupon = make_coupon(code="ONCE", usage_limit=1)
        service = OrderService(db)
        service.place_order_intent(customer, [_line(shirt, 1)], coupon_code="ONCE")

        with pytest.raises(AppException) as exc:
            service.place_order_intent(customer, [_line(shirt, 1)], coupon_code="ONCE")

        assert exc.value.error_type == ErrorType.COUPON_LIMIT_REACHED
        assert _snapshot(session_factory, shirt, coupon=coupon) == ([4], 1)

    def test_first_order_coupon(self, db, customer, session_factory, two_variants, make_coupon):
        shirt, _ = two_variants
        coupon = make_coupon(code="WELCOME", first_time_customers_only=True)
        service = OrderService(db)

        newcomer = Principal(user_id="customer-9", role="customer")
        assert service.place_order_intent(newcomer, [_line(shirt, 1)], coupon_code="WELCOME").coupon_id == coupon.id

        service.place_order_intent(customer, [_line(shirt, 1)])
        with pytest.raises(AppException) as exc:
            service.place_order_intent(customer, [_line(shirt, 1)], coupon_code="WELCOME")
        assert exc.value.error_type == ErrorType.COUPON_FIRST_ORDER_ONLY
        assert _snapshot(session_factory, shirt, coupon=coupon) == ([3], 1)

    def test_per_user_limit_across_orders(self, db, customer, session_factory, two_variants, make_coupon):
        shirt, _ = two_variants
        coupon = make_coupon(code="ONCEEACH", usage_limit_per_user=1)
        service = OrderService(db)
        service.place_order_intent(customer, [_line(shirt, 1)], coupon_code="ONCEEACH")

        with pytest.raises(AppException) as exc:
            service.place_order_intent(customer, [_line(shirt, 1)], coupon_code="ONCEEACH")
        assert exc.value.error_type == ErrorType.COUPON_USER_LIMIT_REACHED
        assert _snapshot(session_factory, shirt, coupon=coupon) == ([4], 1)

        other = Principal(user_id="customer-2", role="customer")
        service.place_order_intent(other, [_line(shirt, 1)], coupon_code="ONCEEACH")
        assert _snapshot(session_factory, shirt, coupon=coupon) == ([3], 2)

    def test_excluded_product_in_cart(self, db, customer, session_factory, two_variants, make_coupon):
        shirt, cap = two_variants
        coupon = make_coupon(code="NOCAPS", excluded_products=[cap.product_id])
        with pytest.raises(AppException) as exc:
            OrderService(db).place_order_intent(customer, [_line(shirt, 1), _line(cap, 1)], coupon_code="NOCAPS")
        assert exc.value.error_type == ErrorType.COUPON_NOT_APPLICABLE
        assert _snapshot(session_factory, shirt, cap, coupon=coupon) == ([5, 1], 0)

    def test_applicable_product_in_cart(self, db, customer, two_variants, make_coupon):
        shirt, cap = two_variants
        make_coupon(code="CAPSONLY", applicable_products=[cap.product_id])
        order = OrderService(db).place_order_intent(
            customer, [_line(shirt, 1), _line(cap, 1)], coupon_code="CAPSONLY"
        )
        assert order.coupon.code == "CAPSONLY"

    def test_unknown_coupon(self, db, customer, session_factory, two_variants):
        shirt, _ = two_variants
        with pytest.raises(AppException) as exc:
            OrderService(db).place_order_intent(customer, [_line(shirt, 1)], coupon_code="GHOST")
        assert exc.value.error_type == ErrorType.COUPON_NOT_FOUND
        assert _snapshot(session_factory, shirt)[0] == [5]

    def test_empty_lines(self, db, customer):
        with pytest.raises(AppException) as exc:
            OrderService(db).place_order_intent(customer, [])
        assert exc.value.error_type == ErrorType.VALIDATION_ERROR

    def test_inactive_product_line(self, db, admin, customer, two_variants):
        shirt, _ = two_variants
        CatalogService(db).deactivate_product(admin, shirt.product_id)
        with pytest.raises(AppException) as exc:
            OrderService(db).place_order_intent(customer, [_line(shirt, 1)])
        assert exc.value.error_type == ErrorType.NOT_FOUND

    def test_failed_rollback_is_escalated(self, db, customer, two_variants, monkeypatch, caplog):
        shirt, cap = two_variants

        def broken_rollback():
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(db, "rollback", broken_rollback)
        with caplog.at_level(logging.ERROR, logger="services.orders"):
            with pytest.raises(AppException) as exc:
                OrderService(db).place_order_intent(customer, [_line(shirt, 2), _line(cap, 3)])

        assert exc.value.error_type == ErrorType.STORAGE_UNAVAILABLE
        assert "manual reconciliation" in caplog.text
        assert f"'variant_id': {shirt.id}" in caplog.text


    def test_concurrent_intents_respect_coupon_limit(self, session_factory, make_product, make_variant, make_coupon):
        variant = make_variant(product=make_product(price_regular=100.0), stock=100)
        coupon = make_coupon(code="FLASH", usage_limit=2)
        line = _line(variant, 1)
        barrier = threading.Barrier(6)
        outcomes = []
        lock = threading.Lock()

        def worker(n):
            shopper = Principal(user_id=f"shopper-{n}", role="customer")
            session = session_factory()
            try:
                barrier.wait()
                OrderService(session).place_order_intent(shopper, [line], coupon_code="FLASH")
                result = "ok"
            except AppException as exc:
                result = exc.error_type
            finally:
                session.close()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 2
        assert outcomes.count(ErrorType.COUPON_LIMIT_REACHED) == 4
        assert _snapshot(session_factory, variant, coupon=coupon) == ([98], 2)

        session = session_factory()
        try:
            assert session.query(Order).count() == 2
            assert session.query(CouponUsage).count() == 2
        finally:
            session.close()


class TestReadOrders:
    def test_customers_only_see_their_own(self, db, admin, customer, two_variants):
        shirt, _ = two_variants
        service = OrderService(db)
        order = service.place_order_intent(customer, [_line(shirt, 1)])
        stranger = Principal(user_id="customer-2", role="customer")

        with pytest.raises(AppException) as exc:
            service.get_order(stranger, order.id)
        assert exc.value.error_type == ErrorType.NOT_FOUND

        assert service.get_order(admin, order.id).id == order.id
        assert service.list_orders(stranger) == ([], 0)
        items, total = service.list_orders(customer)
        assert total == 1 and items[0].id == order.id
