import pytest
from fastapi.testclient import TestClient

from database import build_engine, build_session_factory, init_db
from main import create_app
from schemas.attribute import ColorCreate, SizeCreate
from schemas.coupon import CouponCreate
from schemas.product import ProductCreate
from schemas.variant import VariantCreate
from services.catalog import CatalogService
from services.coupons import CouponService
from services.inventory import InventoryService
from utils.tokenJWT import Principal, create_access_token


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several threads can share one database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'storefront-test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def admin():
    return Principal(user_id="admin-1", role="admin")


@pytest.fixture
def customer():
    return Principal(user_id="customer-1", role="customer")


@pytest.fixture
def make_product(db, admin):
    """Create an active product; keyword arguments override the defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "name": f"Running Tee {counter['n']}",
            "sku": f"TEE-{counter['n']}",
            "price_regular": 100.0,
        }
        data.update(overrides)
        return CatalogService(db).create_product(admin, ProductCreate(**data))

    return _make


@pytest.fixture
def make_variant(db, admin, make_product):
    """Create an active variant (and a product for it unless one is given)."""
    counter = {"n": 0}

    def _make(product=None, stock=5, **overrides):
        counter["n"] += 1
        product = product or make_product()
        data = {"sku": f"{product.sku}-V{counter['n']}", "stock_quantity": stock}
        data.update(overrides)
        return InventoryService(db).create_variant(admin, product.id, VariantCreate(**data))

    return _make


@pytest.fixture
def make_coupon(db, admin):
    def _make(code="SAVE10", discount_type="percentage", discount_value=10, **overrides):
        payload = CouponCreate(code=code, discount_type=discount_type, discount_value=discount_value, **overrides)
        return CouponService(db).create_coupon(admin, payload)

    return _make


@pytest.fixture
def size_and_color(db, admin):
    catalog = CatalogService(db)
    size = catalog.create_size(admin, SizeCreate(name="M", sort_order=2))
    color = catalog.create_color(admin, ColorCreate(name="Black", hex="#000000"))
    return size, color


# ---- HTTP ----
@pytest.fixture
def client(engine):
    app = create_app(engine=engine)
    with TestClient(app) as test_client:
        yield test_client


def _auth(user_id: str, role: str) -> dict:
    token = create_access_token({"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _auth("admin-1", "admin")


@pytest.fixture
def customer_headers():
    return _auth("customer-1", "customer")


@pytest.fixture
def other_customer_headers():
    return _auth("customer-2", "customer")
