# backend/services/catalog.py
"""Catalog store: products, categories, brands, sizes and colors.

Writes check uniqueness with a lookup that excludes the row being edited and
that also sees inactive rows, so slugs and SKUs are never recycled. Metadata
edits are last-writer-wins.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from database import transaction
from errors import ErrorType
from exceptions import AppException
from models.catalog import Brand, Category, Color, Size
from models.product import Product, ProductImage
from models.variant import ProductVariant
from schemas.attribute import ColorCreate, SizeCreate
from schemas.brand import BrandCreate, BrandUpdate
from schemas.category import CategoryCreate, CategoryUpdate
from schemas.product import ProductCreate, ProductUpdate
from services.guard import ReferentialGuard
from utils.slug import generate_slug
from utils.tokenJWT import Principal, ensure_staff

logger = logging.getLogger(__name__)

# Columns that may not be cleared through an update payload
NOT_NULLABLE = {
    Product: {"name", "sku", "slug", "price_regular", "is_featured"},
    Category: {"name", "slug", "sort_order"},
    Brand: {"name", "slug", "is_featured"},
}


class CatalogService:
    def __init__(self, db: Session, guard: Optional[ReferentialGuard] = None):
        self.db = db
        self.guard = guard or ReferentialGuard(db)

    # ---- HELPERS ----
    def _get(self, model, entity_id: int, label: str, active_only: bool = False):
        obj = self.db.get(model, entity_id)
        if obj is None or (active_only and not obj.is_active):
            raise AppException(ErrorType.NOT_FOUND, f"{label} {entity_id} not found")
        return obj

    def _ensure_unique(self, model, field: str, value, exclude_id: Optional[int] = None):
        column = getattr(model, field)
        query = self.db.query(model.id).filter(column == value)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if query.first():
            raise AppException(
                ErrorType.DUPLICATE_KEY,
                f"{model.__name__} with {field} '{value}' already exists",
            )

    def _resolve_slug(self, slug: Optional[str], name: str) -> str:
        value = slug.strip() if slug else generate_slug(name)
        if not value:
            raise AppException(ErrorType.VALIDATION_ERROR, f"Cannot derive a slug from '{name}'")
        return value

    def _apply_changes(self, entity, changes: dict):
        for field in NOT_NULLABLE.get(type(entity), ()):
            if field in changes and changes[field] is None:
                raise AppException(ErrorType.VALIDATION_ERROR, f"'{field}' cannot be null")
        for field, value in changes.items():
            setattr(entity, field, value)

    def _check_reference(self, model, entity_id: Optional[int], label: str):
        if entity_id is None:
            return
        ref = self._get(model, entity_id, label)
        if not ref.is_active:
            raise AppException(ErrorType.VALIDATION_ERROR, f"{label} {entity_id} is inactive")

    # =========================
    # CATEGORIES
    # =========================
    def create_category(self, actor: Principal, payload: CategoryCreate) -> Category:
        ensure_staff(actor)
        name = payload.name.strip()
        slug = self._resolve_slug(payload.slug, name)
        self._ensure_unique(Category, "name", name)
        self._ensure_unique(Category, "slug", slug)

        category = Category(
            name=name, slug=slug, description=payload.description,
            sort_order=payload.sort_order, is_active=payload.is_active,
        )
        with transaction(self.db):
            self.db.add(category)
        self.db.refresh(category)
        return category

    def update_category(self, actor: Principal, category_id: int, payload: CategoryUpdate) -> Category:
        ensure_staff(actor)
        category = self._get(Category, category_id, "Category")
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("name"):
            changes["name"] = changes["name"].strip()
            self._ensure_unique(Category, "name", changes["name"], exclude_id=category.id)
        if changes.get("slug"):
            self._ensure_unique(Category, "slug", changes["slug"], exclude_id=category.id)

        with transaction(self.db):
            self._apply_changes(category, changes)
        self.db.refresh(category)
        return category

    def deactivate_category(self, actor: Principal, category_id: int) -> Category:
        ensure_staff(actor)
        category = self._get(Category, category_id, "Category")
        with transaction(self.db):
            self.guard.deactivate("category", category)
        self.db.refresh(category)
        return category

    def get_category(self, category_id: int, include_inactive: bool = True) -> Category:
        return self._get(Category, category_id, "Category", active_only=not include_inactive)

    def list_categories(self, include_inactive: bool = False) -> List[Category]:
        query = self.db.query(Category)
        if not include_inactive:
            query = query.filter(Category.is_active.is_(True))
        return query.order_by(Category.sort_order.asc(), Category.name.asc()).all()

    # =========================
    # BRANDS
    # =========================
    def create_brand(self, actor: Principal, payload: BrandCreate) -> Brand:
        ensure_staff(actor)
        name = payload.name.strip()
        slug = self._resolve_slug(payload.slug, name)
        self._ensure_unique(Brand, "name", name)
        self._ensure_unique(Brand, "slug", slug)

        brand = Brand(
            name=name, slug=slug, description=payload.description,
            logo_url=payload.logo_url, website_url=payload.website_url,
            country=payload.country.upper() if payload.country else None,
            is_featured=payload.is_featured, is_active=payload.is_active,
        )
        with transaction(self.db):
            self.db.add(brand)
        self.db.refresh(brand)
        return brand

    def update_brand(self, actor: Principal, brand_id: int, payload: BrandUpdate) -> Brand:
        ensure_staff(actor)
        brand = self._get(Brand, brand_id, "Brand")
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("name"):
            changes["name"] = changes["name"].strip()
            self._ensure_unique(Brand, "name", changes["name"], exclude_id=brand.id)
        if changes.get("slug"):
            self._ensure_unique(Brand, "slug", changes["slug"], exclude_id=brand.id)
        if changes.get("country"):
            changes["country"] = changes["country"].upper()

        with transaction(self.db):
            self._apply_changes(brand, changes)
        self.db.refresh(brand)
        return brand

    def deactivate_brand(self, actor: Principal, brand_id: int) -> Brand:
        ensure_staff(actor)
        brand = self._get(Brand, brand_id, "Brand")
        with transaction(self.db):
            self.guard.deactivate("brand", brand)
        self.db.refresh(brand)
        return brand

    def get_brand(self, brand_id: int, include_inactive: bool = True) -> Brand:
        return self._get(Brand, brand_id, "Brand", active_only=not include_inactive)

    def list_brands(self, include_inactive: bool = False, featured: Optional[bool] = None) -> List[Brand]:
        query = self.db.query(Brand)
        if not include_inactive:
            query = query.filter(Brand.is_active.is_(True))
        if featured is not None:
            query = query.filter(Brand.is_featured.is_(featured))
        return query.order_by(Brand.is_featured.desc(), Brand.name.asc()).all()

    # =========================
    # PRODUCTS
    # =========================
    def create_product(self, actor: Principal, payload: ProductCreate) -> Product:
        ensure_staff(actor)
        name = payload.name.strip()
        sku = payload.sku.strip()
        slug = self._resolve_slug(payload.slug, name)
        self._ensure_unique(Product, "slug", slug)
        self._ensure_unique(Product, "sku", sku)
        self._check_reference(Category, payload.category_id, "Category")
        self._check_reference(Brand, payload.brand_id, "Brand")

        product = Product(
            name=name, slug=slug, sku=sku, description=payload.description,
            price_regular=payload.price_regular, price_sale=payload.price_sale,
            is_active=payload.is_active, is_featured=payload.is_featured,
            category_id=payload.category_id, brand_id=payload.brand_id,
        )
        with transaction(self.db):
            self.db.add(product)
        self.db.refresh(product)
        logger.info("Product %s created (slug=%s, sku=%s)", product.id, product.slug, product.sku)
        return product

    def update_product(self, actor: Principal, product_id: int, payload: ProductUpdate) -> Product:
        ensure_staff(actor)
        product = self._get(Product, product_id, "Product")
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("name"):
            changes["name"] = changes["name"].strip()
        if changes.get("sku"):
            changes["sku"] = changes["sku"].strip()
            self._ensure_unique(Product, "sku", changes["sku"], exclude_id=product.id)
        if changes.get("slug"):
            self._ensure_unique(Product, "slug", changes["slug"], exclude_id=product.id)
        if "category_id" in changes:
            self._check_reference(Category, changes["category_id"], "Category")
        if "brand_id" in changes:
            self._check_reference(Brand, changes["brand_id"], "Brand")

        regular = changes.get("price_regular", product.price_regular)
        sale = changes.get("price_sale", product.price_sale)
        if regular is not None and sale is not None and sale > regular:
            raise AppException(ErrorType.VALIDATION_ERROR, "price_sale must not exceed price_regular")

        with transaction(self.db):
            self._apply_changes(product, changes)
        self.db.refresh(product)
        return product

    def deactivate_product(self, actor: Principal, product_id: int) -> Product:
        """Soft-delete a product together with the variants and images it owns."""
        ensure_staff(actor)
        product = self._get(Product, product_id, "Product")
        with transaction(self.db):
            if self.guard.deactivate("product", product):
                self.db.query(ProductVariant).filter(ProductVariant.product_id == product.id).update(
                    {ProductVariant.is_active: False}, synchronize_session=False
                )
                self.db.query(ProductImage).filter(ProductImage.product_id == product.id).update(
                    {ProductImage.is_active: False}, synchronize_session=False
                )
        self.db.refresh(product)
        return product

    def get_product(self, product_id: int, include_inactive: bool = True) -> Product:
        return self._get(Product, product_id, "Product", active_only=not include_inactive)

    def get_product_by_slug(self, slug: str) -> Product:
        product = (
            self.db.query(Product)
            .filter(Product.slug == slug, Product.is_active.is_(True))
            .first()
        )
        if product is None:
            raise AppException(ErrorType.NOT_FOUND, f"Product '{slug}' not found")
        return product

    def list_products(
        self,
        *,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        brand_id: Optional[int] = None,
        featured: Optional[bool] = None,
        include_inactive: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Product], int]:
        query = self.db.query(Product)

        if not include_inactive:
            query = query.filter(Product.is_active.is_(True))
        if name:
            query = query.filter(Product.name.ilike(f"%{name}%"))
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        if brand_id is not None:
            query = query.filter(Product.brand_id == brand_id)
        if featured is not None:
            query = query.filter(Product.is_featured.is_(featured))

        total = query.count()
        items = (
            query.order_by(Product.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    # =========================
    # SIZES / COLORS
    # =========================
    def create_size(self, actor: Principal, payload: SizeCreate) -> Size:
        ensure_staff(actor)
        name = payload.name.strip()
        self._ensure_unique(Size, "name", name)
        size = Size(name=name, sort_order=payload.sort_order)
        with transaction(self.db):
            self.db.add(size)
        self.db.refresh(size)
        return size

    def list_sizes(self) -> List[Size]:
        return self.db.query(Size).order_by(Size.sort_order.asc(), Size.name.asc()).all()

    def create_color(self, actor: Principal, payload: ColorCreate) -> Color:
        ensure_staff(actor)
        name = payload.name.strip()
        self._ensure_unique(Color, "name", name)
        color = Color(name=name, hex=payload.hex.upper() if payload.hex else None)
        with transaction(self.db):
            self.db.add(color)
        self.db.refresh(color)
        return color

    def list_colors(self) -> List[Color]:
        return self.db.query(Color).order_by(Color.name.asc()).all()
