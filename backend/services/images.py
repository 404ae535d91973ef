# backend/services/images.py
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import transaction
from errors import ErrorType
from exceptions import AppException
from models.product import Product, ProductImage
from schemas.image import ImageCreate, ImageUpdate
from utils.tokenJWT import Principal, ensure_staff


class ImageService:
    """Ordered image references of a product. The bytes live in object storage."""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, image_id: int) -> ProductImage:
        image = self.db.get(ProductImage, image_id)
        if image is None:
            raise AppException(ErrorType.NOT_FOUND, f"Image {image_id} not found")
        return image

    def add_image(self, actor: Principal, product_id: int, payload: ImageCreate) -> ProductImage:
        ensure_staff(actor)
        product = self.db.get(Product, product_id)
        if product is None:
            raise AppException(ErrorType.NOT_FOUND, f"Product {product_id} not found")
        if not product.is_active:
            raise AppException(ErrorType.VALIDATION_ERROR, f"Product {product_id} is inactive")

        sort_order = payload.sort_order
        if sort_order is None:
            last = (
                self.db.query(func.max(ProductImage.sort_order))
                .filter(ProductImage.product_id == product_id)
                .scalar()
            )
            sort_order = 0 if last is None else last + 1

        image = ProductImage(
            product_id=product_id, url=payload.url, alt_text=payload.alt_text,
            sort_order=sort_order, is_active=True,
        )
        with transaction(self.db):
            self.db.add(image)
        self.db.refresh(image)
        return image

    def update_image(self, actor: Principal, image_id: int, payload: ImageUpdate) -> ProductImage:
        ensure_staff(actor)
        image = self._get(image_id)
        changes = payload.model_dump(exclude_unset=True)
        if "sort_order" in changes and changes["sort_order"] is None:
            raise AppException(ErrorType.VALIDATION_ERROR, "'sort_order' cannot be null")
        with transaction(self.db):
            for field, value in changes.items():
                setattr(image, field, value)
        self.db.refresh(image)
        return image

    def deactivate_image(self, actor: Principal, image_id: int) -> ProductImage:
        ensure_staff(actor)
        image = self._get(image_id)
        if image.is_active:
            with transaction(self.db):
                image.is_active = False
            self.db.refresh(image)
        return image

    def list_images(self, product_id: int) -> List[ProductImage]:
        return (
            self.db.query(ProductImage)
            .filter(ProductImage.product_id == product_id, ProductImage.is_active.is_(True))
            .order_by(ProductImage.sort_order.asc(), ProductImage.id.asc())
            .all()
        )

    def cover_image(self, product_id: int) -> Optional[ProductImage]:
        images = self.list_images(product_id)
        return images[0] if images else None
