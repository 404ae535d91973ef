# backend/services/guard.py
"""Referential guard shared by every soft-delete path.

An entity may only be switched to ``is_active = False`` when none of its
registered "active children" queries returns a row. Categories and brands are
blocked by active products; a product's own variants and images never block it
(they are cascaded instead).
"""
import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Query, Session

from errors import ErrorType
from exceptions import AppException
from models.product import Product

logger = logging.getLogger(__name__)

ChildQuery = Callable[[Session, int], Query]


def _active_products_in_category(db: Session, category_id: int) -> Query:
    return db.query(Product.id).filter(Product.category_id == category_id, Product.is_active.is_(True))


def _active_products_of_brand(db: Session, brand_id: int) -> Query:
    return db.query(Product.id).filter(Product.brand_id == brand_id, Product.is_active.is_(True))


DEFAULT_CHILDREN: Dict[str, List[ChildQuery]] = {
    "category": [_active_products_in_category],
    "brand": [_active_products_of_brand],
    "product": [],
}


class ReferentialGuard:
    def __init__(self, db: Session, children: Optional[Dict[str, List[ChildQuery]]] = None):
        self.db = db
        self.children = children if children is not None else DEFAULT_CHILDREN

    def count_blockers(self, entity_type: str, entity_id: int) -> int:
        if entity_type not in self.children:
            raise AppException(ErrorType.VALIDATION_ERROR, f"Unknown entity type '{entity_type}'")
        return sum(query(self.db, entity_id).count() for query in self.children[entity_type])

    def can_deactivate(self, entity_type: str, entity_id: int) -> bool:
        return self.count_blockers(entity_type, entity_id) == 0

    def deactivate(self, entity_type: str, entity) -> bool:
        """Flip ``entity.is_active`` off if nothing active depends on it.

        Returns False when the entity was already inactive. Does not commit.
        """
        if not entity.is_active:
            return False

        blockers = self.count_blockers(entity_type, entity.id)
        if blockers:
            logger.info("Deactivation of %s %s blocked by %d active dependents", entity_type, entity.id, blockers)
            raise AppException(
                ErrorType.REFERENTIAL_CONFLICT,
                f"Cannot deactivate {entity_type} {entity.id}: {blockers} active dependent record(s)",
            )

        entity.is_active = False
        return True
