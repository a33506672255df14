"""
Persistence operations the hierarchy engine needs, on top of a SQLAlchemy session.

Every write commits on its own; no tree state is cached between calls.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.category import Category
from app.services.errors import Conflict, StorageFault

logger = logging.getLogger(__name__)

SIBLING_ORDER = (Category.sort_order.asc(), Category.name.asc())
FOREST_ORDER = (Category.level.asc(), Category.sort_order.asc(), Category.name.asc())


class CategoryStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, category_id: str) -> Optional[Category]:
        try:
            return self.db.query(Category).filter(Category.id == category_id).first()
        except SQLAlchemyError as e:
            raise self._fault("loading category", e)

    def find_one(self, *criteria) -> Optional[Category]:
        try:
            return self.db.query(Category).filter(*criteria).first()
        except SQLAlchemyError as e:
            raise self._fault("querying categories", e)

    def find_all(self, *criteria, order_by: Sequence[Any] = SIBLING_ORDER) -> List[Category]:
        try:
            return self.db.query(Category).filter(*criteria).order_by(*order_by).all()
        except SQLAlchemyError as e:
            raise self._fault("listing categories", e)

    def count(self, *criteria) -> int:
        try:
            return self.db.query(Category).filter(*criteria).count()
        except SQLAlchemyError as e:
            raise self._fault("counting categories", e)

    def create(self, payload: Dict[str, Any], flag_parent: Optional[str] = None) -> Category:
        """Insert a category; flag_parent gets is_parent=True in the same commit"""
        category = Category(**payload)
        try:
            self.db.add(category)
            if flag_parent:
                self.db.query(Category).filter(Category.id == flag_parent).update(
                    {"is_parent": True}, synchronize_session=False
                )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Unique constraint violated creating category {payload.get('name')!r}: {e.orig}")
            raise Conflict(
                "A category with this name or slug already exists. Please choose a different name.",
                ["Category names and slugs must be unique across the system."]
            )
        except SQLAlchemyError as e:
            raise self._fault("creating category", e)
        self.db.refresh(category)
        return category

    def update(self, category_id: str, values: Dict[str, Any]) -> Optional[Category]:
        """Apply a partial update as a single UPDATE statement and return the fresh row"""
        try:
            self.db.query(Category).filter(Category.id == category_id).update(
                values, synchronize_session=False
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Unique constraint violated updating category {category_id}: {e.orig}")
            raise Conflict(
                "A category with this name or slug already exists. Please choose a different name.",
                ["Category names and slugs must be unique across the system."]
            )
        except SQLAlchemyError as e:
            raise self._fault("updating category", e)
        # commit expired the identity map, so this reloads from the database
        return self.get(category_id)

    def mark_inactive(self, category_id: str) -> Optional[Category]:
        return self.update(category_id, {"is_active": False, "updated_at": datetime.utcnow()})

    def _fault(self, action: str, error: Exception) -> StorageFault:
        self.db.rollback()
        logger.error(f"Database error {action}: {error}", exc_info=True)
        return StorageFault(f"Database error {action}")
