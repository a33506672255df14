"""
Category field validation

Every rule runs and every violation is collected, so a caller sees all problems
with a payload at once.
"""
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from app.models.category import Category, SLUG_MAX_LENGTH, SLUG_MIN_LENGTH
from app.services.category_store import CategoryStore

NAME_MAX_LENGTH = 255
SLUG_PATTERN = re.compile(r'^[a-z0-9-]+$')


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None


class CategoryValidator:
    def __init__(self, store: CategoryStore):
        self.store = store

    def validate(self, data: Any, is_update: bool = False, exclude_id: Optional[str] = None) -> ValidationResult:
        """
        Validate raw category data

        Args:
            data: Field values as received from the caller
            is_update: Update mode, where every field is optional
            exclude_id: Category whose own name must not count as a collision
        """
        errors: List[str] = []

        if not isinstance(data, Mapping):
            errors.append('Category data must be a valid object')
            return ValidationResult(valid=False, errors=errors)

        name = data.get('name')
        name_ok = isinstance(name, str) and len(name.strip()) > 0

        if not is_update and not name_ok:
            errors.append('Category name is required and must be a non-empty string')

        if is_update and 'name' in data and not name_ok:
            errors.append('Category name must be a non-empty string')

        if name_ok and len(name.strip()) > NAME_MAX_LENGTH:
            errors.append(f'Category name must not exceed {NAME_MAX_LENGTH} characters')

        if name_ok:
            criteria = [Category.name == name.strip()]
            if exclude_id:
                criteria.append(Category.id != exclude_id)
            if self.store.find_one(*criteria):
                errors.append(f"Category name '{name.strip()}' already exists. Please choose a different name.")

        for key, label in (('description', 'Category description'), ('meta_title', 'Meta title')):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                errors.append(f'{label} must be a string')

        parent_id = data.get('parent_id')
        if parent_id is not None and not isinstance(parent_id, str):
            errors.append('Parent category ID must be a string')

        slug = data.get('slug')
        if slug not in (None, ''):
            slug_check = self.validate_slug(slug)
            if not slug_check.valid:
                errors.append(slug_check.error)

        if data.get('sort_order') not in (None, '') and parse_int(data.get('sort_order')) is None:
            errors.append('Sort order must be an integer')

        return ValidationResult(valid=not errors, errors=errors)

    def validate_id(self, category_id: Any) -> ValidationResult:
        if not isinstance(category_id, str) or not category_id.strip():
            return ValidationResult(valid=False, error='Category ID is required and must be a valid string')
        return ValidationResult(valid=True)

    def validate_slug(self, slug: Any) -> ValidationResult:
        if not slug or not isinstance(slug, str):
            return ValidationResult(valid=False, error='Slug is required and must be a string')

        if not SLUG_PATTERN.match(slug):
            return ValidationResult(valid=False, error='Slug can only contain lowercase letters, numbers, and hyphens')

        if len(slug) < SLUG_MIN_LENGTH:
            return ValidationResult(valid=False, error=f'Slug must be at least {SLUG_MIN_LENGTH} characters long')

        if len(slug) > SLUG_MAX_LENGTH:
            return ValidationResult(valid=False, error=f'Slug must not exceed {SLUG_MAX_LENGTH} characters')

        return ValidationResult(valid=True)


def parse_int(value: Any) -> Optional[int]:
    """Coerce form and JSON values to int; None when not an integer"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
