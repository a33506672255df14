"""
Category hierarchy engine

Keeps the derived fields of the taxonomy consistent on every mutation:
  - level == parent.level + 1, or 0 for a root
  - is_parent is true iff the category has at least one active child
  - name and slug are unique across active and inactive rows
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from app.config import settings
from app.models.category import Category, SLUG_MAX_LENGTH, SLUG_MIN_LENGTH
from app.services.category_store import CategoryStore
from app.services.category_tree import CategoryTreeBuilder
from app.services.category_validator import CategoryValidator, parse_int
from app.services.errors import CategoryError, Conflict, NotFound, ValidationFailed
from app.services.image_storage import ImageUpload, LocalImageStorage, PUBLIC_READ, validate_image_upload
from app.utils.slug import generate_slug, make_unique_slug

logger = logging.getLogger(__name__)

# Values clients send for "no parent"
EMPTY_PARENT_VALUES = ('', 'null', 'undefined')


def normalize_parent_id(parent_id: Any) -> Optional[str]:
    if parent_id is None:
        return None
    parent_id = str(parent_id).strip()
    if parent_id in EMPTY_PARENT_VALUES:
        return None
    return parent_id


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class CategoryService:
    def __init__(self, store: CategoryStore, storage: LocalImageStorage):
        self.store = store
        self.storage = storage
        self.validator = CategoryValidator(store)
        self.tree = CategoryTreeBuilder(store)

    # ============ SLUGS ============

    def unique_slug(self, name: str, exclude_id: Optional[str] = None, fallback: Optional[str] = None) -> str:
        """Slug for name that no other category (active or inactive) uses"""
        return make_unique_slug(
            generate_slug(name),
            lambda slug: self._slug_taken(slug, exclude_id),
            max_length=SLUG_MAX_LENGTH,
            fallback=fallback,
            min_length=SLUG_MIN_LENGTH
        )

    def _slug_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        criteria = [Category.slug == slug]
        if exclude_id:
            criteria.append(Category.id != exclude_id)
        return self.store.find_one(*criteria) is not None

    # ============ MUTATIONS ============

    def create(self, data: Mapping[str, Any], image: Optional[ImageUpload] = None) -> Category:
        """
        Create a category, optionally with an image

        Raises:
            ValidationFailed: data or image breaks a field rule
            Conflict: name or slug already taken
            NotFound: parent does not exist or is inactive
            StorageFault: database or object storage failure
        """
        validation = self.validator.validate(data, is_update=False)
        if not validation.valid:
            raise ValidationFailed(validation.errors)

        name = data['name'].strip()

        # Authoritative duplicate check, right before the insert
        if self.store.find_one(Category.name == name):
            raise Conflict(f"Category with name '{name}' already exists. Please choose a different name.")

        level = 0
        parent_id = normalize_parent_id(data.get('parent_id'))
        if parent_id:
            parent = self._get_active(parent_id)
            if parent is None:
                raise NotFound("Parent category not found in our records.")
            level = parent.level + 1

        category_id = str(uuid.uuid4())

        if data.get('slug'):
            slug = data['slug']
            if self._slug_taken(slug):
                raise Conflict(f"Slug '{slug}' is already used by another category.")
        else:
            slug = self.unique_slug(name, fallback=category_id)

        image_url = None
        if image is not None:
            validate_image_upload(image)
            image_url = self.storage.put(image.content, image.filename, settings.CATEGORY_IMAGE_FOLDER, PUBLIC_READ)

        now = datetime.utcnow()
        payload = {
            "id": category_id,
            "name": name,
            "slug": slug,
            "description": _clean_text(data.get('description')),
            "parent_id": parent_id,
            "level": level,
            "is_parent": False,
            "is_active": True,
            "meta_title": _clean_text(data.get('meta_title')),
            "sort_order": parse_int(data.get('sort_order')) or 0,
            "image_url": image_url,
            "created_at": now,
            "updated_at": now
        }

        try:
            category = self.store.create(payload, flag_parent=parent_id)
        except CategoryError:
            if image_url:
                self._safe_image_delete(image_url, "orphaned category image")
            raise

        logger.info(f"Category created successfully: {category.id}")
        return category

    def edit(self, category_id: str, data: Mapping[str, Any]) -> Category:
        """
        Partially update a category; re-parenting moves its whole subtree

        Raises:
            ValidationFailed, NotFound, Conflict, StorageFault
        """
        self._check_id(category_id)

        validation = self.validator.validate(data, is_update=True, exclude_id=category_id)
        if not validation.valid:
            raise ValidationFailed(validation.errors)

        category = self.store.get(category_id)
        if category is None:
            raise NotFound("Category not found in our records.")

        values: Dict[str, Any] = {}

        name = data['name'].strip() if data.get('name') else None
        if name and name != category.name:
            duplicate = self.store.find_one(Category.name == name, Category.id != category_id)
            if duplicate:
                raise Conflict(f"Category with name '{name}' already exists. Please choose a different name.")
            values["name"] = name

        old_parent_id = category.parent_id
        new_parent_id = old_parent_id
        level = category.level

        if 'parent_id' in data:
            new_parent_id = normalize_parent_id(data.get('parent_id'))

        parent_changed = new_parent_id != old_parent_id
        if parent_changed:
            if new_parent_id:
                parent = self._get_active(new_parent_id)
                if parent is None:
                    raise NotFound("New parent category not found in our records.")
                self._check_not_descendant(category, parent)
                level = parent.level + 1
            else:
                level = 0
            values["parent_id"] = new_parent_id
            values["level"] = level

        if 'level' in data and data['level'] is not None and parse_int(data['level']) != level:
            raise ValidationFailed([f"Level must be {level} for this parent"])

        slug = data.get('slug')
        if slug and slug != category.slug:
            if self._slug_taken(slug, exclude_id=category_id):
                raise Conflict(f"Slug '{slug}' is already used by another category.")
            values["slug"] = slug
        elif "name" in values and not slug:
            values["slug"] = self.unique_slug(name, exclude_id=category_id, fallback=category_id)

        if 'description' in data:
            values["description"] = _clean_text(data['description'])
        if 'meta_title' in data:
            values["meta_title"] = _clean_text(data['meta_title'])
        if data.get('sort_order') not in (None, ''):
            values["sort_order"] = parse_int(data['sort_order'])

        values["updated_at"] = datetime.utcnow()
        level_shift = level - category.level

        self.store.update(category_id, values)

        if parent_changed:
            if level_shift:
                self._shift_descendant_levels(category_id, level_shift)
            if old_parent_id:
                self._sync_parent_flag(old_parent_id)
            if new_parent_id:
                self._sync_parent_flag(new_parent_id)

        logger.info(f"Category updated successfully: {category_id}")
        return self.store.get(category_id)

    def delete(self, category_id: str) -> Dict[str, Any]:
        """Soft delete a leaf category"""
        self._check_id(category_id)

        category = self._get_active(category_id)
        if category is None:
            raise NotFound("Category not found in our records.")

        children_count = self.store.count(
            Category.parent_id == category_id,
            Category.is_active == True
        )
        if children_count > 0:
            raise Conflict("Cannot delete category with active children")

        parent_id = category.parent_id
        self.store.mark_inactive(category_id)

        if parent_id:
            self._sync_parent_flag(parent_id)

        logger.info(f"Category soft deleted successfully: {category_id}")
        return {"id": category_id, "message": "Category deleted successfully"}

    def change_image(self, category_id: str, image: Optional[ImageUpload]) -> Category:
        self._check_id(category_id)

        category = self.store.get(category_id)
        if category is None:
            raise NotFound("Category not found in our records.")

        if image is None:
            raise ValidationFailed(["Image file is required."])
        validate_image_upload(image)

        old_image_url = category.image_url
        new_image_url = self.storage.put(image.content, image.filename, settings.CATEGORY_IMAGE_FOLDER, PUBLIC_READ)

        try:
            updated = self.store.update(category_id, {"image_url": new_image_url, "updated_at": datetime.utcnow()})
        except CategoryError:
            self._safe_image_delete(new_image_url, "unsaved category image")
            raise

        if old_image_url:
            self._safe_image_delete(old_image_url, "old category image")

        logger.info(f"Category image updated successfully: {category_id}")
        return updated

    def remove_image(self, category_id: str) -> Category:
        self._check_id(category_id)

        category = self.store.get(category_id)
        if category is None:
            raise NotFound("Category not found in our records.")

        if category.image_url:
            self._safe_image_delete(category.image_url, "category image")

        updated = self.store.update(category_id, {"image_url": None, "updated_at": datetime.utcnow()})
        logger.info(f"Category image removed successfully: {category_id}")
        return updated

    # ============ QUERIES ============

    def list_by_level(self, level: Any) -> List[Category]:
        parsed = parse_int(level)
        if parsed is None or parsed < 0:
            raise ValidationFailed(["Level must be a non-negative integer"])
        return self.store.find_all(Category.level == parsed, Category.is_active == True)

    def get_all(self, include_inactive: bool = False) -> List[Dict[str, Any]]:
        return self.tree.forest(include_inactive)

    def get_by_slug(self, slug: str) -> Dict[str, Any]:
        if not slug or not slug.strip():
            raise ValidationFailed(["Slug is required"])
        return self.tree.by_slug(slug)

    def get_info(self, category_id: str) -> Dict[str, Any]:
        self._check_id(category_id)
        category = self.store.get(category_id)
        if category is None:
            raise NotFound("Category not found in our records.")
        return self.tree.info(category)

    def ancestors(self, category_id: str) -> List[Category]:
        category = self._require_active(category_id)
        return self.tree.ancestors(category)

    def descendants(self, category_id: str) -> List[Dict[str, Any]]:
        self._require_active(category_id)
        return self.tree.descendants(category_id)

    # ============ HELPERS ============

    def _check_id(self, category_id: Any) -> None:
        result = self.validator.validate_id(category_id)
        if not result.valid:
            raise ValidationFailed([result.error], message=result.error)

    def _get_active(self, category_id: str) -> Optional[Category]:
        return self.store.find_one(Category.id == category_id, Category.is_active == True)

    def _require_active(self, category_id: str) -> Category:
        self._check_id(category_id)
        category = self._get_active(category_id)
        if category is None:
            raise NotFound("Category not found in our records.")
        return category

    def _check_not_descendant(self, category: Category, new_parent: Category) -> None:
        """Reject a move that would put category underneath itself"""
        if new_parent.id == category.id:
            raise Conflict("Category cannot be its own parent")

        chain = self.tree.ancestors(new_parent, include_inactive=True)
        if any(ancestor.id == category.id for ancestor in chain):
            raise Conflict("Circular reference detected in category hierarchy")

    def _sync_parent_flag(self, parent_id: str) -> None:
        """Set is_parent from the current number of active children"""
        parent = self.store.get(parent_id)
        if parent is None:
            return
        has_children = self.store.count(
            Category.parent_id == parent_id,
            Category.is_active == True
        ) > 0
        if parent.is_parent != has_children:
            self.store.update(parent_id, {"is_parent": has_children})

    def _shift_descendant_levels(self, category_id: str, shift: int) -> None:
        visited = {category_id}
        worklist = [category_id]
        while worklist:
            parent_id = worklist.pop()
            for child in self.store.find_all(Category.parent_id == parent_id):
                if child.id in visited:
                    continue
                visited.add(child.id)
                self.store.update(child.id, {"level": child.level + shift})
                worklist.append(child.id)

    def _safe_image_delete(self, image_url: str, description: str = "file") -> None:
        try:
            self.storage.delete(image_url)
        except Exception as e:
            logger.warning(f"Could not delete {description} {image_url}: {e}")
