"""
Tree-shaped read projections over the flat categories table
"""
import logging
from typing import Any, Dict, List

from app.models.category import Category
from app.schemas.category import category_to_dict
from app.services.category_store import CategoryStore, FOREST_ORDER
from app.services.errors import NotFound

logger = logging.getLogger(__name__)


class CategoryTreeBuilder:
    def __init__(self, store: CategoryStore):
        self.store = store

    def ancestors(self, category: Category, include_inactive: bool = False) -> List[Category]:
        """
        Parents of a category, root first.

        A missing or inactive parent truncates the chain instead of failing,
        and so does an id seen twice.
        """
        parents: List[Category] = []
        visited = {category.id}
        current = category

        while current.parent_id:
            if current.parent_id in visited:
                logger.warning(f"Cycle detected above category {category.id} at {current.parent_id}")
                break
            criteria = [Category.id == current.parent_id]
            if not include_inactive:
                criteria.append(Category.is_active == True)
            parent = self.store.find_one(*criteria)
            if parent is None:
                break
            visited.add(parent.id)
            parents.insert(0, parent)
            current = parent

        return parents

    def children(self, category_id: str) -> List[Category]:
        return self.store.find_all(
            Category.parent_id == category_id,
            Category.is_active == True
        )

    def siblings(self, category: Category) -> List[Category]:
        if not category.parent_id:
            return []
        return self.store.find_all(
            Category.parent_id == category.parent_id,
            Category.is_active == True,
            Category.id != category.id
        )

    def descendants(self, category_id: str) -> List[Dict[str, Any]]:
        """Active descendants as nested dicts, each with a `children` list"""
        tree: List[Dict[str, Any]] = []
        visited = {category_id}
        worklist = [(category_id, tree)]

        while worklist:
            parent_id, bucket = worklist.pop()
            for child in self.children(parent_id):
                if child.id in visited:
                    logger.warning(f"Category {child.id} reached twice below {category_id}, skipping")
                    continue
                visited.add(child.id)
                node = category_to_dict(child)
                node["children"] = []
                bucket.append(node)
                worklist.append((child.id, node["children"]))

        return tree

    def forest(self, include_inactive: bool = False) -> List[Dict[str, Any]]:
        """
        Every listed category nested under its parent.

        A category whose parent is not listed becomes a root, and so does the
        first member (in listing order) of a parent cycle.
        """
        criteria = [] if include_inactive else [Category.is_active == True]
        categories = self.store.find_all(*criteria, order_by=FOREST_ORDER)

        index: Dict[str, Dict[str, Any]] = {}
        for category in categories:
            node = category_to_dict(category)
            node["children"] = []
            index[category.id] = node

        parent_of = {
            category.id: category.parent_id
            for category in categories
            if category.parent_id and category.parent_id in index
        }
        for category in categories:
            seen = {category.id}
            current = parent_of.get(category.id)
            while current is not None and current not in seen:
                seen.add(current)
                current = parent_of.get(current)
            if current == category.id:
                logger.warning(f"Cycle detected at category {category.id}, listing it as a root")
                del parent_of[category.id]

        roots: List[Dict[str, Any]] = []
        for category in categories:
            node = index[category.id]
            if category.id in parent_of:
                index[parent_of[category.id]]["children"].append(node)
            else:
                roots.append(node)

        return roots

    def by_slug(self, slug: str) -> Dict[str, Any]:
        category = self.store.find_one(
            Category.slug == slug.strip(),
            Category.is_active == True
        )
        if category is None:
            raise NotFound("Category not found with the provided slug.")

        parents = self.ancestors(category)
        descendants = self.descendants(category.id)
        direct_children = self.children(category.id)
        siblings = self.siblings(category)

        return {
            "category": category_to_dict(category),
            "parents": [category_to_dict(p) for p in parents],
            "children": descendants,
            "direct_children": [category_to_dict(c) for c in direct_children],
            "siblings": [category_to_dict(s) for s in siblings],
            "breadcrumb": [category_to_dict(c) for c in parents + [category]],
            "meta": {
                "total_descendants": count_nodes(descendants),
                "total_direct_children": len(direct_children),
                "level": category.level,
                "has_children": len(direct_children) > 0,
                "has_siblings": len(siblings) > 0
            }
        }

    def info(self, category: Category) -> Dict[str, Any]:
        """Admin view: ancestors (inactive included), direct children and full descendant tree"""
        parents = self.ancestors(category, include_inactive=True)
        return {
            "category": category_to_dict(category),
            "parents": [category_to_dict(p) for p in parents],
            "children": [category_to_dict(c) for c in self.children(category.id)],
            "descendants": self.descendants(category.id),
            "breadcrumb": [category_to_dict(c) for c in parents + [category]]
        }


def count_nodes(tree: List[Dict[str, Any]]) -> int:
    total = 0
    stack = list(tree)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.get("children", []))
    return total
