from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    level: int = 0
    is_parent: bool = False
    is_active: bool = True
    sort_order: int = 0
    image_url: Optional[str] = None
    meta_title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CategoryUpdate(BaseModel):
    """Edit payload; only the fields the client sends are applied"""
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[str] = None
    meta_title: Optional[str] = None
    sort_order: Optional[int] = None
    level: Optional[int] = None


def category_to_dict(category) -> dict:
    """Serialize a Category row to plain JSON-ready data"""
    return CategoryResponse.model_validate(category).model_dump(mode="json")
