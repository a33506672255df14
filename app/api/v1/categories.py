"""
Category Taxonomy Endpoints
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import Any, Dict, Optional
import logging
from app.api.deps import get_category_service, get_current_principal, require_category_admin
from app.schemas.category import CategoryResponse, CategoryUpdate
from app.schemas.common import ResponseModel
from app.services.category_service import CategoryService
from app.services.image_storage import ImageUpload

router = APIRouter()
logger = logging.getLogger(__name__)


async def read_image(image: Optional[UploadFile]) -> Optional[ImageUpload]:
    """Turn an optional multipart file into an ImageUpload"""
    if image is None or not image.filename:
        return None
    content = await image.read()
    return ImageUpload(content=content, filename=image.filename, content_type=image.content_type)


@router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_category(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    parent_id: Optional[str] = Form(None),
    meta_title: Optional[str] = Form(None),
    sort_order: Optional[str] = Form(None),
    slug: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    principal: Dict[str, Any] = Depends(require_category_admin),
    service: CategoryService = Depends(get_category_service)
):
    """Create a new category or subcategory, with an optional image"""
    form = {
        "name": name,
        "description": description,
        "parent_id": parent_id,
        "meta_title": meta_title,
        "sort_order": sort_order,
        "slug": slug,
    }
    data = {key: value for key, value in form.items() if value is not None}

    category = service.create(data, await read_image(image))
    logger.info(f"Category {category.id} created by {principal.get('sub')}")

    return ResponseModel(
        success=True,
        data=CategoryResponse.model_validate(category),
        message="Category created successfully"
    )


@router.get("", response_model=ResponseModel)
def get_categories(
    include_inactive: bool = Query(False),
    service: CategoryService = Depends(get_category_service)
):
    """Get all categories in tree structure"""
    return ResponseModel(
        success=True,
        data=service.get_all(include_inactive),
        message="Categories fetched successfully"
    )


@router.get("/slug/{slug}", response_model=ResponseModel)
def get_category_by_slug(
    slug: str,
    service: CategoryService = Depends(get_category_service)
):
    """Get a category with its breadcrumb, descendants and siblings"""
    return ResponseModel(
        success=True,
        data=service.get_by_slug(slug),
        message="Category fetched successfully"
    )


@router.get("/level/{level}", response_model=ResponseModel)
def get_categories_by_level(
    level: int,
    principal: Dict[str, Any] = Depends(get_current_principal),
    service: CategoryService = Depends(get_category_service)
):
    """Get active categories at one depth of the tree"""
    categories = service.list_by_level(level)
    return ResponseModel(
        success=True,
        data=[CategoryResponse.model_validate(c) for c in categories],
        message="Categories fetched successfully"
    )


@router.get("/{category_id}/info", response_model=ResponseModel)
def get_category_info(
    category_id: str,
    principal: Dict[str, Any] = Depends(require_category_admin),
    service: CategoryService = Depends(get_category_service)
):
    """Get category details with parents, children and descendants"""
    return ResponseModel(
        success=True,
        data=service.get_info(category_id),
        message="Category info fetched successfully"
    )


@router.put("/{category_id}", response_model=ResponseModel)
def update_category(
    category_id: str,
    category_data: CategoryUpdate,
    principal: Dict[str, Any] = Depends(require_category_admin),
    service: CategoryService = Depends(get_category_service)
):
    """Update an existing category"""
    category = service.edit(category_id, category_data.model_dump(exclude_unset=True))
    logger.info(f"Category {category_id} updated by {principal.get('sub')}")

    return ResponseModel(
        success=True,
        data=CategoryResponse.model_validate(category),
        message="Category updated successfully"
    )


@router.patch("/{category_id}/image", response_model=ResponseModel)
async def change_category_image(
    category_id: str,
    image: Optional[UploadFile] = File(None),
    principal: Dict[str, Any] = Depends(require_category_admin),
    service: CategoryService = Depends(get_category_service)
):
    """Replace the category image"""
    category = service.change_image(category_id, await read_image(image))
    return ResponseModel(
        success=True,
        data=CategoryResponse.model_validate(category),
        message="Category image updated successfully"
    )


@router.delete("/{category_id}/image", response_model=ResponseModel)
def remove_category_image(
    category_id: str,
    principal: Dict[str, Any] = Depends(require_category_admin),
    service: CategoryService = Depends(get_category_service)
):
    """Remove the category image"""
    category = service.remove_image(category_id)
    return ResponseModel(
        success=True,
        data=CategoryResponse.model_validate(category),
        message="Category image removed successfully"
    )


@router.delete("/{category_id}", response_model=ResponseModel)
def delete_category(
    category_id: str,
    principal: Dict[str, Any] = Depends(require_category_admin),
    service: CategoryService = Depends(get_category_service)
):
    """Soft delete a category"""
    result = service.delete(category_id)
    logger.info(f"Category {category_id} deleted by {principal.get('sub')}")

    return ResponseModel(
        success=True,
        data=result,
        message="Category deleted successfully"
    )
