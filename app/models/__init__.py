from app.models.category import Category

__all__ = [
    "Category",
]
