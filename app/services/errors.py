"""
Category service errors

ValidationFailed, NotFound and Conflict are expected outcomes the caller can fix.
StorageFault is an unexpected persistence or object-storage failure.
"""
from typing import List, Optional
from fastapi import status


class CategoryError(Exception):
    """Base class for every error raised by the category services"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "SERVER_ERROR"

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = list(details or [])

    def to_dict(self) -> dict:
        return {
            "success": False,
            "message": self.message,
            "error": {
                "code": self.code,
                "details": self.details
            }
        }


class ValidationFailed(CategoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, details: List[str], message: str = "Validation failed"):
        super().__init__(message, details)


class NotFound(CategoryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class Conflict(CategoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class StorageFault(CategoryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_FAULT"
