from typing import Optional, Any


class DirectoryError(Exception):
    """
    Base exception for the directory application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundError(DirectoryError):
    """
    Raised when a referenced entity does not exist or has been soft-deleted.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class AccessDeniedError(DirectoryError):
    """
    Raised when the caller is authenticated but does not own the resource.
    """
    def __init__(self, message: str = "Access denied", details: Optional[Any] = None):
        super().__init__(message, code="ACCESS_DENIED", status_code=403, details=details)


class InvalidDataError(DirectoryError):
    """
    Raised when a payload passes schema validation but references bad data.
    """
    def __init__(self, message: str = "Invalid data", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=details)


class DuplicateError(DirectoryError):
    """
    Raised when a unique value (e.g. a category slug) is already taken.
    """
    def __init__(self, message: str = "Resource already exists", details: Optional[Any] = None):
        super().__init__(message, code="DUPLICATE", status_code=400, details=details)


class DuplicateReviewError(DirectoryError):
    """
    Raised when a user tries to review a business a second time.
    """
    def __init__(self, message: str = "You have already reviewed this business", details: Optional[Any] = None):
        super().__init__(message, code="DUPLICATE_REVIEW", status_code=400, details=details)
