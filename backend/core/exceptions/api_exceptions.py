from fastapi import HTTPException
from datetime import datetime
from uuid import uuid4
from typing import Any, Dict, List, Optional


class APIException(HTTPException):
    """Custom API exception with enhanced error details"""

    def __init__(
        self,
        status_code: int,
        message: str = "An unexpected API error occurred",
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **kwargs
    ):
        self.message = message
        self.detail = detail or message
        self.error_code = error_code or f"ERR_{status_code}"
        self.correlation_id = correlation_id or str(uuid4())
        self.timestamp = datetime.now().isoformat()

        super().__init__(status_code=status_code, detail=self.detail, **kwargs)


class ValidationException(APIException):
    """Exception for validation errors surfaced at the HTTP boundary"""

    def __init__(self, message: str = "Validation failed", errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(
            status_code=422,
            message=message,
            error_code="VALIDATION_ERROR"
        )


class NotFoundException(APIException):
    """Exception for resource not found errors"""

    def __init__(self, message: str = "Resource not found", resource: Optional[str] = None):
        self.resource = resource
        super().__init__(
            status_code=404,
            message=message,
            error_code="NOT_FOUND"
        )


class ConflictException(APIException):
    """Exception for conflict errors"""

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(
            status_code=409,
            message=message,
            error_code="CONFLICT_ERROR"
        )


class DatabaseException(APIException):
    """Exception for database errors"""

    def __init__(self, message: str = "Database error occurred", metadata: Optional[Dict[str, Any]] = None):
        self.metadata = metadata or {}
        super().__init__(
            status_code=500,
            message=message,
            error_code="DATABASE_ERROR"
        )
