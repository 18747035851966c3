from .api_exceptions import (
    APIException,
    ValidationException,
    NotFoundException,
    ConflictException,
    DatabaseException,
)

from .handlers import (
    api_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    sqlalchemy_exception_handler,
    general_exception_handler
)

__all__ = [
    # Exceptions
    "APIException",
    "ValidationException",
    "NotFoundException",
    "ConflictException",
    "DatabaseException",

    # Handlers
    "api_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "sqlalchemy_exception_handler",
    "general_exception_handler",
]
