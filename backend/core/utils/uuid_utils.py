"""
UUID helpers for ids arriving as strings over HTTP
"""
import uuid
from typing import Union

from core.exceptions import NotFoundException


def is_valid_uuid(value: Union[str, uuid.UUID]) -> bool:
    if isinstance(value, uuid.UUID):
        return True
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def parse_uuid(value: Union[str, uuid.UUID], resource: str = "resource") -> uuid.UUID:
    """Parse an id; a malformed id cannot match a row, so it is reported as not found."""
    if isinstance(value, uuid.UUID):
        return value
    if not is_valid_uuid(value):
        raise NotFoundException(message=f"{resource.capitalize()} not found", resource=resource)
    return uuid.UUID(str(value))
