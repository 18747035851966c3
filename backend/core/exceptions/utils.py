from uuid import uuid4
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request

CORRELATION_ID_HEADER = "X-Correlation-ID"


def get_correlation_id(request: Optional[Request] = None) -> str:
    """Correlation id sent by the POS client, or a fresh one"""
    if request is not None:
        incoming = request.headers.get(CORRELATION_ID_HEADER)
        if incoming:
            return incoming
    return str(uuid4())


def format_error_response(
    message: str,
    status_code: int = 500,
    error_code: Optional[str] = None,
    correlation_id: Optional[str] = None,
    request: Optional[Request] = None,
    **kwargs
) -> Dict[str, Any]:
    """Error envelope shared by every handler; mirrors Response.error"""
    body = {
        "success": False,
        "message": message,
        "error_code": error_code or f"ERR_{status_code}",
        "correlation_id": correlation_id or get_correlation_id(request),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if request is not None:
        body["path"] = request.url.path
    body.update(kwargs)
    return body
