"""
Errors raised by the integration services (WhatsApp, reminders, assistants).
They are rendered as {"success": false, "error": ..., "details": ...} instead of
FastAPI's {"detail": ...} body.
"""
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    def __init__(
        self,
        status_code: int,
        error: str,
        details: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.error}
        if self.details is not None:
            body["details"] = self.details
        body.update(self.extra)
        return body


async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.error)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
