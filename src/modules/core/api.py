"""HTTP translation of domain errors shared by every module's views.

Views catch ``DomainError`` and hand it to ``domain_error_response``;
anything else propagates to DRF's default handling.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response

from modules.core.exceptions import (
    ConcurrentModification,
    DomainError,
    NotFound,
    Unauthorized,
)

logger = structlog.get_logger(__name__)


def domain_error_response(exc: DomainError) -> Response:
    """Map a domain exception onto ``{"detail": ...}`` with the right status.

    NotFound -> 404, Unauthorized -> 403, ConcurrentModification -> 409
    (with ``current_version``), every other business rule -> 400.
    """
    body = {"detail": str(exc), "code": type(exc).__name__}
    if isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, Unauthorized):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, ConcurrentModification):
        code = status.HTTP_409_CONFLICT
        body["current_version"] = exc.current_version
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.info("api.domain_error", error=type(exc).__name__, status_code=code)
    return Response(body, status=code)


def invalid_id_response(pk: Optional[str]) -> Optional[Response]:
    """400 response for a malformed UUID path parameter, ``None`` if valid."""
    try:
        UUID(str(pk))
    except ValueError:
        return Response(
            {"detail": "Invalid ID format."},
            status=status.HTTP_400_BAD_REQUEST,
        )
    return None


def expected_version(request: Request) -> Optional[int]:
    """Version the caller last saw, from ``If-Match`` or the ``version`` field.

    Raises:
        ValueError: the value is not an integer.
    """
    raw = request.headers.get("If-Match")
    if raw is None and hasattr(request.data, "get"):
        raw = request.data.get("version")
    if raw is None or raw == "":
        return None
    return int(str(raw).strip().strip('"').removeprefix("W/").strip('"'))
