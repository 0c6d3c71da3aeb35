# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Domain exceptions and their HTTP rendering."""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from buildtrack.models.api.common_schema import ErrorResponse

logger = logging.getLogger(__name__)


class BuildTrackError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationFailed(BuildTrackError):
    """Rejected before any persistence call was attempted."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_failed"


class NotFound(BuildTrackError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(BuildTrackError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class PermissionDenied(BuildTrackError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"


class QueryTimeout(BuildTrackError):
    """A guarded query did not finish within its deadline."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    code = "timeout"


class UpstreamError(BuildTrackError):
    """A third-party API (GitHub) returned an error or was unreachable."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"


async def buildtrack_error_handler(request: Request, exc: BuildTrackError) -> JSONResponse:
    """Render a domain error as the standard error envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    body = ErrorResponse(error=exc.message, detail=exc.detail, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    """Attach domain error handlers to the application."""
    app.add_exception_handler(BuildTrackError, buildtrack_error_handler)
