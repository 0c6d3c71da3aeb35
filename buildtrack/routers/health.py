# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Health check router."""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.deps import get_settings
from buildtrack.models.api import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(settings=Depends(get_settings), db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Basic health check endpoint."""

    # Check service dependencies
    services = {}

    try:
        await db.execute(text("SELECT 1"))
        services["database"] = "ok"
    except Exception:
        services["database"] = "unavailable"

    services["realtime"] = "redis" if settings.enable_realtime else "in_process"
    services["github"] = "configured" if settings.github_client_id else "not_configured"

    status = "healthy" if services["database"] == "ok" else "degraded"
    return HealthResponse(status=status, version=settings.api_version, services=services)
