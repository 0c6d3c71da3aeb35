# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Activity feed and content reports."""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.deps import Settings, get_settings
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models.api import FeedPage, ReportCreate
from buildtrack.models.database import User
from buildtrack.repositories import ReportRepository
from buildtrack.services.feed import FeedService

router = APIRouter(prefix="/api", tags=["feed"])
logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)


@router.get("/feed", response_model=FeedPage)
async def get_feed(
    scope: str = Query("mine", pattern=r"^(mine|following|global)$"),
    cursor: Optional[datetime] = Query(None, description="created_at of the last row already shown"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    settings: Settings = Depends(get_settings),
):
    """
    One page of the activity feed.

    Pass the previous page's ``next_cursor`` to get the next one. ``has_more``
    is false once a page comes back shorter than ``limit``.
    """
    return await FeedService(db).get_page(
        current_user.id,
        scope=scope,
        limit=limit or settings.feed_page_size,
        cursor=cursor,
    )


@router.post("/reports", status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def report_content(
    request: Request,
    payload: ReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Report a session, comment, profile or live session."""
    report = await ReportRepository(db).create(
        reporter_id=current_user.id,
        entity_type=payload.entity_type,
        entity_id=payload.entity_id,
        reason=payload.reason,
        details=payload.details,
    )
    await db.commit()
    logger.info(f"{current_user.id} reported {payload.entity_type} {payload.entity_id}")
    return {"id": str(report.id), "status": "received"}
