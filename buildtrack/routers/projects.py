# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Projects router."""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models import database as db_models
from buildtrack.models.api import (
    CommunityProject,
    FeedPage,
    ProfileSummary,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from buildtrack.models.database import User
from buildtrack.repositories import ProjectRepository, UserRepository
from buildtrack.services.feed import FeedService
from buildtrack.utils.timeutils import ensure_aware

router = APIRouter(prefix="/api/projects", tags=["projects"])
logger = logging.getLogger(__name__)


def activity_score(session_count: int, total_seconds: int) -> int:
    """Ranking used on the community page: 10 per session plus hours built."""
    return session_count * 10 + total_seconds // 3600


async def _get_visible_project(db: AsyncSession, project_id: UUID, user: User) -> db_models.Project:
    project = await ProjectRepository(db).get_by_id(project_id)
    if project is None or (not project.is_public and project.user_id != user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


async def _get_own_project(db: AsyncSession, project_id: UUID, user: User) -> db_models.Project:
    project = await ProjectRepository(db).get_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if project.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return project


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Create a new project."""
    fields = request.model_dump()
    project = await ProjectRepository(db).create(current_user.id, fields.pop("name"), **fields)
    await db.commit()
    logger.info(f"Created project {project.id} for {current_user.id}")
    return ProjectResponse.model_validate(project)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """List the caller's projects, newest first."""
    projects = await ProjectRepository(db).list_by_owner(current_user.id)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get("/search", response_model=List[ProjectResponse])
async def search_projects(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Search public projects by name or description."""
    projects = await ProjectRepository(db).search_public(q, limit=limit)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get("/community", response_model=List[CommunityProject])
async def community_projects(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Public projects ranked by activity."""
    rows = await ProjectRepository(db).list_public_with_activity(limit=limit)
    creators = await UserRepository(db).get_profiles_by_ids(project.user_id for project, *_ in rows)

    cards = []
    for project, session_count, total_time, last_activity in rows:
        creator = creators.get(project.user_id)
        cards.append(
            CommunityProject(
                id=project.id,
                name=project.name,
                emoji=project.emoji,
                color=project.color,
                is_public=project.is_public,
                description=project.description,
                creator=ProfileSummary.model_validate(creator) if creator else None,
                total_time=total_time,
                sessions=session_count,
                activity_score=activity_score(session_count, total_time),
                last_activity=ensure_aware(last_activity or project.created_at),
            )
        )
    cards.sort(key=lambda card: card.activity_score, reverse=True)
    return cards


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Get a project (public ones, or the caller's own)."""
    return ProjectResponse.model_validate(await _get_visible_project(db, project_id, current_user))


@router.get("/{project_id}/sessions", response_model=FeedPage)
async def get_project_sessions(
    project_id: UUID,
    cursor: Optional[datetime] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Sessions logged against a project, paginated by created_at cursor."""
    await _get_visible_project(db, project_id, current_user)
    return await FeedService(db).project_page(project_id, current_user.id, limit=limit, cursor=cursor)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    request: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Update a project."""
    await _get_own_project(db, project_id, current_user)
    project = await ProjectRepository(db).update(project_id, **request.model_dump(exclude_unset=True))
    await db.commit()
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Delete a project and its sessions."""
    await _get_own_project(db, project_id, current_user)
    await ProjectRepository(db).delete(project_id)
    await db.commit()
