# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for Project operations."""
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models


class ProjectRepository:
    """Repository for Project operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, user_id: UUID, name: str, **fields) -> db_models.Project:
        """Create a new project."""
        project = db_models.Project(user_id=user_id, name=name, **fields)
        self.db.add(project)
        await self.db.flush()
        return project

    async def get_by_id(self, project_id: UUID) -> Optional[db_models.Project]:
        """Get project by ID."""
        result = await self.db.execute(
            select(db_models.Project).where(db_models.Project.id == project_id)
        )
        return result.scalar_one_or_none()

    async def list_by_owner(self, user_id: UUID) -> List[db_models.Project]:
        """List all projects for a user, newest first."""
        result = await self.db.execute(
            select(db_models.Project)
            .where(db_models.Project.user_id == user_id)
            .order_by(desc(db_models.Project.created_at))
        )
        return list(result.scalars().all())

    async def update(self, project_id: UUID, **kwargs) -> Optional[db_models.Project]:
        """Update a project."""
        project = await self.get_by_id(project_id)
        if project:
            for key, value in kwargs.items():
                if hasattr(project, key):
                    setattr(project, key, value)
            await self.db.flush()
        return project

    async def delete(self, project_id: UUID) -> bool:
        """Delete a project."""
        project = await self.get_by_id(project_id)
        if project:
            await self.db.delete(project)
            await self.db.flush()
            return True
        return False

    async def search_public(self, q: str, limit: int = 20) -> List[db_models.Project]:
        """Case-insensitive search over public project names and descriptions."""
        pattern = func.lower(f"%{q}%")
        result = await self.db.execute(
            select(db_models.Project)
            .where(
                db_models.Project.is_public.is_(True),
                or_(
                    func.lower(db_models.Project.name).like(pattern),
                    func.lower(db_models.Project.description).like(pattern),
                ),
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_owner(self, user_id: UUID) -> int:
        """Number of projects a user owns."""
        result = await self.db.execute(
            select(func.count(db_models.Project.id)).where(db_models.Project.user_id == user_id)
        )
        return result.scalar_one() or 0

    async def list_public_with_activity(
        self, limit: int = 20
    ) -> List[Tuple[db_models.Project, int, int, Optional[object]]]:
        """Public projects with (session count, total seconds, last session time)."""
        activity = (
            select(
                db_models.Session.project_id.label("project_id"),
                func.count(db_models.Session.id).label("session_count"),
                func.coalesce(func.sum(db_models.Session.duration), 0).label("total_time"),
                func.max(db_models.Session.created_at).label("last_activity"),
            )
            .where(db_models.Session.is_deleted.is_(False))
            .group_by(db_models.Session.project_id)
            .subquery()
        )
        result = await self.db.execute(
            select(
                db_models.Project,
                func.coalesce(activity.c.session_count, 0),
                func.coalesce(activity.c.total_time, 0),
                activity.c.last_activity,
            )
            .outerjoin(activity, activity.c.project_id == db_models.Project.id)
            .where(db_models.Project.is_public.is_(True))
            .order_by(desc(db_models.Project.created_at))
            .limit(limit)
        )
        return [(row[0], int(row[1]), int(row[2]), row[3]) for row in result.all()]
