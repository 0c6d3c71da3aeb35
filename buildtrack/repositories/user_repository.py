# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for User and profile operations."""
import asyncio
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.errors import Conflict, QueryTimeout
from buildtrack.models import database as db_models

PROFILE_FIELDS = (
    "handle",
    "name",
    "avatar_url",
    "bio",
    "location",
    "website",
    "github_username",
)


class UserRepository:
    """Repository for User operations."""

    def __init__(self, db: AsyncSession, query_timeout: float = 8.0):
        self.db = db
        self.query_timeout = query_timeout

    async def create(
        self,
        email: str,
        username: str,
        hashed_password: str,
        name: Optional[str] = None,
    ) -> db_models.User:
        """Create a new user."""
        user = db_models.User(
            email=email,
            username=username,
            hashed_password=hashed_password,
            name=name,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def get_by_id(self, user_id: UUID) -> Optional[db_models.User]:
        """Get user by ID."""
        result = await self.db.execute(select(db_models.User).where(db_models.User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[db_models.User]:
        """Get user by email."""
        result = await self.db.execute(select(db_models.User).where(db_models.User.email == email))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[db_models.User]:
        """Get user by username."""
        result = await self.db.execute(
            select(db_models.User).where(db_models.User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_by_handle(self, handle: str) -> Optional[db_models.User]:
        """Get user by public handle."""
        result = await self.db.execute(select(db_models.User).where(db_models.User.handle == handle))
        return result.scalar_one_or_none()

    async def get_profile(self, user_id: UUID) -> Optional[db_models.User]:
        """Get a profile, giving up after the configured timeout."""
        try:
            return await asyncio.wait_for(self.get_by_id(user_id), timeout=self.query_timeout)
        except asyncio.TimeoutError:
            raise QueryTimeout("Database operation timeout", detail=f"profile {user_id}")

    async def upsert_profile(self, user_id: UUID, **fields) -> Optional[db_models.User]:
        """Write the provided profile fields, giving up after the configured timeout."""
        try:
            return await asyncio.wait_for(
                self._upsert_profile(user_id, **fields), timeout=self.query_timeout
            )
        except asyncio.TimeoutError:
            raise QueryTimeout("Database operation timeout", detail=f"profile {user_id}")

    async def _upsert_profile(self, user_id: UUID, **fields) -> Optional[db_models.User]:
        user = await self.get_by_id(user_id)
        if user is None:
            return None

        handle = fields.get("handle")
        if handle and handle != user.handle:
            existing = await self.get_by_handle(handle)
            if existing is not None and existing.id != user_id:
                raise Conflict("Handle already taken", detail=handle)

        for key, value in fields.items():
            if key in PROFILE_FIELDS and value is not None:
                setattr(user, key, value)
        await self.db.flush()
        return user

    async def get_profiles_by_ids(self, user_ids: Iterable[UUID]) -> Dict[UUID, db_models.User]:
        """Fetch many profiles in one query, keyed by user id."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self.db.execute(select(db_models.User).where(db_models.User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    async def search(self, q: str, limit: int = 20) -> List[db_models.User]:
        """Case-insensitive search over handle and name."""
        pattern = f"%{q}%"
        result = await self.db.execute(
            select(db_models.User)
            .where(
                or_(
                    func.lower(db_models.User.handle).like(func.lower(pattern)),
                    func.lower(db_models.User.name).like(func.lower(pattern)),
                )
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_with_handles(
        self, limit: int = 20, exclude_ids: Optional[Iterable[UUID]] = None
    ) -> List[db_models.User]:
        """List onboarded builders (handle set), newest first."""
        query = select(db_models.User).where(db_models.User.handle.is_not(None))
        exclude = list(exclude_ids or [])
        if exclude:
            query = query.where(db_models.User.id.not_in(exclude))
        query = query.order_by(desc(db_models.User.created_at)).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
