# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for Report operations."""
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models


class ReportRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        reporter_id: UUID,
        entity_type: str,
        entity_id: UUID,
        reason: str,
        details: Optional[str] = None,
    ) -> db_models.Report:
        """File a report against a session, comment or profile."""
        report = db_models.Report(
            reporter_id=reporter_id,
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
            details=details,
        )
        self.db.add(report)
        await self.db.flush()
        return report
