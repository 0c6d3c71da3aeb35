# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Time helpers shared by models, repositories and the session timer."""
import re
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite round trips) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_well_formed_uuid(value) -> bool:
    """True for canonical RFC 4122 (versions 1-5) identifiers."""
    if isinstance(value, UUID):
        value = str(value)
    return isinstance(value, str) and bool(_UUID_RE.match(value))


def format_duration(seconds: int) -> str:
    """Render a duration as ``1h 5m`` / ``12m``."""
    hours, remainder = divmod(max(int(seconds), 0), 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
