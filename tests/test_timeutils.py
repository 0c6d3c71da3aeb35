# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import uuid
from datetime import datetime, timezone

import pytest

from buildtrack.utils.timeutils import ensure_aware, format_duration, is_well_formed_uuid


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0m"), (59, "0m"), (125, "2m"), (3600, "1h 0m"), (3900, "1h 5m"), (-5, "0m")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_ensure_aware():
    naive = datetime(2026, 1, 1, 12, 0)
    assert ensure_aware(naive).tzinfo is timezone.utc
    assert ensure_aware(None) is None


def test_is_well_formed_uuid():
    assert is_well_formed_uuid(uuid.uuid4())
    assert is_well_formed_uuid(str(uuid.uuid4()))
    assert not is_well_formed_uuid("00000000-0000-0000-0000-000000000000")
    assert not is_well_formed_uuid(42)
