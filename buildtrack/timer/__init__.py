# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Session timer: state machine, per-user registry and live ticker."""
from buildtrack.timer.registry import TimerRegistry, get_timer_registry
from buildtrack.timer.state import (
    FinishedSession,
    SessionTimer,
    TimerStateName,
    parse_project_id,
)

__all__ = [
    "FinishedSession",
    "SessionTimer",
    "TimerRegistry",
    "TimerStateName",
    "get_timer_registry",
    "parse_project_id",
]
