# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Python client for the BuildTrack API."""
from buildtrack.client.api import ApiResult, BuildTrackClient
from buildtrack.client.feed import FeedPager

__all__ = ["ApiResult", "BuildTrackClient", "FeedPager"]
