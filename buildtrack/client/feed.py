# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Client-side feed state with cursor pagination and optimistic kudos."""
import logging
from typing import Dict, List, Optional, Set

from buildtrack.client.api import ApiResult, BuildTrackClient, IdLike
from buildtrack.models.api import CommentResponse, FeedItem

logger = logging.getLogger(__name__)


class FeedPager:
    """
    Holds the rows of one feed scope as they are paged in.

    The cursor is the created_at of the last row received. A page with fewer
    rows than page_size ends the feed. A row whose id was already received is
    never appended twice.
    """

    def __init__(self, client: BuildTrackClient, scope: str = "mine", page_size: int = 20):
        self.client = client
        self.scope = scope
        self.page_size = page_size
        self.items: List[FeedItem] = []
        self.cursor: Optional[str] = None
        self.has_more = True
        self.loading = False
        self.error: Optional[str] = None
        self.comments: Dict[str, List[CommentResponse]] = {}
        self._seen: Set[str] = set()

    async def load_first(self) -> ApiResult:
        """Drop what is loaded and fetch the first page."""
        self.items = []
        self.cursor = None
        self.has_more = True
        self.comments = {}
        self._seen = set()
        return await self._load(None)

    async def load_more(self) -> ApiResult:
        """Fetch the page after the last row. No-op once the feed is exhausted."""
        if not self.has_more or self.loading:
            return ApiResult(data=[])
        return await self._load(self.cursor)

    async def _load(self, cursor: Optional[str]) -> ApiResult:
        self.loading = True
        try:
            result = await self.client.get_feed(self.scope, cursor=cursor, limit=self.page_size)
        finally:
            self.loading = False

        if not result.ok:
            self.error = result.error
            return result

        self.error = None
        rows = [FeedItem.model_validate(row) for row in result.data["items"]]
        if rows:
            self.cursor = rows[-1].created_at.isoformat()
        self.has_more = len(rows) >= self.page_size

        added = []
        for row in rows:
            key = str(row.id)
            if key in self._seen:
                continue
            self._seen.add(key)
            added.append(row)
        self.items.extend(added)
        return ApiResult(data=added)

    def _index(self, session_id: IdLike) -> Optional[int]:
        key = str(session_id)
        for i, item in enumerate(self.items):
            if str(item.id) == key:
                return i
        return None

    async def toggle_kudos(self, session_id: IdLike) -> ApiResult:
        """
        Like or unlike a row optimistically.

        The row flips immediately; if the remote call fails every row is put
        back exactly as it was before the toggle.
        """
        i = self._index(session_id)
        if i is None:
            return ApiResult(error="Session not in feed")

        snapshot = list(self.items)
        item = self.items[i]
        liked = not item.liked
        count = item.kudos_count + 1 if liked else max(item.kudos_count - 1, 0)
        self.items[i] = item.model_copy(update={"liked": liked, "kudos_count": count})

        if liked:
            result = await self.client.give_kudos(session_id)
        else:
            result = await self.client.remove_kudos(session_id)

        if not result.ok:
            logger.warning(f"Kudos toggle on {session_id} failed, rolling back: {result.error}")
            self.items = snapshot
            self.error = result.error
        return result

    async def load_comments(self, session_id: IdLike) -> ApiResult:
        """Fetch a row's comments on demand."""
        result = await self.client.list_comments(session_id)
        if result.ok:
            self.comments[str(session_id)] = [CommentResponse.model_validate(c) for c in result.data]
        return result
