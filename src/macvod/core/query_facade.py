"""Query facade — the typed, asynchronous query surface.

Every operation builds MacCMS query parameters, delegates to the
:class:`~macvod.core.binding.ApiClientBinding` (which parses and
enriches the response), and applies the facade's error split:

* transport failures propagate as
  :class:`~macvod.exceptions.RemoteCallFailed`;
* a response with a non-success ``code`` comes back as a degraded
  envelope (remote code and message, no items), never as an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import TypeVar

from macvod.core.binding import ApiClientBinding
from macvod.core.models import ApiEnvelope, CategoryRecord, VideoRecord
from macvod.exceptions import InvalidQuery
from macvod.utils.constants import (
    ACTION_CLASS,
    ACTION_DETAIL,
    ACTION_LIST,
    API_TYPE_JSON,
    API_TYPES,
    DEFAULT_PAGE_SIZE,
    FILTER_AREA,
    FILTER_TYPE,
    FILTER_YEAR,
    ORDER_BY_TIME,
    ORDERS,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_category_tree(
    categories: Iterable[CategoryRecord],
) -> dict[CategoryRecord, list[CategoryRecord]]:
    """Group categories into ``{top_level: [children...]}``.

    Order follows the input.  Children whose parent is absent are
    dropped; depth beyond two levels is not validated.
    """
    ordered = list(categories)
    tree: dict[CategoryRecord, list[CategoryRecord]] = {
        cat: [] for cat in ordered if cat.is_top_level
    }
    by_id = {cat.id: cat for cat in tree}
    for cat in ordered:
        parent = by_id.get(cat.parent_id)
        if not cat.is_top_level and parent is not None:
            tree[parent].append(cat)
    return tree


class QueryFacade:
    """Asynchronous MacCMS queries over the bound client.

    Parameters
    ----------
    binding:
        The client binding every call is routed through.
    api_type:
        The ``at`` dialect sent with every request (``json`` or
        ``maccms10``).
    """

    def __init__(self, binding: ApiClientBinding, *, api_type: str = API_TYPE_JSON) -> None:
        if api_type not in API_TYPES:
            raise InvalidQuery(
                f"Unsupported API type: {api_type}",
                hint=f"Choose one of: {', '.join(API_TYPES)}",
            )
        self._binding = binding
        self._api_type = api_type

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def get_all_categories(self) -> ApiEnvelope[CategoryRecord]:
        """Return every category, top-level and children alike."""
        envelope = await self._binding.fetch_categories(self._params(ACTION_CLASS))
        return self._checked(envelope, "获取分类失败")

    async def get_parent_categories(self) -> ApiEnvelope[CategoryRecord]:
        """Top-level categories only (``parent_id == 0``)."""
        envelope = await self.get_all_categories()
        return self._with_categories(envelope, [c for c in envelope.items if c.is_top_level])

    async def get_child_categories(self, parent_id: int) -> ApiEnvelope[CategoryRecord]:
        """Children of *parent_id*."""
        envelope = await self.get_all_categories()
        return self._with_categories(
            envelope,
            [c for c in envelope.items if c.parent_id == parent_id],
        )

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    async def get_category_videos(
        self,
        type_id: int,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        order: str = ORDER_BY_TIME,
    ) -> ApiEnvelope[VideoRecord]:
        """One page of videos in category *type_id*.

        Raises
        ------
        InvalidQuery
            If *page* or *limit* is below 1, or *order* is not one of
            ``time``, ``hits``, ``score``.
        """
        self._validate_paging(page, limit)
        if order not in ORDERS:
            raise InvalidQuery(
                f"Unsupported order: {order}",
                hint=f"Choose one of: {', '.join(ORDERS)}",
            )
        logger.debug(
            "Category videos: type=%s page=%s limit=%s order=%s",
            type_id, page, limit, order,
        )
        envelope = await self._binding.fetch_videos(
            self._params(ACTION_LIST, pg=page, t=type_id),
        )
        return self._checked(envelope, "获取分类视频失败")

    async def get_video_detail(self, video_id: int) -> ApiEnvelope[VideoRecord]:
        """Full record (including play URLs) for one video."""
        return await self.get_video_details([video_id])

    async def get_video_details(self, video_ids: Sequence[int]) -> ApiEnvelope[VideoRecord]:
        """Full records for several videos in one request.

        Raises
        ------
        InvalidQuery
            If *video_ids* is empty.
        """
        if not video_ids:
            raise InvalidQuery("At least one video id is required.")
        ids = ",".join(str(video_id) for video_id in video_ids)
        envelope = await self._binding.fetch_videos(self._params(ACTION_DETAIL, ids=ids))
        return self._checked(envelope, "获取视频详情失败")

    async def search_videos(
        self,
        keyword: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ApiEnvelope[VideoRecord]:
        """Keyword search.

        Raises
        ------
        InvalidQuery
            If *keyword* is blank or paging arguments are below 1.
        """
        keyword = keyword.strip()
        if not keyword:
            raise InvalidQuery("Search keyword must not be empty.")
        self._validate_paging(page, limit)
        envelope = await self._binding.fetch_videos(
            self._params(ACTION_LIST, pg=page, wd=keyword),
        )
        return self._checked(envelope, "搜索失败")

    async def get_recent_videos(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        hours: int | None = None,
    ) -> ApiEnvelope[VideoRecord]:
        """Latest updates, optionally restricted to the last *hours*."""
        self._validate_paging(page, limit)
        if hours is not None and hours < 1:
            raise InvalidQuery(f"Hours window must be positive, got {hours}.")
        envelope = await self._binding.fetch_videos(
            self._params(ACTION_LIST, pg=page, h=hours),
        )
        return self._checked(envelope, "获取最新视频失败")

    async def filter_videos(
        self,
        filters: Mapping[str, str],
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ApiEnvelope[VideoRecord]:
        """Filter videos by ``type``, ``year`` and ``area``.

        ``type`` is sent to the remote.  ``year`` and ``area`` are
        applied to the returned page only, and ``total`` is then set to
        the length of the filtered page; it does not describe matches on
        other pages.
        """
        self._validate_paging(page, limit)
        type_id = _parse_type_filter(filters.get(FILTER_TYPE))
        year = filters.get(FILTER_YEAR)
        area = filters.get(FILTER_AREA)
        ignored = set(filters) - {FILTER_TYPE, FILTER_YEAR, FILTER_AREA}
        if ignored:
            logger.debug("Ignoring unsupported filters: %s", sorted(ignored))

        envelope = await self._binding.fetch_videos(
            self._params(ACTION_LIST, pg=page, t=type_id),
        )
        envelope = self._checked(envelope, "筛选视频失败")
        if not envelope.ok or (year is None and area is None):
            return envelope

        items = tuple(
            record
            for record in envelope.items
            if (year is None or record.year == year) and (area is None or record.area == area)
        )
        return replace(envelope, items=items, total=len(items))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _params(self, action: str, **extra: object) -> dict[str, str]:
        params = {"ac": action, "at": self._api_type}
        params.update({key: str(value) for key, value in extra.items() if value is not None})
        return params

    @staticmethod
    def _validate_paging(page: int, limit: int) -> None:
        if page < 1:
            raise InvalidQuery(f"Page must be 1 or greater, got {page}.")
        if limit < 1:
            raise InvalidQuery(f"Limit must be 1 or greater, got {limit}.")

    @staticmethod
    def _checked(envelope: ApiEnvelope[T], fallback_msg: str) -> ApiEnvelope[T]:
        """Replace a non-success response with a degraded envelope."""
        if envelope.ok:
            return envelope
        msg = envelope.msg.strip() or fallback_msg
        logger.warning("Remote reported failure (code=%s): %s", envelope.code, msg)
        return ApiEnvelope.degraded(envelope.code, msg)

    @staticmethod
    def _with_categories(
        envelope: ApiEnvelope[CategoryRecord],
        categories: list[CategoryRecord],
    ) -> ApiEnvelope[CategoryRecord]:
        if not envelope.ok:
            return envelope
        selected = tuple(categories)
        return replace(envelope, items=selected, categories=selected, total=len(selected))


def _parse_type_filter(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric type filter %r", value)
        return None
