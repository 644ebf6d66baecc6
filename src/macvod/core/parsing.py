"""Raw-dict → domain-model parsers.

Every function in this module is **total** over JSON-decoded input:
missing keys, ``None`` values, numbers delivered as strings and
malformed list entries degrade to defaults instead of raising.  The
remote API is loosely typed and two response shapes exist in the wild
(categories under ``class`` or under ``type``, ``limit`` as a string or
an int); both are absorbed here so nothing downstream has to care.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from macvod.core.models import ApiEnvelope, CategoryRecord, Episode, VideoRecord
from macvod.utils.constants import DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EPISODE_SEPARATOR = "#"
_NAME_URL_SEPARATOR = "$"
_PLAYABLE_SCHEMES = ("http://", "https://")


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

def _as_int(value: Any, default: int = 0) -> int:
    """Coerce ints, finite floats and numeric strings; anything else → *default*."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except (ValueError, OverflowError):
            return default
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    return default


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return _as_str(value)


def _dict_entries(raw: object) -> list[Mapping[str, Any]]:
    """Return the dict entries of a raw JSON array, skipping the rest."""
    if not isinstance(raw, list):
        return []
    return [entry for entry in raw if isinstance(entry, Mapping)]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def parse_video(raw: Mapping[str, Any]) -> VideoRecord:
    """Convert one raw ``vod_*`` object into a :class:`VideoRecord`."""
    return VideoRecord(
        id=_as_int(raw.get("vod_id")),
        name=_as_str(raw.get("vod_name")),
        type_id=_as_int(raw.get("type_id")),
        type_name=_as_str(raw.get("type_name")),
        update_time=_as_str(raw.get("vod_time")),
        remarks=_as_str(raw.get("vod_remarks")),
        play_from=_as_str(raw.get("vod_play_from")),
        play_url=_as_str(raw.get("vod_play_url")),
        thumbnail=_as_str(raw.get("vod_pic")),
        subtitle=_as_optional_str(raw.get("vod_sub")),
        name_en=_as_optional_str(raw.get("vod_en")),
        letter=_as_optional_str(raw.get("vod_letter")),
        actor=_as_optional_str(raw.get("vod_actor")),
        director=_as_optional_str(raw.get("vod_director")),
        blurb=_as_optional_str(raw.get("vod_blurb")),
        area=_as_optional_str(raw.get("vod_area")),
        language=_as_optional_str(raw.get("vod_lang")),
        year=_as_optional_str(raw.get("vod_year")),
        score=_as_optional_str(raw.get("vod_score")),
        score_all=_as_optional_str(raw.get("vod_score_all")),
        score_num=_as_optional_str(raw.get("vod_score_num")),
        content=_as_optional_str(raw.get("vod_content")),
    )


def parse_category(raw: Mapping[str, Any]) -> CategoryRecord:
    """Convert one raw ``type_*`` object into a :class:`CategoryRecord`."""
    return CategoryRecord(
        id=_as_int(raw.get("type_id")),
        parent_id=_as_int(raw.get("type_pid")),
        name=_as_str(raw.get("type_name")),
    )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

def _raw_categories(raw: Mapping[str, Any]) -> object:
    # ``class`` on current deployments, ``type`` on older ones.
    categories = raw.get("class")
    if categories is None:
        categories = raw.get("type")
    return categories


def _parse_categories(raw: Mapping[str, Any]) -> tuple[CategoryRecord, ...]:
    return tuple(parse_category(entry) for entry in _dict_entries(_raw_categories(raw)))


def parse_envelope(
    raw: Mapping[str, Any],
    item_parser: Callable[[Mapping[str, Any]], T],
) -> ApiEnvelope[T]:
    """Convert a raw response dict into an :class:`ApiEnvelope`.

    *item_parser* converts each dict entry of ``list``; non-dict entries
    are skipped.
    """
    items = tuple(item_parser(entry) for entry in _dict_entries(raw.get("list")))
    return ApiEnvelope(
        code=_as_int(raw.get("code")),
        msg=_as_str(raw.get("msg")),
        page=_as_int(raw.get("page"), 1),
        page_count=_as_int(raw.get("pagecount"), 1),
        limit=_as_int(raw.get("limit"), DEFAULT_PAGE_SIZE),
        total=_as_int(raw.get("total")),
        items=items,
        categories=_parse_categories(raw),
    )


def parse_video_envelope(raw: Mapping[str, Any]) -> ApiEnvelope[VideoRecord]:
    return parse_envelope(raw, parse_video)


def parse_category_envelope(raw: Mapping[str, Any]) -> ApiEnvelope[CategoryRecord]:
    """Parse a ``class`` response; the category list becomes the items.

    A ``class`` call may also carry a page of videos under ``list``;
    those are ignored here.
    """
    categories = _parse_categories(raw)
    return ApiEnvelope(
        code=_as_int(raw.get("code")),
        msg=_as_str(raw.get("msg")),
        page=_as_int(raw.get("page"), 1),
        page_count=_as_int(raw.get("pagecount"), 1),
        limit=_as_int(raw.get("limit"), DEFAULT_PAGE_SIZE),
        total=len(categories),
        items=categories,
        categories=categories,
    )


# ---------------------------------------------------------------------------
# Play URLs
# ---------------------------------------------------------------------------

def parse_episodes(play_url: str | None) -> list[Episode]:
    """Split a ``name$url#name$url`` string into playable episodes.

    Entries without a ``$`` separator, and entries whose URL does not
    start with ``http://`` or ``https://``, are dropped silently.
    """
    if not play_url:
        return []

    episodes: list[Episode] = []
    for chunk in play_url.split(_EPISODE_SEPARATOR):
        parts = chunk.split(_NAME_URL_SEPARATOR)
        if len(parts) < 2:
            logger.debug("Dropping malformed episode entry: %r", chunk)
            continue
        name, url = parts[0], parts[1].strip()
        if not url.startswith(_PLAYABLE_SCHEMES):
            logger.debug("Dropping episode %r with unplayable url %r", name, url)
            continue
        episodes.append(Episode(name=name, url=url))
    return episodes
