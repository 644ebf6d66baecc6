"""Pure response enrichment — raw records → display-ready records.

Every function in this module is a **pure** transformation — no I/O,
no side effects, fully deterministic, and total over its input domain:
``None`` or blank source text degrades to a sentinel string, never to an
exception.

Four display fields are derived per :class:`VideoRecord` and stored in
its ``extra`` mapping:

1. ``formattedDuration`` — from ``N分钟`` in the remarks.
2. ``rating`` — from ``R分`` in the remarks, kept as matched text.
3. ``formattedPubTime`` — bare dates padded to a full timestamp.
4. ``qualityTag`` — from ``HD`` / ``4K`` in the title.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Protocol

from macvod.core.models import ApiEnvelope, CategoryRecord, VideoRecord
from macvod.utils.constants import (
    FIELD_DURATION,
    FIELD_PUB_TIME,
    FIELD_QUALITY,
    FIELD_RATING,
    NO_RATING,
    QUALITY_4K,
    QUALITY_HD,
    QUALITY_SD,
    UNKNOWN_DURATION,
    UNKNOWN_TIME,
)

_DURATION_RE = re.compile(r"(\d+)分钟")
_RATING_RE = re.compile(r"(\d+(?:\.\d+)?)分")

_BARE_DATE_LENGTH = 10
_MIDNIGHT_SUFFIX = " 00:00:00"


# ---------------------------------------------------------------------------
# Field derivations
# ---------------------------------------------------------------------------

def format_duration(remarks: str | None) -> str:
    """Render ``N分钟`` as ``H小时M分钟`` (N ≥ 60) or ``N分钟``."""
    match = _DURATION_RE.search(remarks or "")
    minutes = int(match.group(1)) if match else 0
    if minutes >= 60:
        hours, rest = divmod(minutes, 60)
        return f"{hours}小时{rest}分钟"
    if minutes > 0:
        return f"{minutes}分钟"
    return UNKNOWN_DURATION


def extract_rating(remarks: str | None) -> str:
    """Return the score text preceding ``分``, unchanged."""
    match = _RATING_RE.search(remarks or "")
    if match is None:
        return NO_RATING
    return match.group(1)


def format_pub_time(update_time: str | None) -> str:
    """Pad a bare ``YYYY-MM-DD`` date to midnight; pass other text through."""
    if update_time is None or not update_time.strip():
        return UNKNOWN_TIME
    if len(update_time) == _BARE_DATE_LENGTH:
        return update_time + _MIDNIGHT_SUFFIX
    return update_time


def quality_tag(title: str | None) -> str:
    """Classify a title; ``HD`` is checked before ``4K``."""
    upper = (title or "").upper()
    if "HD" in upper:
        return QUALITY_HD
    if "4K" in upper:
        return QUALITY_4K
    return QUALITY_SD


def derive_display_fields(record: VideoRecord) -> dict[str, str]:
    """Compute all four display fields for *record*.

    Depends only on the record's immutable source fields, so repeated
    calls always yield the same values.
    """
    return {
        FIELD_DURATION: format_duration(record.remarks),
        FIELD_RATING: extract_rating(record.remarks),
        FIELD_PUB_TIME: format_pub_time(record.update_time),
        FIELD_QUALITY: quality_tag(record.name),
    }


def enrich_record(record: VideoRecord) -> VideoRecord:
    """Return a copy of *record* whose ``extra`` carries the display fields.

    Existing ``extra`` keys not produced here are preserved; core fields
    are never touched.
    """
    extra = dict(record.extra)
    extra.update(derive_display_fields(record))
    return replace(record, extra=extra)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------

class ResponseAdapterProtocol(Protocol):
    """Contract for the enrichment step every outbound call goes through."""

    def adapt(self, envelope: ApiEnvelope[VideoRecord]) -> ApiEnvelope[VideoRecord]:
        ...  # pragma: no cover

    def adapt_categories(
        self,
        envelope: ApiEnvelope[CategoryRecord],
    ) -> ApiEnvelope[CategoryRecord]:
        ...  # pragma: no cover


class ResponseAdapter:
    """Enriches every video record of an envelope with display fields.

    Ordering, paging metadata and the category list pass through
    unchanged.
    """

    def adapt(self, envelope: ApiEnvelope[VideoRecord]) -> ApiEnvelope[VideoRecord]:
        items = tuple(enrich_record(record) for record in envelope.items)
        return replace(envelope, items=items)

    def adapt_categories(
        self,
        envelope: ApiEnvelope[CategoryRecord],
    ) -> ApiEnvelope[CategoryRecord]:
        return envelope


class PassthroughAdapter:
    """Identity adapter, for callers that want the remote data verbatim."""

    def adapt(self, envelope: ApiEnvelope[VideoRecord]) -> ApiEnvelope[VideoRecord]:
        return envelope

    def adapt_categories(
        self,
        envelope: ApiEnvelope[CategoryRecord],
    ) -> ApiEnvelope[CategoryRecord]:
        return envelope
