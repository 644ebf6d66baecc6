"""Wire-level and display constants shared by every layer."""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Remote query surface
# ---------------------------------------------------------------------------

ACTION_LIST: Final = "list"
ACTION_DETAIL: Final = "detail"
ACTION_CLASS: Final = "class"

API_TYPE_JSON: Final = "json"
API_TYPE_MACCMS10: Final = "maccms10"
API_TYPES: Final = (API_TYPE_JSON, API_TYPE_MACCMS10)

SUCCESS_CODE: Final = 1
"""MacCMS reports success with ``code == 1``; anything else is a failure."""

ORDER_BY_TIME: Final = "time"
ORDER_BY_HITS: Final = "hits"
ORDER_BY_SCORE: Final = "score"
ORDERS: Final = (ORDER_BY_TIME, ORDER_BY_HITS, ORDER_BY_SCORE)

FILTER_TYPE: Final = "type"
FILTER_YEAR: Final = "year"
FILTER_AREA: Final = "area"

DEFAULT_PAGE_SIZE: Final = 20

# ---------------------------------------------------------------------------
# Display field keys and sentinels
# ---------------------------------------------------------------------------

FIELD_DURATION: Final = "formattedDuration"
FIELD_RATING: Final = "rating"
FIELD_PUB_TIME: Final = "formattedPubTime"
FIELD_QUALITY: Final = "qualityTag"

UNKNOWN_DURATION: Final = "未知时长"
NO_RATING: Final = "暂无评分"
UNKNOWN_TIME: Final = "未知时间"

QUALITY_HD: Final = "高清"
QUALITY_4K: Final = "超清4K"
QUALITY_SD: Final = "标清"

# ---------------------------------------------------------------------------
# Persisted endpoint configuration
# ---------------------------------------------------------------------------

KEY_ENDPOINTS: Final = "api_endpoints"
KEY_CURRENT_INDEX: Final = "current_api_index"
