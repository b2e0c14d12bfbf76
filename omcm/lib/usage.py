"""Usage cache utilities.

Reads plan usage written by the HUD into its cache file and answers
threshold questions about it. Everything degrades to "no usage data"
rather than raising.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from omcm.lib.paths import get_usage_cache_path
from omcm.lib.usage_model import ThresholdResult, UsageRecord

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 90
WARNING_THRESHOLD = 70


def get_usage_from_cache(path: Path | None = None) -> UsageRecord | None:
    """Read the usage cache.

    Args:
        path: Cache file (defaults to ``get_usage_cache_path()``)

    Returns:
        UsageRecord, or None if the cache is missing, unreadable or has no data.
    """
    cache_path = path or get_usage_cache_path()
    if not cache_path.exists():
        return None

    try:
        cache = json.loads(cache_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("Usage cache unreadable (%s): %s", cache_path, e)
        return None

    data = cache.get("data") if isinstance(cache, dict) else None
    if not isinstance(data, dict):
        return None

    try:
        return UsageRecord(
            five_hour=data.get("fiveHourPercent") or 0,
            weekly=data.get("weeklyPercent") or 0,
            five_hour_resets_at=data.get("fiveHourResetsAt") or None,
            weekly_resets_at=data.get("weeklyResetsAt") or None,
            timestamp=cache.get("timestamp"),
            error=bool(cache.get("error", False)),
        )
    except ValidationError as e:
        logger.debug("Usage cache has unexpected shape: %s", e)
        return None


def check_threshold(
    usage: UsageRecord | None, threshold: float = DEFAULT_THRESHOLD
) -> ThresholdResult:
    """Compare usage against ``threshold`` (five-hour window first)."""
    if usage is None:
        return ThresholdResult(exceeded=False, type=None, percent=0)

    if usage.five_hour >= threshold:
        return ThresholdResult(exceeded=True, type="fiveHour", percent=usage.five_hour)

    if usage.weekly >= threshold:
        return ThresholdResult(exceeded=True, type="weekly", percent=usage.weekly)

    return ThresholdResult(
        exceeded=False, type=None, percent=max(usage.five_hour, usage.weekly)
    )


def get_usage_level(usage: UsageRecord | None) -> str:
    """Classify usage as critical, warning, normal or unknown."""
    if usage is None:
        return "unknown"

    max_percent = max(usage.five_hour, usage.weekly)
    if max_percent >= DEFAULT_THRESHOLD:
        return "critical"
    if max_percent >= WARNING_THRESHOLD:
        return "warning"
    return "normal"


def format_time_until_reset(
    reset_at: datetime | None, now: datetime | None = None
) -> str:
    """Format the time remaining until ``reset_at`` (e.g. "2시간 30분")."""
    if reset_at is None:
        return "N/A"

    if reset_at.tzinfo is None:
        reset_at = reset_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_seconds = (reset_at - now).total_seconds()
    if diff_seconds <= 0:
        return "곧 리셋"

    diff_minutes = int(diff_seconds // 60)
    diff_hours = diff_minutes // 60
    diff_days = diff_hours // 24

    if diff_days > 0:
        return f"{diff_days}일 {diff_hours % 24}시간"
    return f"{diff_hours}시간 {diff_minutes % 60}분"


def format_percent(value: float) -> str:
    return f"{value:g}"


def get_usage_summary(usage: UsageRecord | None, now: datetime | None = None) -> str:
    """One-line usage summary with reset times."""
    if usage is None:
        return "사용량 정보 없음"

    five_hour_reset = format_time_until_reset(usage.five_hour_resets_at, now)
    weekly_reset = format_time_until_reset(usage.weekly_resets_at, now)
    return (
        f"5시간: {format_percent(usage.five_hour)}% (리셋: {five_hour_reset}), "
        f"주간: {format_percent(usage.weekly)}% (리셋: {weekly_reset})"
    )


class CacheUsageReader:
    """UsageReader backed by the HUD cache file."""

    def __init__(self, path: Path | None = None):
        self.path = path

    def read(self) -> UsageRecord | None:
        return get_usage_from_cache(self.path)


class UsageThresholdChecker:
    """ThresholdChecker using ``check_threshold``."""

    def check(self, usage: UsageRecord | None, threshold: float) -> ThresholdResult:
        return check_threshold(usage, threshold)
