import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .types import Granularity, TimeWindow
from .utils import format_iso_millis, parse_instant

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)
LONG_TERM_THRESHOLD = timedelta(days=3)


def resolve_time_window(
    requested_start: Optional[str] = None,
    requested_end: Optional[str] = None,
    now: Optional[datetime] = None
) -> TimeWindow:
    """
    Resolve the requested bounds into a TimeWindow.

    Missing or unparseable bounds fall back to the last 24 hours. Whether the
    window is long term is measured from ``now`` to the start, not from the end.
    Long-term windows are truncated to dates and aggregated daily.
    """
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)

    end = parse_instant(requested_end) or now
    start = parse_instant(requested_start) or (now - DEFAULT_WINDOW)

    if start >= end:
        logger.warning(
            f"Start time ({start.isoformat()}) is not before end time ({end.isoformat()}), "
            f"clamping start to {DEFAULT_WINDOW} before end"
        )
        start = end - DEFAULT_WINDOW

    is_long_term = (now - start) > LONG_TERM_THRESHOLD
    start_iso = format_iso_millis(start)
    end_iso = format_iso_millis(end)

    if is_long_term:
        granularity = Granularity.DAILY
        query_from, query_to = start_iso[:10], end_iso[:10]
    else:
        granularity = Granularity.HOURLY
        query_from, query_to = start_iso, end_iso

    logger.debug(f"""
Resolved time window:
-------------------
Start: {start_iso}
End: {end_iso}
Granularity: {granularity.value}
Long term: {is_long_term}
""")

    return TimeWindow(
        start=start,
        end=end,
        granularity=granularity,
        is_long_term=is_long_term,
        start_iso=start_iso,
        end_iso=end_iso,
        query_from=query_from,
        query_to=query_to,
    )
