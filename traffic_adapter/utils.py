import logging
from datetime import datetime, timezone
from typing import Any, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 instant or date into an aware UTC datetime.

    Accepts fractional seconds of any precision, offsets and ``Z``. Naive
    values are taken as UTC. Returns None when the value is empty or cannot
    be parsed.
    """
    if not value:
        return None
    parsed = pd.to_datetime(value.strip(), utc=True, errors='coerce', format='ISO8601')
    if pd.isna(parsed):
        logger.warning(f"Could not parse instant: {value!r}")
        return None
    return parsed.to_pydatetime().astimezone(timezone.utc)


def format_iso_millis(moment: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def format_iso_seconds(moment: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    return moment.astimezone(timezone.utc).replace(microsecond=0).strftime('%Y-%m-%dT%H:%M:%SZ')


def convert_to_serializable(obj: Any) -> Any:
    """Convert numpy/pandas types to JSON serializable Python types."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {str(k): convert_to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_to_serializable(item) for item in obj]
    elif obj is not None and not isinstance(obj, str) and pd.isna(obj):
        return None
    return obj
