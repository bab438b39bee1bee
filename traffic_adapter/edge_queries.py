import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .types import MetricDescriptor
from .utils import format_iso_seconds

API_VERSION = '2024-09-10'
SIGNATURE_METHOD = 'HMAC-SHA1'
SIGNATURE_VERSION = '1.0'

DEFAULT_INTERVAL = '60'
DEFAULT_LIMIT = '10'
DEFAULT_WINDOW = timedelta(hours=24)

# Dimension token for time series, which are not grouped
ALL_DIMENSION = 'ALL'


def new_nonce() -> str:
    return uuid.uuid4().hex


def build_edge_params(
    descriptor: MetricDescriptor,
    access_key_id: str,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    site_id: Optional[str] = None,
    interval: Optional[str] = None,
    limit: Optional[str] = None,
    now: Optional[datetime] = None,
    nonce: Optional[str] = None
) -> Dict[str, str]:
    """
    Build the unsigned query parameters for an edge analytics call.

    Caller-supplied times are passed through untouched; defaults cover the
    last 24 hours at second precision. No date truncation happens here.
    """
    now = now or datetime.now(timezone.utc)
    dimension = descriptor.dimension or ALL_DIMENSION
    fields = [{'FieldName': descriptor.summed_field, 'Dimension': [dimension]}]

    return {
        'AccessKeyId': access_key_id,
        'Action': descriptor.action,
        'EndTime': end_time or format_iso_seconds(now),
        'Fields': json.dumps(fields, separators=(',', ':')),
        'Format': 'json',
        'Interval': interval or DEFAULT_INTERVAL,
        'Limit': limit or DEFAULT_LIMIT,
        'Metric': dimension,
        'SignatureMethod': SIGNATURE_METHOD,
        'SignatureNonce': nonce or new_nonce(),
        'SignatureVersion': SIGNATURE_VERSION,
        'SiteId': site_id or '',
        'StartTime': start_time or format_iso_seconds(now - DEFAULT_WINDOW),
        'Timestamp': format_iso_seconds(now),
        'Version': API_VERSION,
    }
