import logging
import math
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .graphql_queries import ZONE_TOPN_DATASET, time_series_dimension
from .types import (
    Distribution, DistributionEntry, MetricDescriptor, RawDataItem,
    TimeSeries, TimeSeriesPoint, TimeWindow, TrafficResponse
)
from .utils import convert_to_serializable, parse_instant

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def _viewer_nodes(payload: Mapping[str, Any], node: str) -> List[Dict[str, Any]]:
    """Extract ``data.viewer.<node>`` tolerating missing levels."""
    data = payload.get('data') or {}
    viewer = data.get('viewer') or {}
    return viewer.get(node) or []


def rank_entries(entries: List[DistributionEntry]) -> List[DistributionEntry]:
    """Descending by value; ties keep upstream order."""
    return sorted(entries, key=lambda entry: entry.value or 0, reverse=True)


def normalize_zone_totals(
    payload: Mapping[str, Any],
    descriptor: MetricDescriptor,
    window: TimeWindow,
    zone_names: Mapping[str, str]
) -> Distribution:
    """Sum the metric field per zone and rank zones by total."""
    field = descriptor.summed_field
    dataset = window.granularity.dataset
    entries = []
    for zone in _viewer_nodes(payload, 'zones'):
        zone_id = zone.get('zoneTag')
        rows = zone.get(dataset) or []
        total = sum((row.get('sum') or {}).get(field) or 0 for row in rows)
        entries.append(DistributionEntry(key=zone_names.get(zone_id, zone_id), value=total))
    return Distribution(entries=rank_entries(entries))


def normalize_account_distribution(
    payload: Mapping[str, Any],
    descriptor: MetricDescriptor
) -> Optional[Distribution]:
    """Rows are already grouped upstream; map and rank them."""
    accounts = _viewer_nodes(payload, 'accounts')
    if not accounts:
        return None
    entries = [
        DistributionEntry(
            key=(row.get('dimensions') or {}).get(descriptor.dimension),
            value=(row.get('sum') or {}).get(descriptor.summed_field),
        )
        for row in accounts[0].get('resultData') or []
    ]
    return Distribution(entries=rank_entries(entries))


def _merge_time_buckets(rows: List[Dict[str, Any]], dimension: str, field: str) -> pd.Series:
    """Epoch second -> summed value, ascending. Rows with unparseable times are dropped."""
    frame = pd.DataFrame(
        [
            {
                'time': (row.get('dimensions') or {}).get(dimension),
                'value': (row.get('sum') or {}).get(field) or 0,
            }
            for row in rows
        ],
        columns=['time', 'value'],
    )
    frame['timestamp'] = pd.to_datetime(frame['time'], utc=True, errors='coerce', format='ISO8601')

    invalid = frame['timestamp'].isna()
    if invalid.any():
        logger.warning(f"Dropping {int(invalid.sum())} rows with unparseable '{dimension}' values")
        frame = frame[~invalid]

    if frame.empty:
        return pd.Series(dtype='int64')

    epoch = (frame['timestamp'] - pd.Timestamp(0, tz='UTC')) // pd.Timedelta(seconds=1)
    return frame['value'].groupby(epoch.astype('int64'), sort=True).sum()


def rollup_daily(buckets: pd.Series) -> pd.Series:
    """Re-sum hourly buckets into UTC days keyed by 00:00 of each day."""
    if buckets.empty:
        return buckets
    days = buckets.index // SECONDS_PER_DAY * SECONDS_PER_DAY
    return buckets.groupby(days, sort=True).sum()


def _to_points(buckets: pd.Series) -> List[TimeSeriesPoint]:
    return [
        TimeSeriesPoint(timestamp=int(ts), value=convert_to_serializable(value))
        for ts, value in buckets.items()
    ]


def normalize_account_time_series(
    payload: Mapping[str, Any],
    descriptor: MetricDescriptor,
    window: TimeWindow
) -> Optional[TimeSeries]:
    """
    Merge rows into unique ascending epoch-second buckets.

    ``Sum`` is taken over every bucket before any rollup. Metrics served from
    an hour-grouped dataset are rolled up to UTC days for long-term windows.
    """
    accounts = _viewer_nodes(payload, 'accounts')
    if not accounts:
        return None

    rows = accounts[0].get('resultData') or []
    buckets = _merge_time_buckets(rows, time_series_dimension(descriptor, window), descriptor.summed_field)
    total = convert_to_serializable(buckets.sum()) if not buckets.empty else 0

    if descriptor.hourly_dataset and window.is_long_term:
        logger.debug(f"Rolling up {len(buckets)} hourly buckets of {descriptor.key} to days")
        buckets = rollup_daily(buckets)

    return TimeSeries(metric_name=descriptor.key, points=_to_points(buckets), total=total)


def normalize_zone_topn(payload: Mapping[str, Any], field: str) -> Optional[Distribution]:
    """Map the first zone's grouped counts to ranked entries."""
    zones = _viewer_nodes(payload, 'zones')
    if not zones:
        return None
    entries = [
        DistributionEntry(key=(group.get('dimensions') or {}).get(field), value=group.get('count'))
        for group in zones[0].get(ZONE_TOPN_DATASET) or []
    ]
    return Distribution(entries=rank_entries(entries))


def _epoch_seconds(value: Optional[str]) -> int:
    """Epoch seconds of an ISO instant; 0 when missing or unparseable."""
    moment = parse_instant(value)
    if moment is None:
        return 0
    return math.floor(moment.timestamp())


def normalize_edge_time_series(payload: Mapping[str, Any], descriptor: MetricDescriptor) -> TrafficResponse:
    """
    Reshape the first data item into a time series; other top-level fields pass through.

    Points sharing an epoch second are summed. ``Sum`` is the upstream summarized value.
    """
    data = payload.get('Data') or []
    if not data:
        return TrafficResponse(metadata={k: v for k, v in payload.items() if k != 'Data'})

    first = data[0]
    buckets: Dict[int, Any] = {}
    for item in first.get('DetailData') or []:
        timestamp = _epoch_seconds(item.get('TimeStamp'))
        buckets[timestamp] = buckets.get(timestamp, 0) + (item.get('Value') or 0)
    points = [TimeSeriesPoint(timestamp=ts, value=buckets[ts]) for ts in sorted(buckets)]

    summarized = payload.get('SummarizedData') or []
    total = (summarized[0].get('Value') if summarized else 0) or 0

    series = TimeSeries(
        metric_name=descriptor.key,
        points=points,
        total=total,
        extras={k: v for k, v in first.items() if k not in ('DetailData', 'TypeValue')},
    )
    return TrafficResponse(
        results=[series] + [RawDataItem(item) for item in data[1:]],
        metadata={k: v for k, v in payload.items() if k not in ('Data', 'SummarizedData')},
    )


def normalize_edge_top(payload: Mapping[str, Any]) -> TrafficResponse:
    """Rename ``DimensionValue`` to ``Key`` in every data item, keeping any ``TimeStamp``."""
    results = []
    for item in payload.get('Data') or []:
        detail = item.get('DetailData')
        if not isinstance(detail, list):
            results.append(RawDataItem(item))
            continue
        entries = [
            DistributionEntry(key=row.get('DimensionValue'), value=row.get('Value'), timestamp=row.get('TimeStamp'))
            for row in detail
        ]
        results.append(Distribution(
            entries=rank_entries(entries),
            extras={k: v for k, v in item.items() if k != 'DetailData'},
        ))
    return TrafficResponse(
        results=results,
        metadata={k: v for k, v in payload.items() if k != 'Data'},
    )
