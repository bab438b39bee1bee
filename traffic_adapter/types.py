from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Provider(Enum):
    """Upstream analytics provider."""

    CDN_ANALYTICS = 'cdn'
    EDGE_ANALYTICS = 'edge'


class Scope(Enum):
    """Query scope of a CDN analytics metric."""

    ACCOUNT = 'account'
    ZONE = 'zone'


class MetricKind(Enum):
    """Shape of the normalized result."""

    TIME_SERIES = 'TS'
    DISTRIBUTION = 'TOP'


class Granularity(Enum):
    """Aggregation granularity, with the CDN dataset that groups at that granularity."""

    HOURLY = 'hourly'
    DAILY = 'daily'

    @property
    def dataset(self) -> str:
        """Zone and account dataset grouped at this granularity."""
        return 'httpRequests1hGroups' if self is Granularity.HOURLY else 'httpRequests1dGroups'

    @property
    def dimension_key(self) -> str:
        """Time dimension returned by the dataset."""
        return 'datetime' if self is Granularity.HOURLY else 'date'

    @property
    def order_by(self) -> str:
        return f"{self.dimension_key}_ASC"


@dataclass(frozen=True)
class MetricDescriptor:
    """Query descriptor for one metric key."""

    key: str
    provider: Provider
    kind: MetricKind
    summed_field: str
    dimension: Optional[str] = None
    scope: Optional[Scope] = None
    action: Optional[str] = None
    hourly_dataset: Optional[str] = None

    def __post_init__(self):
        """Reject descriptors that mix provider-specific fields."""
        if not self.summed_field:
            raise ValueError(f"Metric '{self.key}' has no summed field")
        if (self.dimension is not None) != (self.kind is MetricKind.DISTRIBUTION):
            raise ValueError(f"Metric '{self.key}': dimension must be set iff kind is distribution")
        if (self.scope is not None) != (self.provider is Provider.CDN_ANALYTICS):
            raise ValueError(f"Metric '{self.key}': scope must be set iff provider is CDN analytics")
        if (self.action is not None) != (self.provider is Provider.EDGE_ANALYTICS):
            raise ValueError(f"Metric '{self.key}': action must be set iff provider is edge analytics")
        if self.hourly_dataset is not None and self.kind is not MetricKind.TIME_SERIES:
            raise ValueError(f"Metric '{self.key}': hourly dataset only applies to time series")

    @property
    def is_distribution(self) -> bool:
        return self.kind is MetricKind.DISTRIBUTION


@dataclass(frozen=True)
class TimeWindow:
    """Resolved request window.

    ``start_iso``/``end_iso`` keep full precision; ``query_from``/``query_to``
    are the bounds used by granularity-aware filters (date-only when long term).
    """

    start: datetime
    end: datetime
    granularity: Granularity
    is_long_term: bool
    start_iso: str
    end_iso: str
    query_from: str
    query_to: str

    def filter(self) -> Dict[str, str]:
        """Inclusive range filter on the granularity's time dimension."""
        key = self.granularity.dimension_key
        return {f"{key}_geq": self.query_from, f"{key}_leq": self.query_to}


@dataclass
class GraphQLQuery:
    """GraphQL document plus optional variables."""

    query: str
    variables: Optional[Dict[str, Any]] = None

    def to_body(self) -> Dict[str, Any]:
        """JSON request body; ``variables`` is omitted when unset."""
        body = {'query': self.query}
        if self.variables is not None:
            body['variables'] = self.variables
        return body


@dataclass
class SignedRequest:
    """Edge analytics query parameters including ``Signature``."""

    params: Dict[str, str]


@dataclass(frozen=True)
class TrafficQuery:
    """Caller-supplied request parameters."""

    metric: Optional[str]
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    site_id: Optional[str] = None
    interval: Optional[str] = None
    limit: Optional[str] = None


@dataclass
class TimeSeriesPoint:
    """One bucket keyed by epoch seconds."""

    timestamp: int
    value: Union[int, float]

    def to_dict(self) -> Dict[str, Any]:
        return {'Timestamp': self.timestamp, 'Value': self.value}


@dataclass
class TimeSeries:
    """Ascending points with unique timestamps and their total."""

    metric_name: str
    points: List[TimeSeriesPoint]
    total: Union[int, float]
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_data_item(self) -> Dict[str, Any]:
        return {
            **self.extras,
            'TypeValue': [{
                'Detail': [point.to_dict() for point in self.points],
                'MetricName': self.metric_name,
                'Sum': self.total,
            }],
        }


@dataclass
class DistributionEntry:
    """One ranked key and its value."""

    key: Any
    value: Union[int, float]
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        entry = {'Key': self.key, 'Value': self.value}
        if self.timestamp:
            entry['TimeStamp'] = self.timestamp
        return entry


@dataclass
class Distribution:
    """Entries ranked by value, descending."""

    entries: List[DistributionEntry]
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_data_item(self) -> Dict[str, Any]:
        return {**self.extras, 'DetailData': [entry.to_dict() for entry in self.entries]}


@dataclass
class RawDataItem:
    """Upstream data item passed through untouched."""

    payload: Dict[str, Any]

    def to_data_item(self) -> Dict[str, Any]:
        return dict(self.payload)


NormalizedResult = Union[TimeSeries, Distribution]


@dataclass
class TrafficResponse:
    """Wire envelope: ``{..metadata, "Data": [...]}``."""

    results: List[Union[TimeSeries, Distribution, RawDataItem]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> 'TrafficResponse':
        return cls()

    def to_payload(self) -> Dict[str, Any]:
        """Metadata fields followed by ``Data``, which is always present."""
        return {**self.metadata, 'Data': [result.to_data_item() for result in self.results]}
