import logging
import re
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from .errors import InvalidMetricError
from .types import MetricDescriptor, MetricKind, Provider, Scope

logger = logging.getLogger(__name__)

# Edge analytics actions
EDGE_TIME_SERIES_ACTION = 'DescribeSiteTimeSeriesData'
EDGE_TOP_ACTION = 'DescribeSiteTopData'

# Always hour-grouped, rolled up to days client-side for long windows
WORKERS_INVOCATIONS_DATASET = 'workersInvocationsAdaptive'

ZONE_DIMENSION = 'zoneTag'

CDN_METRICS: Dict[str, Dict[str, Any]] = {
    # Account-level traffic (time series)
    'l7Flow_flux': {'field': 'bytes', 'scope': 'account'},
    'l7Flow_outFlux': {'field': 'cachedBytes', 'scope': 'account'},
    'l7Flow_request': {'field': 'requests', 'scope': 'account'},
    'l7Flow_inFlux': {'field': 'pageViews', 'scope': 'account'},
    'l7Flow_outcc': {'field': 'threats', 'scope': 'account'},
    'l7Flow_cachedRequests': {'field': 'cachedRequests', 'scope': 'account'},

    # Account-level distributions (Top-N)
    'l7Flow_outFlux_resourceType': {
        'field': 'bytes', 'scope': 'account', 'dimension': 'edgeResponseContentTypeName',
    },
    'l7Flow_request_resourceType': {
        'field': 'requests', 'scope': 'account', 'dimension': 'edgeResponseContentTypeName',
    },
    'l7Flow_outFlux_country': {
        'field': 'bytes', 'scope': 'account', 'dimension': 'clientCountryName',
    },
    'l7Flow_request_country': {
        'field': 'requests', 'scope': 'account', 'dimension': 'clientCountryName',
    },

    # Workers
    'function_requestCount': {
        'field': 'requests', 'scope': 'account', 'dataset': WORKERS_INVOCATIONS_DATASET,
    },
    'function_cpuCostTime': {
        'field': 'cpuTimeUs', 'scope': 'account', 'dataset': WORKERS_INVOCATIONS_DATASET,
    },

    # Per-zone totals, ranked by zone
    'l7Flow_outFlux_domain': {'field': 'bytes', 'scope': 'zone'},
    'l7Flow_request_domain': {'field': 'requests', 'scope': 'zone'},
}

# Zone Top-N by a single dimension. The field name is written into the query
# text as-is, so only plain identifiers are accepted here.
ZONE_TOPN_FIELDS: Dict[str, str] = {
    'l7Flow_request_sip': 'clientIP',
    'l7Flow_request_ua_device': 'clientRequestHTTPMethodName',
    'l7Flow_request_ua_browser': 'cacheStatus',
    'l7Flow_request_zym': 'clientRequestHTTPHost',
}

EDGE_METRICS: Dict[str, Dict[str, Any]] = {
    # Time series
    'l7Flow_flux': {'action': EDGE_TIME_SERIES_ACTION, 'field': 'Traffic'},
    'l7Flow_inFlux': {'action': EDGE_TIME_SERIES_ACTION, 'field': 'RequestTraffic'},
    'l7Flow_outFlux': {'action': EDGE_TIME_SERIES_ACTION, 'field': 'Traffic'},
    'l7Flow_request': {'action': EDGE_TIME_SERIES_ACTION, 'field': 'Requests'},

    # Top data, action filled in at load time
    'l7Flow_request_country': {'field': 'Requests', 'dimension': 'ClientCountryCode'},
    'l7Flow_outFlux_country': {'field': 'Traffic', 'dimension': 'ClientCountryCode'},
    'l7Flow_outFlux_province': {'field': 'Traffic', 'dimension': 'ClientProvinceCode'},
    'l7Flow_request_province': {'field': 'Requests', 'dimension': 'ClientProvinceCode'},
    'l7Flow_outFlux_statusCode': {'field': 'Traffic', 'dimension': 'EdgeResponseStatusCode'},
    'l7Flow_request_statusCode': {'field': 'Requests', 'dimension': 'EdgeResponseStatusCode'},
    'l7Flow_outFlux_domain': {'field': 'Traffic', 'dimension': 'ClientRequestHost'},
    'l7Flow_request_domain': {'field': 'Requests', 'dimension': 'ClientRequestHost'},
    'l7Flow_outFlux_url': {'field': 'Traffic', 'dimension': 'ClientRequestPath'},
    'l7Flow_request_url': {'field': 'Requests', 'dimension': 'ClientRequestPath'},
    'l7Flow_outFlux_resourceType': {'field': 'Traffic', 'dimension': 'EdgeResponseContentType'},
    'l7Flow_request_resourceType': {'field': 'Requests', 'dimension': 'EdgeResponseContentType'},
    'l7Flow_outFlux_sip': {'field': 'Traffic', 'dimension': 'ClientIP'},
    'l7Flow_request_sip': {'field': 'Requests', 'dimension': 'ClientIP'},
    'l7Flow_outFlux_referers': {'field': 'Traffic', 'dimension': 'ClientRequestReferer'},
    'l7Flow_request_referers': {'field': 'Requests', 'dimension': 'ClientRequestReferer'},
    'l7Flow_outFlux_ua_os': {'field': 'Traffic', 'dimension': 'ClientOS'},
    'l7Flow_request_ua_os': {'field': 'Requests', 'dimension': 'ClientOS'},
    'l7Flow_outFlux_ua': {'field': 'Traffic', 'dimension': 'ClientRequestUserAgent'},
    'l7Flow_request_ua': {'field': 'Requests', 'dimension': 'ClientRequestUserAgent'},
    'l7Flow_outFlux_ua_device': {'field': 'Traffic', 'dimension': 'ClientRequestMethod'},
    'l7Flow_request_ua_device': {'field': 'Requests', 'dimension': 'ClientRequestMethod'},
    'l7Flow_outFlux_ua_browser': {'field': 'Traffic', 'dimension': 'EdgeCacheStatus'},
    'l7Flow_request_ua_browser': {'field': 'Requests', 'dimension': 'EdgeCacheStatus'},
    'l7Flow_outFlux_urlquery': {'field': 'Traffic', 'dimension': 'ClientRequestQuery'},
    'l7Flow_url_res_query': {'field': 'Requests', 'dimension': 'ClientRequestQuery'},
}

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class MetricRegistry:
    """Read-only mapping from metric key to descriptor."""

    def __init__(self, provider: Provider, descriptors: Mapping[str, MetricDescriptor],
                 invalid_message: str = "Invalid metric"):
        self.provider = provider
        self.invalid_message = invalid_message
        for key, descriptor in descriptors.items():
            if descriptor.key != key or descriptor.provider is not provider:
                raise ValueError(f"Descriptor for '{key}' does not belong to {provider.name} registry")
        self._descriptors = MappingProxyType(dict(descriptors))

    def resolve(self, metric_key: Optional[str]) -> MetricDescriptor:
        descriptor = self._descriptors.get(metric_key) if metric_key else None
        if descriptor is None:
            logger.warning(f"Unknown {self.provider.name} metric requested: {metric_key!r}")
            raise InvalidMetricError(metric_key, self.invalid_message)
        return descriptor

    def __contains__(self, metric_key: object) -> bool:
        return metric_key in self._descriptors

    def __iter__(self) -> Iterator[str]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def items(self):
        return self._descriptors.items()


def load_cdn_descriptor(key: str, raw: Mapping[str, Any]) -> MetricDescriptor:
    """Zone-scope entries are always distributions over ``zoneTag``."""
    scope = Scope(raw['scope'])
    dimension = raw.get('dimension')
    if scope is Scope.ZONE:
        dimension = ZONE_DIMENSION
    return MetricDescriptor(
        key=key,
        provider=Provider.CDN_ANALYTICS,
        kind=MetricKind.DISTRIBUTION if dimension else MetricKind.TIME_SERIES,
        summed_field=raw['field'],
        dimension=dimension,
        scope=scope,
        hourly_dataset=raw.get('dataset'),
    )


def load_edge_descriptor(key: str, raw: Mapping[str, Any]) -> MetricDescriptor:
    """Entries without an explicit action default to the Top-N action."""
    action = raw.get('action') or EDGE_TOP_ACTION
    kind = MetricKind.DISTRIBUTION if action == EDGE_TOP_ACTION else MetricKind.TIME_SERIES
    return MetricDescriptor(
        key=key,
        provider=Provider.EDGE_ANALYTICS,
        kind=kind,
        summed_field=raw['field'],
        dimension=raw.get('dimension') if kind is MetricKind.DISTRIBUTION else None,
        action=action,
    )


def build_cdn_registry(table: Mapping[str, Mapping[str, Any]] = CDN_METRICS) -> MetricRegistry:
    return MetricRegistry(
        Provider.CDN_ANALYTICS,
        {key: load_cdn_descriptor(key, raw) for key, raw in table.items()},
    )


def build_edge_registry(table: Mapping[str, Mapping[str, Any]] = EDGE_METRICS) -> MetricRegistry:
    return MetricRegistry(
        Provider.EDGE_ANALYTICS,
        {key: load_edge_descriptor(key, raw) for key, raw in table.items()},
        invalid_message="Invalid metric parameter",
    )


def build_zone_topn_fields(table: Mapping[str, str] = ZONE_TOPN_FIELDS) -> Mapping[str, str]:
    for key, field_name in table.items():
        if not _IDENTIFIER.match(field_name):
            raise ValueError(f"Zone Top-N metric '{key}' has unsafe field name {field_name!r}")
    return MappingProxyType(dict(table))


CDN_REGISTRY = build_cdn_registry()
EDGE_REGISTRY = build_edge_registry()
ZONE_TOPN_REGISTRY = build_zone_topn_fields()
