import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from .api_client import CloudflareAPIClient, EdgeAnalyticsClient
from .credentials import CdnCredentials, EdgeCredentials
from .edge_queries import build_edge_params
from .graphql_queries import build_account_query, build_zone_time_series_query, build_zone_topn_query
from .normalizer import (
    normalize_account_distribution, normalize_account_time_series, normalize_edge_time_series,
    normalize_edge_top, normalize_zone_topn, normalize_zone_totals
)
from .registry import CDN_REGISTRY, EDGE_REGISTRY, ZONE_TOPN_REGISTRY, MetricRegistry
from .signer import sign_params
from .time_window import resolve_time_window
from .types import MetricDescriptor, Provider, Scope, SignedRequest, TimeWindow, TrafficQuery, TrafficResponse

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


class MetricAdapter(ABC):
    """Fetches one metric from one provider and returns the unified response."""

    provider: Provider
    registry: MetricRegistry

    @abstractmethod
    def fetch_metric(self, metric_key: Optional[str], query: TrafficQuery) -> TrafficResponse:
        """Resolve, query upstream and normalize."""


class CdnAnalyticsAdapter(MetricAdapter):
    """Cloudflare GraphQL analytics: account, zone and zone Top-N metrics."""

    provider = Provider.CDN_ANALYTICS

    def __init__(
        self,
        credentials: CdnCredentials,
        client: CloudflareAPIClient,
        registry: MetricRegistry = CDN_REGISTRY,
        topn_fields: Mapping[str, str] = ZONE_TOPN_REGISTRY,
        clock: Clock = utc_now
    ):
        self.credentials = credentials
        self.client = client
        self.registry = registry
        self.topn_fields = topn_fields
        self.clock = clock

    def fetch_metric(self, metric_key: Optional[str], query: TrafficQuery) -> TrafficResponse:
        """Zone Top-N keys take precedence over the registry."""
        if metric_key in self.topn_fields:
            window = resolve_time_window(query.start_time, query.end_time, self.clock())
            return self._fetch_zone_topn(self.topn_fields[metric_key], window)

        descriptor = self.registry.resolve(metric_key)
        window = resolve_time_window(query.start_time, query.end_time, self.clock())

        logger.info(f"Fetching {descriptor.key} ({descriptor.scope.value} scope, {window.granularity.value})")

        if descriptor.scope is Scope.ZONE:
            return self._fetch_zone_totals(descriptor, window)
        return self._fetch_account(descriptor, window)

    def _fetch_zone_topn(self, field: str, window: TimeWindow) -> TrafficResponse:
        """Run the ad-hoc Top-N query against the configured zone."""
        payload = self.client.execute(build_zone_topn_query(field, window, self.credentials.zone_tag))
        result = normalize_zone_topn(payload, field)
        return TrafficResponse([result]) if result is not None else TrafficResponse.empty()

    def _fetch_zone_totals(self, descriptor: MetricDescriptor, window: TimeWindow) -> TrafficResponse:
        """List active zones, then total the metric per zone."""
        # The analytics query depends on the zone list, so the calls stay sequential
        listing = self.client.get_zones()
        if not listing.zone_ids:
            logger.warning("No active zones found")
            return TrafficResponse.empty()

        payload = self.client.execute(build_zone_time_series_query(descriptor, window, listing.zone_ids))
        return TrafficResponse([normalize_zone_totals(payload, descriptor, window, listing.names)])

    def _fetch_account(self, descriptor: MetricDescriptor, window: TimeWindow) -> TrafficResponse:
        """Account-wide distribution or time series."""
        payload = self.client.execute(build_account_query(descriptor, window, self.credentials.account_tag))
        if descriptor.is_distribution:
            result = normalize_account_distribution(payload, descriptor)
        else:
            result = normalize_account_time_series(payload, descriptor, window)
        return TrafficResponse([result]) if result is not None else TrafficResponse.empty()


class EdgeAnalyticsAdapter(MetricAdapter):
    """Signed edge analytics API: time series and Top-N metrics."""

    provider = Provider.EDGE_ANALYTICS

    def __init__(
        self,
        credentials: EdgeCredentials,
        client: EdgeAnalyticsClient,
        registry: MetricRegistry = EDGE_REGISTRY,
        clock: Clock = utc_now
    ):
        self.credentials = credentials
        self.client = client
        self.registry = registry
        self.clock = clock

    def build_request(self, descriptor: MetricDescriptor, query: TrafficQuery) -> SignedRequest:
        """Build and sign the query parameters for one call."""
        params = build_edge_params(
            descriptor,
            self.credentials.access_key_id,
            start_time=query.start_time,
            end_time=query.end_time,
            site_id=query.site_id,
            interval=query.interval,
            limit=query.limit,
            now=self.clock(),
        )
        return SignedRequest(params=sign_params(params, self.credentials.access_key_secret))

    def fetch_metric(self, metric_key: Optional[str], query: TrafficQuery) -> TrafficResponse:
        """Top-N actions map to distributions, everything else to a time series."""
        descriptor = self.registry.resolve(metric_key)
        logger.info(f"Fetching {descriptor.key} via {descriptor.action}")

        payload = self.client.execute(self.build_request(descriptor, query))
        if descriptor.is_distribution:
            return normalize_edge_top(payload)
        return normalize_edge_time_series(payload, descriptor)
