from .adapters import CdnAnalyticsAdapter, EdgeAnalyticsAdapter, MetricAdapter
from .registry import CDN_REGISTRY, EDGE_REGISTRY, ZONE_TOPN_REGISTRY
from .server import create_app
from .time_window import resolve_time_window

__version__ = "0.1.0"

__all__ = [
    'CdnAnalyticsAdapter',
    'EdgeAnalyticsAdapter',
    'MetricAdapter',
    'CDN_REGISTRY',
    'EDGE_REGISTRY',
    'ZONE_TOPN_REGISTRY',
    'create_app',
    'resolve_time_window',
]
