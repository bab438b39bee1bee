# main.py
import argparse
import json
import logging
import sys
import traceback
from typing import List, Optional

from .adapters import CdnAnalyticsAdapter, EdgeAnalyticsAdapter, MetricAdapter
from .api_client import CloudflareAPIClient, EdgeAnalyticsClient
from .config import Config, setup_logging
from .credentials import load_cdn_credentials, load_edge_credentials
from .errors import MissingCredentialsError, TrafficAdapterError
from .formatters import TableFormatter
from .registry import CDN_REGISTRY, EDGE_REGISTRY
from .server import create_app
from .types import TrafficQuery
from .utils import convert_to_serializable

logger = logging.getLogger(__name__)

PROVIDERS = ('cf', 'esa')


def build_adapter(provider: str, config: Config) -> MetricAdapter:
    """Load credentials for the provider and wire its adapter."""
    if provider == 'cf':
        credentials = load_cdn_credentials(config.cdn_credential_source())
        if not credentials.is_complete:
            raise MissingCredentialsError(status_code=401)
        client = CloudflareAPIClient(
            credentials, base_url=config.cf_base_url, request_timeout=config.request_timeout
        )
        return CdnAnalyticsAdapter(credentials, client)

    credentials = load_edge_credentials(config.edge_credential_source())
    if not credentials.is_complete:
        raise MissingCredentialsError(status_code=500)
    client = EdgeAnalyticsClient(endpoint=config.esa_endpoint, request_timeout=config.request_timeout)
    return EdgeAnalyticsAdapter(credentials, client)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='traffic-adapter',
        description='Unified traffic analytics over Cloudflare GraphQL and edge analytics APIs'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Run the HTTP server')
    serve.add_argument('--host', help='Bind address (default: HOST or 0.0.0.0)')
    serve.add_argument('--port', type=int, help='Listen port (default: PORT or 8080)')
    serve.add_argument('--debug', action='store_true', help='Enable Flask debug mode')

    query = subparsers.add_parser('query', help='Fetch one metric and print it')
    query.add_argument('provider', choices=PROVIDERS)
    query.add_argument('metric', help='Metric key')
    query.add_argument('--start', help='Start time (ISO-8601)')
    query.add_argument('--end', help='End time (ISO-8601)')
    query.add_argument('--site-id', help='Edge analytics site ID')
    query.add_argument('--interval', help='Edge analytics interval')
    query.add_argument('--limit', help='Edge analytics result limit')
    query.add_argument('--json', action='store_true', help='Print the raw response envelope')

    metrics = subparsers.add_parser('metrics', help='List known metric keys')
    metrics.add_argument('provider', choices=PROVIDERS)

    return parser


def run_query(args: argparse.Namespace, config: Config) -> int:
    adapter = build_adapter(args.provider, config)
    query = TrafficQuery(
        metric=args.metric,
        start_time=args.start,
        end_time=args.end,
        site_id=args.site_id,
        interval=args.interval,
        limit=args.limit,
    )
    response = adapter.fetch_metric(args.metric, query)

    if args.json:
        print(json.dumps(convert_to_serializable(response.to_payload()), indent=2))
    else:
        print(TableFormatter().format_response(response))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function."""
    args = build_parser().parse_args(argv)
    config = Config()
    setup_logging(config.log_level, config.log_dir)

    try:
        if args.command == 'serve':
            logger.info(f"\n{config}")
            app = create_app(config)
            app.run(host=args.host or config.host, port=args.port or config.port, debug=args.debug)
            return 0

        if args.command == 'metrics':
            registry = CDN_REGISTRY if args.provider == 'cf' else EDGE_REGISTRY
            print(TableFormatter().format_registry_table(registry))
            return 0

        return run_query(args, config)

    except TrafficAdapterError as e:
        logger.error(f"Request failed: {json.dumps(e.to_payload())}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Fatal error in main execution: {str(e)}")
        logger.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
