import logging
import traceback
from dataclasses import dataclass
from typing import Optional

import requests
from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .adapters import CdnAnalyticsAdapter, Clock, EdgeAnalyticsAdapter, utc_now
from .api_client import CloudflareAPIClient, EdgeAnalyticsClient
from .config import Config
from .credentials import CredentialSource, load_cdn_credentials, load_edge_credentials
from .errors import InternalError, MissingCredentialsError, TrafficAdapterError
from .types import TrafficQuery
from .utils import convert_to_serializable

logger = logging.getLogger(__name__)

cdn_bp = Blueprint('cdn', __name__, url_prefix='/cf')
edge_bp = Blueprint('edge', __name__, url_prefix='/esa')


@dataclass
class AdapterState:
    config: Config
    cdn_credentials: CredentialSource
    edge_credentials: CredentialSource
    session: Optional[requests.Session] = None
    clock: Clock = utc_now


def _state() -> AdapterState:
    return current_app.extensions['traffic_adapter']


def _traffic_query() -> TrafficQuery:
    args = request.args
    return TrafficQuery(
        metric=args.get('metric'),
        start_time=args.get('startTime'),
        end_time=args.get('endTime'),
        site_id=args.get('siteId'),
        interval=args.get('interval'),
        limit=args.get('Limit'),
    )


@cdn_bp.route('/traffic', methods=['GET'])
def cdn_traffic():
    state = _state()
    credentials = load_cdn_credentials(state.cdn_credentials)
    if not credentials.is_complete:
        raise MissingCredentialsError(status_code=401)

    client = CloudflareAPIClient(
        credentials,
        session=state.session,
        base_url=state.config.cf_base_url,
        request_timeout=state.config.request_timeout
    )
    adapter = CdnAnalyticsAdapter(credentials, client, clock=state.clock)
    query = _traffic_query()
    response = adapter.fetch_metric(query.metric, query)
    return jsonify(convert_to_serializable(response.to_payload()))


@edge_bp.route('/traffic', methods=['GET'])
def edge_traffic():
    state = _state()
    credentials = load_edge_credentials(state.edge_credentials)
    if not credentials.is_complete:
        raise MissingCredentialsError(status_code=500)

    client = EdgeAnalyticsClient(
        session=state.session,
        endpoint=state.config.esa_endpoint,
        request_timeout=state.config.request_timeout
    )
    adapter = EdgeAnalyticsAdapter(credentials, client, clock=state.clock)
    query = _traffic_query()
    response = adapter.fetch_metric(query.metric, query)
    return jsonify(convert_to_serializable(response.to_payload()))


def handle_adapter_error(error: TrafficAdapterError):
    logger.warning(f"{type(error).__name__} ({error.status_code}): {error.message}")
    return jsonify(error.to_payload()), error.status_code


def handle_unexpected_error(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.error(f"Internal Error: {str(error)}")
    logger.error(traceback.format_exc())
    internal = InternalError(str(error))
    return jsonify(internal.to_payload()), internal.status_code


def create_app(
    config: Optional[Config] = None,
    cdn_credentials: Optional[CredentialSource] = None,
    edge_credentials: Optional[CredentialSource] = None,
    session: Optional[requests.Session] = None,
    clock: Clock = utc_now
) -> Flask:
    """Build the Flask app serving ``/cf/traffic`` and ``/esa/traffic``."""
    config = config or Config()

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions['traffic_adapter'] = AdapterState(
        config=config,
        cdn_credentials=cdn_credentials or config.cdn_credential_source(),
        edge_credentials=edge_credentials or config.edge_credential_source(),
        session=session,
        clock=clock,
    )

    app.register_blueprint(cdn_bp)
    app.register_blueprint(edge_bp)
    app.register_error_handler(TrafficAdapterError, handle_adapter_error)
    app.register_error_handler(Exception, handle_unexpected_error)

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok'})

    logger.debug(f"Application created with {config!r}")
    return app
