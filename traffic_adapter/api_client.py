# api_client.py
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .credentials import CdnCredentials
from .errors import UpstreamQueryError, UpstreamTransportError
from .types import GraphQLQuery, SignedRequest

logger = logging.getLogger(__name__)

DEFAULT_CF_BASE_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_ESA_ENDPOINT = "https://esa.cn-hangzhou.aliyuncs.com/"

# Single page of active zones; later pages are never requested.
ZONES_PER_PAGE = 50


@dataclass
class ZoneListing:
    zone_ids: List[str] = field(default_factory=list)
    names: Dict[str, str] = field(default_factory=dict)


class CloudflareAPIClient:
    """GraphQL analytics and zone listing calls. No retries."""

    def __init__(
        self,
        credentials: CdnCredentials,
        session: Optional[requests.Session] = None,
        base_url: str = DEFAULT_CF_BASE_URL,
        request_timeout: float = 30
    ):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.request_timeout = request_timeout
        self.headers = {
            'X-Auth-Email': credentials.email,
            'X-Auth-Key': credentials.api_key,
            'Content-Type': 'application/json'
        }

    def get_zones(self) -> ZoneListing:
        """Fetch the first page of active zones."""
        logger.info("Fetching zones from Cloudflare")
        response = self.session.get(
            f"{self.base_url}/zones",
            params={'status': 'active', 'per_page': ZONES_PER_PAGE},
            headers=self.headers,
            timeout=self.request_timeout
        )

        if not response.ok:
            logger.error(f"""
Failed to fetch zones:
-------------------
Status Code: {response.status_code}
Response: {response.text[:2000]}
""")
            raise UpstreamTransportError(f"Fetch Zones Failed: {response.reason}")

        data = response.json()
        listing = ZoneListing()
        for zone in data.get('result') or []:
            listing.zone_ids.append(zone['id'])
            listing.names[zone['id']] = zone['name']

        logger.info(f"Zones Retrieved: {len(listing.zone_ids)}")
        return listing

    def execute(self, query: GraphQLQuery) -> Dict[str, Any]:
        """Run a GraphQL document. Structured errors are raised with the payload intact."""
        response = self.session.post(
            f"{self.base_url}/graphql",
            headers=self.headers,
            json=query.to_body(),
            timeout=self.request_timeout
        )

        try:
            data = response.json()
        except ValueError:
            logger.error(f"""
HTTP Error (graphql):
----------
Status Code: {response.status_code}
Response Body: {response.text[:2000]}
""")
            raise UpstreamTransportError(
                "Cloudflare GraphQL error", status_code=500, detail=response.text
            )

        if data.get('errors'):
            logger.error(f"""
GraphQL Errors:
-------------
{json.dumps(data.get('errors', []), indent=2)}
Query Variables: {json.dumps(query.variables, indent=2)}
""")
            raise UpstreamQueryError(data)

        if not response.ok:
            logger.error(f"GraphQL request failed with status {response.status_code}")
            raise UpstreamTransportError(
                "Cloudflare GraphQL error", status_code=500, detail=response.text
            )

        return data


class EdgeAnalyticsClient:
    """Signed GET calls against the edge analytics API."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        endpoint: str = DEFAULT_ESA_ENDPOINT,
        request_timeout: float = 30
    ):
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.request_timeout = request_timeout

    def execute(self, request: SignedRequest) -> Dict[str, Any]:
        logger.info(f"Calling edge analytics action {request.params.get('Action')}")
        response = self.session.get(
            self.endpoint,
            params=request.params,
            timeout=self.request_timeout
        )

        if not response.ok:
            logger.error(f"""
Edge analytics API error:
----------
Status Code: {response.status_code}
Response Body: {response.text[:2000]}
""")
            raise UpstreamTransportError(
                "Edge analytics API error",
                status_code=response.status_code,
                detail=response.text
            )

        return response.json()
