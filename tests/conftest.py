import json
from datetime import datetime, timezone

import pytest

from traffic_adapter.credentials import (
    CDN_ENV_VARS, EDGE_ENV_VARS, CdnCredentials, EdgeCredentials, EnvCredentialSource
)

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeResponse:
    """Stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200, text=None, reason='OK'):
        self._payload = payload
        self.status_code = status_code
        self.reason = reason
        self.text = text if text is not None else json.dumps(payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records every call and replays queued responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected upstream call: {method} {url}")
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self._next('GET', url, **kwargs)

    def post(self, url, **kwargs):
        return self._next('POST', url, **kwargs)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def cdn_credentials():
    return CdnCredentials(
        email='test@example.com',
        api_key='test_key',
        account_tag='test_account',
        zone_tag='test_zone',
    )


@pytest.fixture
def edge_credentials():
    return EdgeCredentials(access_key_id='test_access_key', access_key_secret='test_secret')


@pytest.fixture
def cdn_env():
    return {
        CDN_ENV_VARS['email']: 'test@example.com',
        CDN_ENV_VARS['api_key']: 'test_key',
        CDN_ENV_VARS['account_tag']: 'test_account',
        CDN_ENV_VARS['zone_tag']: 'test_zone',
    }


@pytest.fixture
def edge_env():
    return {
        EDGE_ENV_VARS['access_key_id']: 'test_access_key',
        EDGE_ENV_VARS['access_key_secret']: 'test_secret',
    }


@pytest.fixture
def mock_config(tmp_path):
    """Create a mock configuration for testing."""
    class MockConfig:
        def __init__(self, tmp_path):
            self.cf_base_url = "https://api.cloudflare.com/client/v4"
            self.esa_endpoint = "https://esa.cn-hangzhou.aliyuncs.com/"
            self.request_timeout = 5
            self.key_file = tmp_path / "key.txt"
            self.host = "127.0.0.1"
            self.port = 8080

        def cdn_credential_source(self):
            return EnvCredentialSource(CDN_ENV_VARS, {})

        def edge_credential_source(self):
            return EnvCredentialSource(EDGE_ENV_VARS, {})

    return MockConfig(tmp_path)


@pytest.fixture
def make_app(mock_config, cdn_env, edge_env, clock):
    """Build an app wired to a fake upstream session."""
    from traffic_adapter.server import create_app

    def _make_app(session, cdn_environ=None, edge_environ=None):
        app = create_app(
            mock_config,
            cdn_credentials=EnvCredentialSource(CDN_ENV_VARS, cdn_env if cdn_environ is None else cdn_environ),
            edge_credentials=EnvCredentialSource(EDGE_ENV_VARS, edge_env if edge_environ is None else edge_environ),
            session=session,
            clock=clock,
        )
        app.testing = True
        return app

    return _make_app


@pytest.fixture
def account_time_series_payload():
    return {
        "data": {
            "viewer": {
                "accounts": [{
                    "resultData": [
                        {"sum": {"requests": 3}, "dimensions": {"datetime": "2024-06-15T10:00:00Z"}},
                        {"sum": {"requests": 5}, "dimensions": {"datetime": "2024-06-15T10:00:00Z"}},
                        {"sum": {"requests": 7}, "dimensions": {"datetime": "2024-06-15T09:00:00Z"}},
                    ]
                }]
            }
        },
        "errors": None
    }


@pytest.fixture
def account_distribution_payload():
    return {
        "data": {
            "viewer": {
                "accounts": [{
                    "resultData": [
                        {"sum": {"bytes": 5}, "dimensions": {"clientCountryName": "A"}},
                        {"sum": {"bytes": 9}, "dimensions": {"clientCountryName": "B"}},
                        {"sum": {"bytes": 9}, "dimensions": {"clientCountryName": "C"}},
                    ]
                }]
            }
        }
    }


@pytest.fixture
def zones_listing_payload():
    return {
        "success": True,
        "result": [
            {"id": "zone-1", "name": "example.com", "status": "active"},
            {"id": "zone-2", "name": "example.org", "status": "active"},
        ]
    }


@pytest.fixture
def zone_totals_payload():
    return {
        "data": {
            "viewer": {
                "zones": [
                    {
                        "zoneTag": "zone-1",
                        "httpRequests1hGroups": [
                            {"dimensions": {"datetime": "2024-06-15T09:00:00Z"}, "sum": {"requests": 10}},
                            {"dimensions": {"datetime": "2024-06-15T10:00:00Z"}, "sum": {"requests": 15}},
                        ]
                    },
                    {
                        "zoneTag": "zone-2",
                        "httpRequests1hGroups": [
                            {"dimensions": {"datetime": "2024-06-15T09:00:00Z"}, "sum": {"requests": 40}},
                        ]
                    },
                    {
                        "zoneTag": "zone-unknown",
                        "httpRequests1hGroups": []
                    },
                ]
            }
        }
    }


@pytest.fixture
def zone_topn_payload():
    return {
        "data": {
            "viewer": {
                "zones": [{
                    "httpRequestsAdaptiveGroups": [
                        {"count": 120, "dimensions": {"clientIP": "192.0.2.1"}},
                        {"count": 80, "dimensions": {"clientIP": "192.0.2.2"}},
                    ]
                }]
            }
        }
    }


@pytest.fixture
def edge_time_series_payload():
    return {
        "RequestId": "req-1",
        "SamplingRate": 1,
        "Data": [{
            "DimensionName": "ALL",
            "DetailData": [
                {"TimeStamp": "2024-06-15T10:00:00Z", "Value": 4},
                {"TimeStamp": "2024-06-15T09:00:00Z", "Value": 6},
                {"TimeStamp": None, "Value": None},
            ]
        }],
        "SummarizedData": [{"DimensionName": "ALL", "AggMethod": "sum", "Value": 1000}]
    }


@pytest.fixture
def edge_top_payload():
    return {
        "RequestId": "req-2",
        "Data": [{
            "DimensionName": "ClientCountryCode",
            "DetailData": [
                {"DimensionValue": "CN", "Value": 50},
                {"DimensionValue": "US", "Value": 70, "TimeStamp": "2024-06-15T00:00:00Z"},
            ]
        }]
    }


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_session():
    return FakeSession
