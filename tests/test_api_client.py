import pytest

from traffic_adapter.api_client import CloudflareAPIClient, EdgeAnalyticsClient
from traffic_adapter.errors import UpstreamQueryError, UpstreamTransportError
from traffic_adapter.types import GraphQLQuery, SignedRequest


@pytest.fixture
def client_factory(cdn_credentials, fake_session):
    def _factory(*responses):
        session = fake_session(*responses)
        return CloudflareAPIClient(cdn_credentials, session=session, request_timeout=5), session
    return _factory


def test_get_zones(client_factory, zones_listing_payload, fake_response):
    client, session = client_factory(fake_response(zones_listing_payload))
    listing = client.get_zones()

    assert listing.zone_ids == ['zone-1', 'zone-2']
    assert listing.names == {'zone-1': 'example.com', 'zone-2': 'example.org'}

    call = session.calls[0]
    assert call['method'] == 'GET'
    assert call['url'] == 'https://api.cloudflare.com/client/v4/zones'
    assert call['params'] == {'status': 'active', 'per_page': 50}
    assert call['headers']['X-Auth-Email'] == 'test@example.com'
    assert call['headers']['X-Auth-Key'] == 'test_key'
    assert call['timeout'] == 5


def test_get_zones_failure(client_factory, fake_response):
    client, _ = client_factory(fake_response({'success': False}, status_code=403, reason='Forbidden'))
    with pytest.raises(UpstreamTransportError) as excinfo:
        client.get_zones()
    assert excinfo.value.status_code == 500
    assert excinfo.value.to_payload() == {'error': 'Fetch Zones Failed: Forbidden'}


def test_execute_posts_query(client_factory, account_time_series_payload, fake_response):
    client, session = client_factory(fake_response(account_time_series_payload))
    query = GraphQLQuery(query='query { viewer { __typename } }', variables={'accountTag': 'a'})

    assert client.execute(query) == account_time_series_payload
    call = session.calls[0]
    assert call['method'] == 'POST'
    assert call['url'] == 'https://api.cloudflare.com/client/v4/graphql'
    assert call['json'] == {'query': query.query, 'variables': {'accountTag': 'a'}}


def test_execute_echoes_structured_errors(client_factory, fake_response):
    payload = {'data': None, 'errors': [{'message': 'unknown field'}]}
    client, _ = client_factory(fake_response(payload))

    with pytest.raises(UpstreamQueryError) as excinfo:
        client.execute(GraphQLQuery(query='query { x }'))
    assert excinfo.value.status_code == 400
    assert excinfo.value.to_payload() == payload


def test_execute_non_json_body(client_factory, fake_response):
    client, _ = client_factory(fake_response(None, status_code=502, text='<html>bad gateway</html>'))

    with pytest.raises(UpstreamTransportError) as excinfo:
        client.execute(GraphQLQuery(query='query { x }'))
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == '<html>bad gateway</html>'


def test_custom_base_url_is_normalized(cdn_credentials, fake_response, fake_session):
    session = fake_session(fake_response({'result': []}))
    client = CloudflareAPIClient(cdn_credentials, session=session, base_url='http://localhost:9000/v4/')
    assert client.get_zones().zone_ids == []
    assert session.calls[0]['url'] == 'http://localhost:9000/v4/zones'


def test_edge_execute_sends_signed_params(fake_response, fake_session):
    session = fake_session(fake_response({'RequestId': 'r', 'Data': []}))
    client = EdgeAnalyticsClient(session=session, endpoint='https://edge.example.com/')

    assert client.execute(SignedRequest(params={'Action': 'DescribeSiteTopData', 'Signature': 's'})) == {
        'RequestId': 'r', 'Data': []
    }
    call = session.calls[0]
    assert call['method'] == 'GET'
    assert call['url'] == 'https://edge.example.com/'
    assert call['params'] == {'Action': 'DescribeSiteTopData', 'Signature': 's'}


def test_edge_execute_propagates_status_and_body(fake_response, fake_session):
    body = '{"Code":"InvalidAccessKeyId.NotFound"}'
    session = fake_session(fake_response({'Code': 'InvalidAccessKeyId.NotFound'}, status_code=404, text=body))
    client = EdgeAnalyticsClient(session=session)

    with pytest.raises(UpstreamTransportError) as excinfo:
        client.execute(SignedRequest(params={}))
    assert excinfo.value.status_code == 404
    assert excinfo.value.to_payload() == {'error': 'Edge analytics API error', 'detail': body}
