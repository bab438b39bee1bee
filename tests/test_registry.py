import pytest

from traffic_adapter.errors import InvalidMetricError
from traffic_adapter.registry import (
    CDN_REGISTRY, EDGE_REGISTRY, EDGE_TIME_SERIES_ACTION, EDGE_TOP_ACTION, ZONE_TOPN_REGISTRY,
    build_cdn_registry, build_edge_registry, build_zone_topn_fields
)
from traffic_adapter.types import MetricDescriptor, MetricKind, Provider, Scope


@pytest.mark.parametrize("registry", [CDN_REGISTRY, EDGE_REGISTRY])
def test_dimension_present_iff_distribution(registry):
    for key in registry:
        descriptor = registry.resolve(key)
        assert (descriptor.dimension is not None) == (descriptor.kind is MetricKind.DISTRIBUTION)


def test_cdn_descriptors_have_scope_and_no_action():
    for key, descriptor in CDN_REGISTRY.items():
        assert descriptor.provider is Provider.CDN_ANALYTICS
        assert descriptor.scope is not None
        assert descriptor.action is None


def test_edge_descriptors_have_action_and_no_scope():
    for key, descriptor in EDGE_REGISTRY.items():
        assert descriptor.provider is Provider.EDGE_ANALYTICS
        assert descriptor.scope is None
        assert descriptor.action in (EDGE_TIME_SERIES_ACTION, EDGE_TOP_ACTION)


def test_cdn_lookups():
    request = CDN_REGISTRY.resolve('l7Flow_request')
    assert request.kind is MetricKind.TIME_SERIES
    assert request.summed_field == 'requests'
    assert request.scope is Scope.ACCOUNT

    country = CDN_REGISTRY.resolve('l7Flow_outFlux_country')
    assert country.kind is MetricKind.DISTRIBUTION
    assert country.dimension == 'clientCountryName'

    domain = CDN_REGISTRY.resolve('l7Flow_request_domain')
    assert domain.scope is Scope.ZONE
    assert domain.kind is MetricKind.DISTRIBUTION

    cpu = CDN_REGISTRY.resolve('function_cpuCostTime')
    assert cpu.summed_field == 'cpuTimeUs'
    assert cpu.hourly_dataset == 'workersInvocationsAdaptive'


def test_edge_default_fill():
    time_series = EDGE_REGISTRY.resolve('l7Flow_flux')
    assert time_series.action == EDGE_TIME_SERIES_ACTION
    assert time_series.kind is MetricKind.TIME_SERIES
    assert time_series.dimension is None

    top = EDGE_REGISTRY.resolve('l7Flow_request_province')
    assert top.action == EDGE_TOP_ACTION
    assert top.kind is MetricKind.DISTRIBUTION
    assert top.dimension == 'ClientProvinceCode'


@pytest.mark.parametrize("key", ['unknown_key', '', None])
def test_unknown_metric_raises(key):
    with pytest.raises(InvalidMetricError) as excinfo:
        CDN_REGISTRY.resolve(key)
    assert excinfo.value.status_code == 400
    assert excinfo.value.to_payload() == {'error': 'Invalid metric'}


def test_edge_unknown_metric_message():
    with pytest.raises(InvalidMetricError) as excinfo:
        EDGE_REGISTRY.resolve('nope')
    assert excinfo.value.to_payload() == {'error': 'Invalid metric parameter'}


def test_topn_keys_are_not_in_account_registry():
    for key in ZONE_TOPN_REGISTRY:
        assert key not in CDN_REGISTRY


def test_invalid_entries_fail_at_load_time():
    with pytest.raises(KeyError):
        build_cdn_registry({'broken': {'scope': 'account'}})
    with pytest.raises(ValueError):
        build_cdn_registry({'broken': {'field': 'bytes', 'scope': 'galaxy'}})
    with pytest.raises(KeyError):
        build_edge_registry({'broken': {'dimension': 'ClientIP'}})


def test_descriptor_rejects_inconsistent_variants():
    with pytest.raises(ValueError):
        MetricDescriptor(
            key='x', provider=Provider.CDN_ANALYTICS, kind=MetricKind.DISTRIBUTION,
            summed_field='bytes', scope=Scope.ACCOUNT,
        )
    with pytest.raises(ValueError):
        MetricDescriptor(
            key='x', provider=Provider.EDGE_ANALYTICS, kind=MetricKind.TIME_SERIES,
            summed_field='Traffic', scope=Scope.ACCOUNT, action=EDGE_TIME_SERIES_ACTION,
        )


def test_topn_allow_list_rejects_unsafe_field_names():
    with pytest.raises(ValueError):
        build_zone_topn_fields({'l7Flow_evil': 'clientIP } } } query { x'})
    assert build_zone_topn_fields({'ok': 'clientIP'})['ok'] == 'clientIP'


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        ZONE_TOPN_REGISTRY['new_metric'] = 'clientIP'
