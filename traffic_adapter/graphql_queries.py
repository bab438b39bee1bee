from typing import List
import logging

from .types import GraphQLQuery, MetricDescriptor, TimeWindow

logger = logging.getLogger(__name__)

# Query limits
TIME_SERIES_LIMIT = 1000
DISTRIBUTION_LIMIT = 100
ZONE_TOPN_LIMIT = 10

# Distribution dataset grouped by an arbitrary dimension
OVERVIEW_DATASET = 'httpRequestsOverviewAdaptiveGroups'
ZONE_TOPN_DATASET = 'httpRequestsAdaptiveGroups'

# Hour-grouped dataset dimension for function metrics
HOURLY_DATASET_DIMENSION = 'datetimeHour'

# The filter applies only the lower bound; $to is bound but not referenced.
ZONE_TIME_SERIES_QUERY = """
query getTrafficTrend($zoneIds: [String!], $from: String!) {{
  viewer {{
    zones(filter: {{ zoneTag_in: $zoneIds }}) {{
      zoneTag
      {dataset}(
        limit: {limit},
        filter: {{
            {dimension}_geq: $from
        }},
        orderBy: [{order_by}]
      ) {{
        dimensions {{ {dimension} }}
        sum {{ {field} }}
      }}
    }}
  }}
}}
"""

ACCOUNT_DISTRIBUTION_QUERY = """
query GetAccountDistribution($accountTag: String, $filter: AccountHttpRequestsAdaptiveGroupsFilter_InputObject) {{
  viewer {{
    accounts(filter: {{accountTag: $accountTag}}) {{
      resultData: {dataset}(filter: $filter, limit: {limit}, orderBy: [{order_by}]) {{
        sum {{ {field} }}
        dimensions {{ {dimension} }}
      }}
    }}
  }}
}}
"""

ACCOUNT_TIME_SERIES_QUERY = """
query GetAccountTraffic($accountTag: String, $filter: AccountHttpRequestsAdaptiveGroupsFilter_InputObject) {{
  viewer {{
    accounts(filter: {{accountTag: $accountTag}}) {{
      resultData: {dataset}(filter: $filter, limit: {limit}, orderBy: [{order_by}]) {{
        sum {{ {field} }}
        dimensions {{ {dimension} }}
      }}
    }}
  }}
}}
"""

# Every value below is written into the query text literally, without escaping.
ZONE_TOPN_QUERY = """
query{{
  viewer {{
    zones(filter: {{ zoneTag: "{zone_tag}" }}) {{
      {dataset}(
        limit: {limit},
        orderBy: [count_DESC],
        filter: {{
          datetime_geq: "{query_from}",
          datetime_lt: "{query_to}"
        }}
      ) {{
        count
        dimensions {{
          {field}
        }}
      }}
    }}
  }}
}}
"""


def time_series_dimension(descriptor: MetricDescriptor, window: TimeWindow) -> str:
    """Time dimension returned by the account time-series query for this metric."""
    if descriptor.hourly_dataset:
        return HOURLY_DATASET_DIMENSION
    return window.granularity.dimension_key


def build_zone_time_series_query(
    descriptor: MetricDescriptor,
    window: TimeWindow,
    zone_ids: List[str]
) -> GraphQLQuery:
    """Per-zone grouped query; only the lower bound reaches the filter."""
    query = ZONE_TIME_SERIES_QUERY.format(
        dataset=window.granularity.dataset,
        limit=TIME_SERIES_LIMIT,
        dimension=window.granularity.dimension_key,
        order_by=window.granularity.order_by,
        field=descriptor.summed_field,
    )
    variables = {
        'zoneIds': list(zone_ids),
        'from': window.query_from,
        'to': window.query_to,
    }
    return GraphQLQuery(query=query, variables=variables)


def build_account_distribution_query(
    descriptor: MetricDescriptor,
    window: TimeWindow,
    account_tag: str
) -> GraphQLQuery:
    """Top dimension values over the overview dataset, full-precision bounds."""
    query = ACCOUNT_DISTRIBUTION_QUERY.format(
        dataset=OVERVIEW_DATASET,
        limit=DISTRIBUTION_LIMIT,
        order_by=f"sum_{descriptor.summed_field}_DESC",
        field=descriptor.summed_field,
        dimension=descriptor.dimension,
    )
    variables = {
        'accountTag': account_tag,
        'filter': {
            'datetime_geq': window.start_iso,
            'datetime_leq': window.end_iso,
        },
    }
    return GraphQLQuery(query=query, variables=variables)


def build_account_time_series_query(
    descriptor: MetricDescriptor,
    window: TimeWindow,
    account_tag: str
) -> GraphQLQuery:
    """Account time series over the granularity dataset, or the hourly dataset for function metrics."""
    if descriptor.hourly_dataset:
        dataset = descriptor.hourly_dataset
        order_by = f"{HOURLY_DATASET_DIMENSION}_ASC"
    else:
        dataset = window.granularity.dataset
        order_by = window.granularity.order_by

    query = ACCOUNT_TIME_SERIES_QUERY.format(
        dataset=dataset,
        limit=TIME_SERIES_LIMIT,
        order_by=order_by,
        field=descriptor.summed_field,
        dimension=time_series_dimension(descriptor, window),
    )
    return GraphQLQuery(query=query, variables={'accountTag': account_tag, 'filter': window.filter()})


def build_account_query(
    descriptor: MetricDescriptor,
    window: TimeWindow,
    account_tag: str
) -> GraphQLQuery:
    """Dispatch on the descriptor kind."""
    if descriptor.is_distribution:
        return build_account_distribution_query(descriptor, window, account_tag)
    return build_account_time_series_query(descriptor, window, account_tag)


def build_zone_topn_query(field: str, window: TimeWindow, zone_tag: str) -> GraphQLQuery:
    """Ad-hoc Top-N over one zone. ``field`` must come from the Top-N allow-list."""
    query = ZONE_TOPN_QUERY.format(
        zone_tag=zone_tag,
        dataset=ZONE_TOPN_DATASET,
        limit=ZONE_TOPN_LIMIT,
        query_from=window.query_from,
        query_to=window.query_to,
        field=field,
    )
    return GraphQLQuery(query=query)
