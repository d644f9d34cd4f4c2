"""
GitHub feature — upstream clients and the aggregation primitives built on them.

Public API:
    from features.github import GraphQLRunner, RestClient, collect_all
    from features.github import bucket_by_day, merge_buckets, compute_streaks
    from features.github import errors
"""

from features.github.graphql import GraphQLRunner
from features.github.pagination import collect_all
from features.github.rest import RestClient, RestResponse, build_http_client
from features.github.timeseries import bucket_by_day, compute_streaks, flatten_calendar, merge_buckets

__all__ = [
    "GraphQLRunner",
    "RestClient",
    "RestResponse",
    "build_http_client",
    "collect_all",
    "bucket_by_day",
    "merge_buckets",
    "compute_streaks",
    "flatten_calendar",
]
