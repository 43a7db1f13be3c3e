"""Prometheus metrics shared across routers, services and workers."""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

version_transitions = Counter(
    "article_version_transitions_total",
    "Version status transitions by kind",
    ["kind"],  # publish | unpublish | noop
)
trending_refresh_duration = Histogram(
    "article_trending_refresh_duration_seconds",
    "Duration of a full trending score sweep",
    buckets=[0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0],
)
trending_tags_refreshed = Counter(
    "article_trending_tags_refreshed_total",
    "Tag stat rows whose trending score was recomputed by the sweep",
)
http_requests = Counter(
    "article_http_requests_total",
    "HTTP requests by method and status",
    ["method", "status"],
)


async def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
