"""Prometheus metrics for Elasticsearch calls (exposed at /metrics)."""

from prometheus_client import Counter

ES_REQUESTS = Counter(
    "product_search_es_requests_total",
    "Elasticsearch requests issued by the product repository",
    ["operation", "outcome"],
)


def record(operation: str, outcome: str = "success") -> None:
    ES_REQUESTS.labels(operation=operation, outcome=outcome).inc()
