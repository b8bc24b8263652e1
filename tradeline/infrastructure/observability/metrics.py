"""Prometheus metrics for interactions, health classification, attention and notifications"""

from typing import Iterable

from prometheus_client import Counter, Histogram

# Interaction metrics
interaction_counter = Counter(
    "tradeline_interaction_total",
    "Mutating interactions handled",
    ["interaction", "outcome"],  # outcome: ok | rejected
)

rejection_counter = Counter(
    "tradeline_rejection_total",
    "Interactions rejected by validation",
    ["reason"],  # exception class name
)

# Derived state metrics
health_classification_counter = Counter(
    "tradeline_health_classification_total",
    "Health states assigned during recomputation",
    ["state"],
)

health_recompute_failures_counter = Counter(
    "tradeline_health_recompute_failures_total",
    "Health recomputations that failed after a successful mutation",
)

attention_items_counter = Counter(
    "tradeline_attention_items_total",
    "Attention items served",
    ["category"],
)

payments_auto_accepted_counter = Counter(
    "tradeline_payments_auto_accepted_total",
    "Payments accepted by the silence sweep",
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "notifier_webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "notifier_webhook_failures_total",
    "Failed notification webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_interaction(interaction: str, error: Exception | None = None) -> None:
    """Count an interaction outcome, labelling rejections by reason"""
    if error is None:
        interaction_counter.labels(interaction=interaction, outcome="ok").inc()
        return
    interaction_counter.labels(interaction=interaction, outcome="rejected").inc()
    rejection_counter.labels(reason=type(error).__name__).inc()


def record_attention_items(items: Iterable) -> None:
    for item in items:
        attention_items_counter.labels(category=item.category.value).inc()
