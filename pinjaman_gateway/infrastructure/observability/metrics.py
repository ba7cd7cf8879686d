"""Prometheus metrics for reducer actions, persistence and sync"""

from prometheus_client import Counter, Histogram

# Action metrics
action_counter = Counter(
    "pinjaman_action_total",
    "Reducer actions dispatched",
    ["action", "outcome"],  # applied | ignored
)

# Persistence metrics
state_save_counter = Counter(
    "pinjaman_state_save_total",
    "State save attempts",
    ["target", "outcome"],  # target: local | remote, outcome: ok | failed
)

state_save_latency_histogram = Histogram(
    "pinjaman_state_save_latency_seconds",
    "Remote state store write time",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

state_load_failures_counter = Counter(
    "pinjaman_state_load_failures_total",
    "Failed state loads",
    ["source"],  # local | remote
)

# Webhook sync metrics
sync_failure_counter = Counter(
    "pinjaman_sync_failures_total",
    "Failed webhook sync deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_action(action_type: str, applied: bool) -> None:
    """Count one dispatched action by type and outcome"""
    action_counter.labels(action=action_type, outcome="applied" if applied else "ignored").inc()


def record_save(target: str, ok: bool) -> None:
    state_save_counter.labels(target=target, outcome="ok" if ok else "failed").inc()
