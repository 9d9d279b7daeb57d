from prometheus_client import Counter

CONFIG_ERROR = "config_error"
NOT_FOUND = "not_found"
PREFLIGHT = "preflight"
FORWARDED = "forwarded"
UPSTREAM_ERROR = "upstream_error"

OUTCOMES = Counter(
    "cors_proxy_outcomes",
    "Proxied requests by routing outcome",
    ["outcome"],
)


def record_outcome(outcome: str, span=None) -> None:
    OUTCOMES.labels(outcome=outcome).inc()
    if span is not None:
        span.set_attribute("cors_proxy.outcome", outcome)
