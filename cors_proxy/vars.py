import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "cors-proxy")
HOST = os.environ.get("HOSTNAME", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))

# Seconds to wait on the upstream (connect, read, write and pool)
PROXY_TIMEOUT = float(os.getenv("PROXY_TIMEOUT", "30"))

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

# Served locally, so this path is never proxied. The default sits under a
# reserved prefix so it does not shadow an upstream /metrics. Empty disables it.
METRICS_PATH = os.getenv("METRICS_PATH", "/_cors_proxy/metrics")


def _parse_otlp_headers(raw: str) -> list:
    headers: list = []
    if not raw:
        return headers
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry or "=" not in entry:
            continue
        key, val = entry.split("=", 1)
        key = key.strip()
        val = val.strip()
        if key and val:
            headers.append((key, val))
    return headers


OTLP_HEADER_PAIRS = _parse_otlp_headers(OTLP_HEADERS)
