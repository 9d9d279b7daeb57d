from .proxy_config import (
    ConfigurationError,
    JsonParseResult,
    ParseStatus,
    ProxyConfig,
    load_proxy_config,
)

__all__ = [
    "ConfigurationError",
    "JsonParseResult",
    "ParseStatus",
    "ProxyConfig",
    "load_proxy_config",
]
