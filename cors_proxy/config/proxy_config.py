"""
Proxy configuration derived from the environment.

The configuration is parsed into an immutable ``ProxyConfig`` that is handed
to the router and the forwarder. Nothing below the HTTP route reads the
environment directly.

Recognized keys:
    TARGET_ENDPOINT     upstream URL (required)
    ALLOWED_ORIGINS     JSON array of exact-match origins (required)
    ALLOWED_PATHS       JSON array of wildcard path patterns (required)
    PAYLOAD_OVERRIDE    literal body that replaces every forwarded response
    CORS_MAX_AGE        preflight cache lifetime in seconds (default 86400)
    ADDITIONAL_HEADERS  JSON object merged into every CORS header set
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger("uvicorn.error")

DEFAULT_CORS_MAX_AGE = 86400

CONFIG_KEYS = (
    "TARGET_ENDPOINT",
    "ALLOWED_ORIGINS",
    "ALLOWED_PATHS",
    "PAYLOAD_OVERRIDE",
    "CORS_MAX_AGE",
    "ADDITIONAL_HEADERS",
)


class ConfigurationError(ValueError):
    """A required proxy setting is missing or empty."""


class ParseStatus(str, Enum):
    PARSED = "parsed"
    ABSENT = "absent"
    MALFORMED = "malformed"
    WRONG_TYPE = "wrong_type"


@dataclass(frozen=True)
class JsonParseResult:
    """
    Outcome of decoding a JSON-valued setting.

    Absent, malformed and wrongly typed values all carry the default in
    ``value``; ``status`` tells them apart.
    """

    value: Any
    status: ParseStatus

    @property
    def used_default(self) -> bool:
        return self.status != ParseStatus.PARSED


def _decode_json(key: str, raw: Optional[str]):
    if not raw:
        return None, ParseStatus.ABSENT
    try:
        return json.loads(raw), ParseStatus.PARSED
    except ValueError as e:
        logger.warning(f"[Config] {key} is not valid JSON, using default: {e}")
        return None, ParseStatus.MALFORMED


SCALAR_TYPES = (str, int, float, bool, type(None))


def _as_text(value: Any) -> str:
    """Strings as-is; numbers, booleans and null in their JSON spelling."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def parse_json_array(key: str, raw: Optional[str], default: list) -> JsonParseResult:
    parsed, status = _decode_json(key, raw)
    if status != ParseStatus.PARSED:
        return JsonParseResult(value=default, status=status)
    if not isinstance(parsed, list) or not all(
        isinstance(v, SCALAR_TYPES) for v in parsed
    ):
        logger.warning(
            f"[Config] {key} must be a JSON array of strings, using default"
        )
        return JsonParseResult(value=default, status=ParseStatus.WRONG_TYPE)
    return JsonParseResult(
        value=[_as_text(v) for v in parsed], status=ParseStatus.PARSED
    )


def parse_json_object(key: str, raw: Optional[str], default: dict) -> JsonParseResult:
    parsed, status = _decode_json(key, raw)
    if status != ParseStatus.PARSED:
        return JsonParseResult(value=default, status=status)
    if not isinstance(parsed, dict) or not all(
        isinstance(v, SCALAR_TYPES) for v in parsed.values()
    ):
        logger.warning(
            f"[Config] {key} must be a JSON object of strings, using default"
        )
        return JsonParseResult(value=default, status=ParseStatus.WRONG_TYPE)
    return JsonParseResult(
        value={k: _as_text(v) for k, v in parsed.items()}, status=ParseStatus.PARSED
    )


def parse_max_age(raw: Optional[str]) -> int:
    if not raw:
        return DEFAULT_CORS_MAX_AGE
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(
            f"[Config] CORS_MAX_AGE={raw!r} is not an integer, "
            f"using {DEFAULT_CORS_MAX_AGE}"
        )
        return DEFAULT_CORS_MAX_AGE


class ProxyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_endpoint: str
    allowed_origins: FrozenSet[str]
    allowed_paths: Tuple[str, ...]
    payload_override: Optional[str] = None
    cors_max_age: int = DEFAULT_CORS_MAX_AGE
    additional_headers: Dict[str, str] = {}

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "ProxyConfig":
        """
        Build a configuration from an environment mapping.

        Raises:
            ConfigurationError: if TARGET_ENDPOINT, ALLOWED_ORIGINS or
                ALLOWED_PATHS is missing, empty or unparseable.
        """
        target_endpoint = env.get("TARGET_ENDPOINT")
        if not target_endpoint:
            raise ConfigurationError(
                "TARGET_ENDPOINT environment variable is required"
            )

        allowed_origins = parse_json_array(
            "ALLOWED_ORIGINS", env.get("ALLOWED_ORIGINS"), []
        ).value
        if not allowed_origins:
            raise ConfigurationError(
                "ALLOWED_ORIGINS environment variable is required"
            )

        allowed_paths = parse_json_array(
            "ALLOWED_PATHS", env.get("ALLOWED_PATHS"), []
        ).value
        if not allowed_paths:
            raise ConfigurationError("ALLOWED_PATHS environment variable is required")

        return cls(
            target_endpoint=target_endpoint,
            allowed_origins=frozenset(allowed_origins),
            allowed_paths=tuple(allowed_paths),
            payload_override=env.get("PAYLOAD_OVERRIDE") or None,
            cors_max_age=parse_max_age(env.get("CORS_MAX_AGE")),
            additional_headers=parse_json_object(
                "ADDITIONAL_HEADERS", env.get("ADDITIONAL_HEADERS"), {}
            ).value,
        )


@lru_cache(maxsize=8)
def _load_snapshot(snapshot: Tuple[Tuple[str, Optional[str]], ...]) -> ProxyConfig:
    return ProxyConfig.from_env(dict(snapshot))


def load_proxy_config(env: Optional[Mapping[str, str]] = None) -> ProxyConfig:
    """
    Return the configuration for the current environment.

    Parsed configurations are memoized per distinct set of values, so a
    steady environment is parsed once. Failures are not memoized and are
    raised again on the next call.
    """
    env = os.environ if env is None else env
    snapshot = tuple((key, env.get(key)) for key in CONFIG_KEYS)
    return _load_snapshot(snapshot)
