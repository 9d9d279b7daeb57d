from typing import Collection, Optional


def is_origin_allowed(origin: Optional[str], allowed_origins: Collection[str]) -> bool:
    # Exact string comparison: scheme, host and port must all match.
    if not origin:
        return False
    return origin in allowed_origins


def resolve_allow_origin(
    origin: Optional[str], allowed_origins: Collection[str]
) -> Optional[str]:
    """
    Value for Access-Control-Allow-Origin, or None when the header must be
    left out of the response entirely.
    """
    if is_origin_allowed(origin, allowed_origins):
        return origin
    return None
