from urllib.parse import urlsplit, urlunsplit


def loggable_url(url: str) -> str:
    """Drop the query string, which may carry credentials, before logging a URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<unparseable url>"
    if not parts.query:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", "")) + "?<redacted>"
