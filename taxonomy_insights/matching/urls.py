"""
URL Normalization

Path-level normalization used by every URL-based matching strategy. The
host, scheme, query and fragment never take part in a match.
"""

import re
from typing import Optional, Tuple
from urllib.parse import unquote, urlsplit

_FILE_EXTENSION = re.compile(r"\.(html?|php|aspx?)$", re.IGNORECASE)
_MULTI_SLASH = re.compile(r"/{2,}")


class MalformedUrl(ValueError):
    """URL could not be parsed"""


def normalize_url_path(url: str) -> str:
    """
    Lowercased path without trailing slash or page extension.
    
    Relative paths are accepted. Raises ``MalformedUrl`` when the URL
    cannot be parsed.
    
    Example:
        >>> normalize_url_path("https://www.shop.com/Phones/Smartphones/?ref=x")
        '/phones/smartphones'
    """
    if url is None or not url.strip():
        raise MalformedUrl("empty url")
    candidate = url.strip()
    if "://" not in candidate and not candidate.startswith("/"):
        if candidate.startswith("www.") or "." in candidate.split("/", 1)[0]:
            candidate = "//" + candidate
        else:
            candidate = "/" + candidate
    try:
        parts = urlsplit(candidate)
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise MalformedUrl(f"{url!r}: {e}") from e
    
    path = unquote(parts.path).lower()
    path = _MULTI_SLASH.sub("/", path)
    path = _FILE_EXTENSION.sub("", path)
    path = path.rstrip("/")
    return path or "/"


def path_segments(url: str) -> Tuple[str, ...]:
    """Non-empty path segments of a URL"""
    return tuple(s for s in normalize_url_path(url).split("/") if s)


def safe_path_segments(url: Optional[str]) -> Optional[Tuple[str, ...]]:
    """``path_segments`` that returns None instead of raising"""
    if not url:
        return None
    try:
        return path_segments(url)
    except MalformedUrl:
        return None
