"""Navigation target validation."""

import re
from urllib.parse import quote, urlsplit, urlunsplit

from pyrock.services.errors import InvalidURLError

__all__ = ["normalize_target_url"]

_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_HOST_PATTERN = re.compile(r"^[\w\-.~%]+$")
# Reserved characters and existing escapes survive percent-encoding untouched
_URL_SAFE_CHARS = "/:@!$&'()*+,;=?#[]%~"


def normalize_target_url(url: str) -> str:
    """Turn user input into an absolute http(s) URL.

    Input without a scheme gets ``https://`` prepended; ``example.com`` becomes
    ``https://example.com``. Whitespace inside the path, query or fragment is
    percent-encoded (``/wiki/New York`` becomes ``/wiki/New%20York``), while
    whitespace in the host is rejected.

    Args:
        url: Raw navigation target

    Returns:
        Absolute URL

    Raises:
        InvalidURLError: If the result is not a well-formed absolute URL
    """
    candidate = str(url).strip()
    if not candidate:
        raise InvalidURLError(url)

    if not _SCHEME_PATTERN.match(candidate):
        candidate = f"https://{candidate}"

    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
        # Accessing port validates it
        parts.port  # noqa: B018
    except ValueError as e:
        raise InvalidURLError(url) from e

    if any(char.isspace() for char in parts.netloc):
        raise InvalidURLError(url)

    if parts.scheme.lower() not in ("http", "https") or not hostname:
        raise InvalidURLError(url)

    # IPv6 literals are bracketed in the netloc and already validated by urlsplit
    if "[" not in parts.netloc and not _HOST_PATTERN.match(hostname):
        raise InvalidURLError(url)

    if any(char.isspace() for char in candidate):
        candidate = urlunsplit(
            parts._replace(
                path=quote(parts.path, safe=_URL_SAFE_CHARS),
                query=quote(parts.query, safe=_URL_SAFE_CHARS),
                fragment=quote(parts.fragment, safe=_URL_SAFE_CHARS),
            )
        )

    return candidate
