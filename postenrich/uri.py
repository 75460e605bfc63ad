"""
URI helpers for image references.

`is_valid_image_uri` answers whether an image source may be crawled. It never
raises: a candidate that cannot be parsed at all is reported as
`UriValidity.INDETERMINATE`, which is distinct from a confirmed `INVALID`
but equally falsy for crawl decisions.
"""

from __future__ import annotations

import posixpath
import re
from enum import Enum
from typing import Optional
from urllib.parse import unquote, urlsplit

# Characters that can never appear unescaped in a URI (RFC 3986 §2)
_ILLEGAL_URI_CHARS = re.compile(r"[\s<>\"{}|\\^`]")
_HOST_RE = re.compile(r"^[A-Za-z0-9.\-_~%!$&'()*+,;=]*$")


class UriValidity(Enum):
    VALID = "valid"
    INVALID = "invalid"
    INDETERMINATE = "indeterminate"

    def __bool__(self) -> bool:
        return self is UriValidity.VALID


def is_valid_image_uri(candidate: object) -> UriValidity:
    if not isinstance(candidate, str) or _ILLEGAL_URI_CHARS.search(candidate):
        return UriValidity.INDETERMINATE
    try:
        parts = urlsplit(candidate)
        # Accessing the port validates it (raises ValueError when out of range)
        parts.port
    except ValueError:
        return UriValidity.INDETERMINATE
    host = parts.hostname or ""
    if parts.netloc and "[" not in parts.netloc and not _HOST_RE.match(host):
        return UriValidity.INDETERMINATE
    if parts.scheme in ("http", "https") and host:
        return UriValidity.VALID
    return UriValidity.INVALID


def is_protocol_relative(src: str) -> bool:
    return src.startswith("//")


def is_root_relative(src: str) -> bool:
    return src.startswith("/") and not src.startswith("//")


def absolutize(src: str, base_url: str) -> str:
    """Prefix root-relative paths with the site base URL.

    Protocol-relative (``//bucket/...``) and absolute sources are returned
    verbatim.
    """
    if base_url and is_root_relative(src):
        return base_url.rstrip("/") + src
    return src


def probe_target(src: str, base_url: str = "", scheme: str = "http") -> str:
    """URL handed to the dimension prober for ``src``."""
    if is_protocol_relative(src):
        return f"{scheme}:{src}"
    return absolutize(src, base_url)


def url_basename(url: str) -> str:
    path: Optional[str]
    try:
        path = urlsplit(url).path
    except ValueError:
        path = None
    if path is None:
        path = url.split("?", 1)[0].split("#", 1)[0]
    return unquote(posixpath.basename(path.rstrip("/")))
