from __future__ import annotations
import re
from typing import Optional, Tuple, Union
from urllib.parse import SplitResult, ParseResult, urlsplit

from .errors import HostnameFormatError

_SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*://')

UrlLike = Union[str, SplitResult, ParseResult]


def normalize_source(u: UrlLike) -> str:
    """Reduce a URL (string or urllib result) to ``host[:port]``; other strings pass through trimmed."""
    if isinstance(u, (SplitResult, ParseResult)):
        parts = u
    else:
        raw = (u or "").strip()
        if not _SCHEME_RE.match(raw):
            return raw
        parts = urlsplit(raw)
    netloc = parts.netloc.rpartition("@")[2]
    return netloc.lower()


def split_port(source: str) -> Tuple[str, Optional[int]]:
    """Split ``host:port`` at the last colon.

    The host part is lower-cased. A port segment that is not a decimal number
    in 0-65535 raises HostnameFormatError.
    """
    if ":" not in source:
        return source, None
    host, _, port = source.rpartition(":")
    port = port.strip()
    if not port.isdigit() or not port.isascii() or int(port) > 65535:
        raise HostnameFormatError(f"Invalid port {port!r} in {source!r}")
    return host.lower(), int(port)


def clean_host(host: str) -> str:
    """Trim whitespace and a single trailing root dot, lower-case."""
    h = (host or "").strip().lower()
    return h[:-1] if h.endswith(".") else h
