from __future__ import annotations
import logging
from typing import Dict, NamedTuple, Optional, Tuple

import httpx
import requests

from .errors import SuffixListFetchError

log = logging.getLogger(__name__)

DATABASE_URL = "https://publicsuffix.org/list/public_suffix_list.dat"

HEADERS = {
    "User-Agent": "hostsuffix/1.0 (+https://publicsuffix.org/)",
    "Accept": "text/plain, */*; q=0.1",
}


class SuffixRules(NamedTuple):
    """Normalized contents of one suffix list download."""
    suffixes: Tuple[str, ...]
    wildcards: Tuple[str, ...]
    exceptions: Tuple[str, ...]


def _is_comment(line: str) -> bool:
    return not line or line.startswith("//") or line.startswith("#")


def normalize_rule(line: str) -> Optional[str]:
    """Reduce one list line to a bare, lower-case suffix.

    Returns None for blank and comment lines. Markers are stripped rather than
    interpreted: ``*.ck`` becomes ``ck``, and an exception such as ``!www.ck``
    becomes the suffix it resolves to, ``ck``. A bare ``*`` yields nothing.
    """
    token = (line or "").strip()
    if _is_comment(token):
        return None
    token = token.split()[0].lower()
    if token.startswith("!"):
        _, _, token = token[1:].partition(".")
    while token.startswith("*."):
        token = token[2:]
    if token == "*":
        token = ""
    token = token.strip(".").strip()
    return token or None


def parse_suffix_list(text: str) -> SuffixRules:
    """Parse raw list text into ordered, de-duplicated suffixes.

    Wildcard bases and exception names are kept on the side for the strict
    matching strategy.
    """
    suffixes: Dict[str, None] = {}
    wildcards: Dict[str, None] = {}
    exceptions: Dict[str, None] = {}
    for raw in (text or "").splitlines():
        line = raw.strip()
        if _is_comment(line):
            continue
        token = line.split()[0].lower()
        if token.startswith("!") and len(token) > 1:
            exceptions[token[1:]] = None
        elif token.startswith("*.") and len(token) > 2:
            wildcards[token[2:]] = None
        suffix = normalize_rule(line)
        if suffix:
            suffixes[suffix] = None
    log.debug("Parsed suffix list: suffixes=%d wildcards=%d exceptions=%d",
              len(suffixes), len(wildcards), len(exceptions))
    return SuffixRules(tuple(suffixes), tuple(wildcards), tuple(exceptions))


class SuffixListSource:
    """Downloads the raw suffix list from a fixed URL."""

    def __init__(self, url: str = DATABASE_URL, timeout: float = 30,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def fetch(self) -> str:
        log.info("Fetching suffix list: %s timeout=%ss", self.url, self.timeout)
        try:
            resp = requests.get(self.url, timeout=self.timeout, headers=HEADERS)
            log.debug("Suffix list response: status=%s content-type=%s",
                      resp.status_code, resp.headers.get("Content-Type"))
            resp.raise_for_status()
        except requests.RequestException as e:
            log.exception("Failed to download suffix list")
            raise SuffixListFetchError(self.url, str(e)) from e
        text = resp.text
        log.info("Fetched suffix list (chars=%d)", len(text))
        return text

    async def fetch_async(self, timeout: Optional[float] = None) -> str:
        timeout = self.timeout if timeout is None else timeout
        log.info("Fetching suffix list (async): %s timeout=%ss", self.url, timeout)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport,
                                         headers=HEADERS, follow_redirects=True) as client:
                resp = await client.get(self.url)
                log.debug("Suffix list response: status=%s content-type=%s",
                          resp.status_code, resp.headers.get("Content-Type"))
                resp.raise_for_status()
        except httpx.HTTPError as e:
            log.exception("Failed to download suffix list")
            raise SuffixListFetchError(self.url, str(e)) from e
        text = resp.text
        log.info("Fetched suffix list (chars=%d)", len(text))
        return text
