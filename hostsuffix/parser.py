from __future__ import annotations
import logging
from typing import Optional

from .config import Config
from .database import SuffixDatabase
from .hostname import ParsedHostname
from .matcher import MatchResult, Matcher, get_strategy, split_labels
from .normalize import UrlLike, clean_host, normalize_source, split_port
from .snapshot import SuffixSnapshot

log = logging.getLogger(__name__)


def choose(custom: MatchResult, public: MatchResult, favor_custom: bool) -> tuple:
    """Pick between the custom and public matches; returns (result, is_custom)."""
    if custom.is_valid and public.is_valid:
        return (custom, True) if favor_custom else (public, False)
    if public.is_valid:
        return public, False
    return custom, True


def derive_host(source: str, domain: str) -> str:
    """Portion of ``source`` before ``domain``, without the joining dot."""
    cut = len(source) - len(domain)
    if source.endswith(domain) and (cut == 0 or source[cut - 1] == "."):
        return source[:cut].rstrip(".").lower()
    # blank or padded labels in the source; rebuild from the normalized labels
    labels = split_labels(source)
    return ".".join(labels[:len(labels) - len(split_labels(domain))])


class HostnameParser:
    """Splits hostnames into host, registrable domain and matched suffix."""

    def __init__(self, database: Optional[SuffixDatabase] = None,
                 favor_custom: bool = False, strategy: str = "greedy"):
        self.database = database or SuffixDatabase()
        self.favor_custom = favor_custom
        self.strategy = strategy
        self._match: Matcher = get_strategy(strategy)

    @classmethod
    def from_config(cls, cfg: Config, database: Optional[SuffixDatabase] = None) -> "HostnameParser":
        p = cfg["parser"]
        return cls(
            database=database or SuffixDatabase.from_config(cfg),
            favor_custom=bool(p.get("favor_custom", False)),
            strategy=p.get("strategy") or "greedy",
        )

    def _prepare(self, source: UrlLike) -> tuple:
        source, port = split_port(normalize_source(source))
        return clean_host(source), port

    def match(self, source: str, port: Optional[int], snapshot: SuffixSnapshot,
              favor_custom: Optional[bool] = None) -> ParsedHostname:
        """Resolve an already split source against one snapshot. Pure, no I/O."""
        favor = self.favor_custom if favor_custom is None else favor_custom
        custom = self._match(source, snapshot.custom_set)
        public = self._match(source, snapshot.default_set,
                             wildcards=snapshot.wildcard_set,
                             exceptions=snapshot.exception_set)
        chosen, is_custom = choose(custom, public, favor)
        if not chosen.is_valid:
            log.debug("No suffix matched %r", source)
            return ParsedHostname(source=source, port=port)
        return ParsedHostname(
            source=source,
            port=port,
            host=derive_host(source, chosen.domain),
            domain=chosen.domain,
            top_level_domain=chosen.top_level_domain,
            is_valid=True,
            is_custom=is_custom,
        )

    def parse(self, source: UrlLike, favor_custom: Optional[bool] = None) -> ParsedHostname:
        """Parse ``source`` (``host``, ``host:port`` or a URL), refreshing the suffix list if due."""
        host, port = self._prepare(source)
        snapshot = self.database.refresh()
        return self.match(host, port, snapshot, favor_custom)

    async def parse_async(self, source: UrlLike, favor_custom: Optional[bool] = None,
                          timeout: Optional[float] = None) -> ParsedHostname:
        host, port = self._prepare(source)
        snapshot = await self.database.refresh_async(timeout=timeout)
        return self.match(host, port, snapshot, favor_custom)

    def close(self) -> None:
        self.database.close()

    async def aclose(self) -> None:
        await self.database.aclose()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()
        return False
