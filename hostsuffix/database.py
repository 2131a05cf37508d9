from __future__ import annotations
import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from .cache import SuffixListCache
from .config import Config
from .errors import SuffixFormatError
from .snapshot import SuffixSnapshot
from .source import SuffixListSource, normalize_rule

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]

LOCK_POLL_SECONDS = 0.01


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SuffixDatabase:
    """Shared holder of the current suffix snapshot.

    Refreshes build a new snapshot and swap the reference, so a parse that has
    already read ``snapshot`` keeps one consistent copy. One refresh lock covers
    blocking and async callers alike; async callers on the same event loop also
    share one in-flight task.
    """

    def __init__(self, cache: Optional[SuffixListCache] = None,
                 source: Optional[SuffixListSource] = None,
                 clock: Clock = utcnow,
                 custom_suffixes: Iterable[str] = ()):
        self.source = source or SuffixListSource()
        self.cache = cache or SuffixListCache()
        self.clock = clock
        self._snapshot = SuffixSnapshot(database_url=self.source.url)
        self._lock = threading.Lock()
        self._swap_lock = threading.Lock()
        self._inflight: Dict[asyncio.AbstractEventLoop, asyncio.Task] = {}
        self._closed = False
        for tld in custom_suffixes:
            self.with_custom_top_level_domain(tld)

    @classmethod
    def from_config(cls, cfg: Config, clock: Clock = utcnow) -> "SuffixDatabase":
        sl = cfg["suffix_list"]
        ttl = timedelta(hours=float(sl["ttl_hours"]))
        return cls(
            cache=SuffixListCache(cfg["cache"].get("path"), ttl=ttl),
            source=SuffixListSource(sl["url"], timeout=float(sl["request_timeout_seconds"])),
            clock=clock,
            custom_suffixes=cfg["parser"].get("custom_suffixes") or (),
        )

    @property
    def ttl(self) -> timedelta:
        return self.cache.ttl

    @property
    def snapshot(self) -> SuffixSnapshot:
        return self._snapshot

    def _check_open(self):
        if self._closed:
            raise RuntimeError("SuffixDatabase is closed")

    # --- refresh ---
    def refresh(self) -> SuffixSnapshot:
        """Bring the snapshot up to date, blocking on file and network I/O."""
        self._check_open()
        if self._snapshot.is_fresh(self.clock()):
            return self._snapshot
        with self._lock:
            current = self._snapshot
            snap = self.cache.ensure_fresh(current, self.clock(), self.source.fetch)
            self._swap(current, snap)
            return self._snapshot

    async def refresh_async(self, timeout: Optional[float] = None) -> SuffixSnapshot:
        """Bring the snapshot up to date without blocking the event loop.

        Callers arriving while a refresh is running await that same refresh.
        ``timeout`` bounds the network fetch.
        """
        self._check_open()
        if self._snapshot.is_fresh(self.clock()):
            return self._snapshot
        loop = asyncio.get_running_loop()
        task = self._inflight.get(loop)
        if task is None or task.done():
            task = loop.create_task(self._refresh_async(loop, timeout))
            self._inflight[loop] = task
        return await asyncio.shield(task)

    async def _acquire_lock(self) -> None:
        # never blocks the loop; a cancelled waiter never holds the lock
        while not self._lock.acquire(blocking=False):
            await asyncio.sleep(LOCK_POLL_SECONDS)

    async def _refresh_async(self, loop: asyncio.AbstractEventLoop,
                             timeout: Optional[float]) -> SuffixSnapshot:
        try:
            await self._acquire_lock()
            try:
                current = self._snapshot
                snap = await self.cache.ensure_fresh_async(
                    current, self.clock(), lambda: self.source.fetch_async(timeout=timeout))
                self._swap(current, snap)
                return self._snapshot
            finally:
                self._lock.release()
        finally:
            self._inflight.pop(loop, None)

    def _swap(self, current: SuffixSnapshot, snap: SuffixSnapshot) -> None:
        # customs registered while the refresh ran must survive the swap
        with self._swap_lock:
            latest = self._snapshot
            if latest is not current:
                snap = snap.with_custom(latest.custom_suffixes)
            self._snapshot = snap
        if snap is not latest:
            log.debug("Suffix snapshot swapped (suffixes=%d, custom=%d, next_refresh=%s)",
                      len(snap.default_suffixes), len(snap.custom_suffixes), snap.next_refresh)

    # --- accessors ---
    def top_level_domains(self) -> List[str]:
        return list(self._snapshot.default_suffixes)

    def custom_top_level_domains(self) -> List[str]:
        return list(self._snapshot.custom_suffixes)

    def all_top_level_domains(self) -> List[str]:
        snap = self._snapshot
        return list(snap.default_suffixes) + list(snap.custom_suffixes)

    def last_refresh(self) -> Optional[datetime]:
        return self._snapshot.last_refresh

    def next_refresh(self) -> Optional[datetime]:
        return self._snapshot.next_refresh

    def with_custom_top_level_domain(self, tld: str) -> "SuffixDatabase":
        """Register a custom suffix; returns self so calls can be chained."""
        suffix = normalize_rule(tld)
        if not suffix:
            raise SuffixFormatError(f"Not a usable suffix: {tld!r}")
        with self._swap_lock:
            self._snapshot = self._snapshot.with_custom([suffix])
        log.debug("Custom suffix registered: %s", suffix)
        return self

    # --- teardown ---
    def close(self) -> None:
        self._closed = True

    async def aclose(self) -> None:
        self._closed = True
        task = self._inflight.get(asyncio.get_running_loop())
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

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
