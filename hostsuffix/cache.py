from __future__ import annotations
import asyncio
import json
import logging
import os
import tempfile
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Awaitable, Callable, Union

from .errors import SuffixCacheError
from .snapshot import DEFAULT_TTL, SuffixSnapshot
from .source import parse_suffix_list

log = logging.getLogger(__name__)

CACHE_FILENAME = "hostsuffix-public-suffix-list.json"


@lru_cache(maxsize=1)
def default_cache_path() -> Path:
    """Temp-dir cache path, resolved once per process."""
    return Path(tempfile.gettempdir()) / CACHE_FILENAME


class SuffixListCache:
    """Durable snapshot store gated by a refresh TTL.

    Reads fail soft: a missing, empty or corrupt file is a cache miss. Writes go
    to a temp file in the same directory and are renamed into place, so a
    concurrent reader sees either the old document or the new one.
    """

    def __init__(self, path: Union[str, Path, None] = None, ttl: timedelta = DEFAULT_TTL):
        self.path = Path(path) if path else default_cache_path()
        self.ttl = ttl

    # --- persistence ---
    def load(self) -> SuffixSnapshot:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.debug("Suffix cache %s not found", self.path)
            return SuffixSnapshot()
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Suffix cache %s unreadable, treating as miss: %s", self.path, e)
            return SuffixSnapshot()
        if not raw.strip():
            log.debug("Suffix cache %s is empty", self.path)
            return SuffixSnapshot()
        try:
            snap = SuffixSnapshot.from_dict(json.loads(raw))
        except ValueError as e:
            log.warning("Suffix cache %s corrupt, treating as miss: %s", self.path, e)
            return SuffixSnapshot()
        log.debug("Loaded suffix cache %s (suffixes=%d, next_refresh=%s)",
                  self.path, len(snap.default_suffixes), snap.next_refresh)
        return snap

    def store(self, snapshot: SuffixSnapshot) -> None:
        payload = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp",
                                            dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            log.exception("Failed to write suffix cache %s", self.path)
            raise SuffixCacheError(str(self.path), str(e)) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    log.debug("Could not remove temp file %s", tmp_name)
        log.info("Saved suffix cache %s (suffixes=%d, custom=%d)",
                 self.path, len(snapshot.default_suffixes), len(snapshot.custom_suffixes))

    async def load_async(self) -> SuffixSnapshot:
        return await asyncio.to_thread(self.load)

    async def store_async(self, snapshot: SuffixSnapshot) -> None:
        await asyncio.to_thread(self.store, snapshot)

    # --- TTL gate ---
    def ensure_fresh(self, current: SuffixSnapshot, now: datetime,
                     fetch: Callable[[], str]) -> SuffixSnapshot:
        """Return a snapshot valid at ``now``, fetching only when both the
        in-memory and the persisted copies are stale."""
        if current.is_fresh(now):
            return current
        persisted = self.load()
        if persisted.is_fresh(now):
            log.info("Adopting persisted suffix cache %s (next_refresh=%s)", self.path, persisted.next_refresh)
            return current.adopt(persisted)
        snap = current.refreshed(parse_suffix_list(fetch()), now, self.ttl)
        self.store(snap)
        return snap

    async def ensure_fresh_async(self, current: SuffixSnapshot, now: datetime,
                                 fetch: Callable[[], Awaitable[str]]) -> SuffixSnapshot:
        if current.is_fresh(now):
            return current
        persisted = await self.load_async()
        if persisted.is_fresh(now):
            log.info("Adopting persisted suffix cache %s (next_refresh=%s)", self.path, persisted.next_refresh)
            return current.adopt(persisted)
        snap = current.refreshed(parse_suffix_list(await fetch()), now, self.ttl)
        await self.store_async(snap)
        return snap
