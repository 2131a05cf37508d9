from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from .source import DATABASE_URL, SuffixRules

DEFAULT_TTL = timedelta(hours=24)


def _merge(first: Iterable[str], second: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys([*first, *second]))


def _to_iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.astimezone(timezone.utc).isoformat() if dt else None


def _from_iso(v: Any) -> Optional[datetime]:
    if not v:
        return None
    dt = datetime.fromisoformat(str(v).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _str_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    v = data.get(key) or []
    if not isinstance(v, list) or not all(isinstance(s, str) for s in v):
        raise ValueError(f"{key} must be a list of strings")
    return tuple(v)


@dataclass(frozen=True)
class SuffixSnapshot:
    """Immutable point-in-time copy of the suffix sets and refresh stamps."""
    default_suffixes: Tuple[str, ...] = ()
    custom_suffixes: Tuple[str, ...] = ()
    wildcard_rules: Tuple[str, ...] = ()
    exception_rules: Tuple[str, ...] = ()
    last_refresh: Optional[datetime] = None
    next_refresh: Optional[datetime] = None
    database_url: str = DATABASE_URL
    _default_set: frozenset = field(init=False, repr=False, compare=False)
    _custom_set: frozenset = field(init=False, repr=False, compare=False)
    _wildcard_set: frozenset = field(init=False, repr=False, compare=False)
    _exception_set: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_default_set", frozenset(self.default_suffixes))
        object.__setattr__(self, "_custom_set", frozenset(self.custom_suffixes))
        object.__setattr__(self, "_wildcard_set", frozenset(self.wildcard_rules))
        object.__setattr__(self, "_exception_set", frozenset(self.exception_rules))

    @property
    def default_set(self) -> frozenset:
        return self._default_set

    @property
    def custom_set(self) -> frozenset:
        return self._custom_set

    @property
    def wildcard_set(self) -> frozenset:
        return self._wildcard_set

    @property
    def exception_set(self) -> frozenset:
        return self._exception_set

    def is_fresh(self, now: datetime) -> bool:
        return self.next_refresh is not None and self.next_refresh > now

    def with_custom(self, suffixes: Iterable[str]) -> "SuffixSnapshot":
        """Return a copy with ``suffixes`` appended to the custom set."""
        merged = _merge(self.custom_suffixes, suffixes)
        if merged == self.custom_suffixes:
            return self
        return replace(self, custom_suffixes=merged)

    def refreshed(self, rules: SuffixRules, now: datetime,
                  ttl: timedelta = DEFAULT_TTL) -> "SuffixSnapshot":
        """Return a copy holding freshly fetched defaults; customs are kept."""
        return replace(
            self,
            default_suffixes=rules.suffixes,
            wildcard_rules=rules.wildcards,
            exception_rules=rules.exceptions,
            last_refresh=now,
            next_refresh=now + ttl,
        )

    def adopt(self, other: "SuffixSnapshot") -> "SuffixSnapshot":
        """Take ``other``'s defaults and stamps, merging its customs after ours."""
        return replace(other, custom_suffixes=_merge(self.custom_suffixes, other.custom_suffixes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customTopLevelDomains": list(self.custom_suffixes),
            "databaseUrl": self.database_url,
            "lastRefresh": _to_iso(self.last_refresh),
            "nextRefresh": _to_iso(self.next_refresh),
            "topLevelDomains": list(self.default_suffixes),
            "wildcardRules": list(self.wildcard_rules),
            "exceptionRules": list(self.exception_rules),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuffixSnapshot":
        """Build a snapshot from the persisted document; raises ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return cls(
            default_suffixes=_str_list(data, "topLevelDomains"),
            custom_suffixes=_str_list(data, "customTopLevelDomains"),
            wildcard_rules=_str_list(data, "wildcardRules"),
            exception_rules=_str_list(data, "exceptionRules"),
            last_refresh=_from_iso(data.get("lastRefresh")),
            next_refresh=_from_iso(data.get("nextRefresh")),
            database_url=data.get("databaseUrl") or DATABASE_URL,
        )
