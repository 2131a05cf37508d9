from __future__ import annotations
from typing import AbstractSet, Callable, Dict, List, NamedTuple, Optional


class MatchResult(NamedTuple):
    is_valid: bool
    top_level_domain: Optional[str] = None
    domain: Optional[str] = None


NO_MATCH = MatchResult(False)

Matcher = Callable[..., MatchResult]


def split_labels(hostname: str) -> List[str]:
    """Split on dots, dropping blank labels; labels come back trimmed and lower-case."""
    return [p.strip().lower() for p in (hostname or "").split(".") if p.strip()]


def _result(labels: List[str], start: int) -> MatchResult:
    tld = ".".join(labels[start:])
    if start > 0:
        return MatchResult(True, tld, f"{labels[start - 1]}.{tld}")
    return MatchResult(True, tld, tld)


def greedy_match(hostname: str, suffixes: AbstractSet[str], **_ignored) -> MatchResult:
    """Greedy suffix growth.

    Start from the rightmost label and prepend one label at a time, stopping at
    the first candidate found in ``suffixes``. This is the shortest listed
    suffix, not the PSL's longest rule: with both ``uk`` and ``co.uk`` listed,
    ``a.b.co.uk`` resolves to ``uk``.
    """
    labels = split_labels(hostname)
    start = len(labels) - 1
    while start >= 0:
        if ".".join(labels[start:]) in suffixes:
            return _result(labels, start)
        start -= 1
    return NO_MATCH


def strict_match(hostname: str, suffixes: AbstractSet[str],
                 wildcards: AbstractSet[str] = frozenset(),
                 exceptions: AbstractSet[str] = frozenset()) -> MatchResult:
    """Public Suffix List precedence.

    An exception rule wins outright and yields its parent as the suffix.
    Otherwise the longest matching rule applies, where ``*.base`` matches any
    single label followed by ``base``. There is no implicit ``*`` rule, so a
    hostname under no listed suffix does not match.
    """
    labels = split_labels(hostname)
    for start in range(len(labels)):
        if ".".join(labels[start:]) in exceptions and start + 1 < len(labels):
            return _result(labels, start + 1)
    for start in range(len(labels)):
        if ".".join(labels[start:]) in suffixes:
            return _result(labels, start)
        if start + 1 < len(labels) and ".".join(labels[start + 1:]) in wildcards:
            return _result(labels, start)
    return NO_MATCH


STRATEGIES: Dict[str, Matcher] = {
    "greedy": greedy_match,
    "strict": strict_match,
}


def get_strategy(name: str) -> Matcher:
    try:
        return STRATEGIES[(name or "").lower()]
    except KeyError:
        raise ValueError(f"Unknown matching strategy {name!r}; expected one of {sorted(STRATEGIES)}") from None
