from __future__ import annotations


class HostSuffixError(Exception):
    """Base class for every error raised by hostsuffix."""


class HostnameFormatError(HostSuffixError, ValueError):
    """The hostname could not be split into a source and a port."""


class SuffixFormatError(HostSuffixError, ValueError):
    """A custom suffix normalized to nothing usable."""


class SuffixListFetchError(HostSuffixError):
    """Downloading the remote suffix list failed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch suffix list from {url}: {reason}")
        self.url = url
        self.reason = reason


class SuffixCacheError(HostSuffixError):
    """The suffix cache file could not be written."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write suffix cache {path}: {reason}")
        self.path = path
        self.reason = reason
