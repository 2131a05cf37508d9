from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ParsedHostname:
    """Structured parts of one parsed hostname."""
    source: str
    port: Optional[int] = None
    host: Optional[str] = None
    domain: Optional[str] = None
    top_level_domain: Optional[str] = None
    is_valid: bool = False
    is_custom: bool = False
    # reserved, never populated
    protocol: Optional[str] = None

    def to_domain(self) -> Optional[str]:
        return self.domain

    def to_host(self) -> Optional[str]:
        return self.host

    def to_fully_qualified_domain(self) -> Optional[str]:
        if not self.host or not self.host.strip():
            return self.domain
        return f"{self.host}.{self.domain}"

    def to_wildcard(self) -> Optional[str]:
        if not self.domain:
            return None
        return f"*.{self.domain}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "host": self.host,
            "isCustom": self.is_custom,
            "isValid": self.is_valid,
            "port": self.port,
            "protocol": self.protocol,
            "source": self.source,
            "topLevelDomain": self.top_level_domain,
        }
