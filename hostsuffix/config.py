from __future__ import annotations
import copy
import yaml
from dataclasses import dataclass
from typing import Any, Dict

from .source import DATABASE_URL

DEFAULTS: Dict[str, Any] = {
    "suffix_list": {
        "url": DATABASE_URL,
        "request_timeout_seconds": 30,
        "ttl_hours": 24,
    },
    "cache": {
        "path": None,
    },
    "parser": {
        "favor_custom": False,
        "strategy": "greedy",
        "custom_suffixes": [],
    },
    "logging": {
        "level": "INFO",
        "console": True,
        "file": None,
        "json": False,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


@dataclass
class Config:
    data: Dict[str, Any]

    @classmethod
    def load(cls, path: str) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: top level of the config must be a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        return cls(data=_deep_merge(DEFAULTS, data))

    @classmethod
    def default(cls) -> "Config":
        return cls(data=copy.deepcopy(DEFAULTS))

    def __getitem__(self, item):
        return self.data[item]

    def get(self, key, default=None):
        return self.data.get(key, default)
