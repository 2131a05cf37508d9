from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import Config
from .errors import HostnameFormatError, HostSuffixError
from .logging_setup import setup_logging
from .matcher import STRATEGIES
from .parser import HostnameParser


def build_config(args: argparse.Namespace) -> Config:
    cfg = Config.load(args.config) if args.config else Config.default()
    if args.cache:
        cfg["cache"]["path"] = args.cache
    if args.strategy:
        cfg["parser"]["strategy"] = args.strategy
    if args.favor_custom:
        cfg["parser"]["favor_custom"] = True
    cfg["parser"]["custom_suffixes"] = list(cfg["parser"].get("custom_suffixes") or []) + args.custom
    return cfg


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="hostsuffix",
                                 description="Split hostnames into host, domain and public suffix.")
    ap.add_argument("hostnames", nargs="+", help="Hostnames, host:port pairs or URLs")
    ap.add_argument("--config", help="Path to config.yaml")
    ap.add_argument("--favor-custom", action="store_true", help="Prefer custom suffixes over the public list")
    ap.add_argument("--custom", action="append", default=[], metavar="SUFFIX", help="Add a custom suffix (repeatable)")
    ap.add_argument("--strategy", choices=sorted(STRATEGIES), help="Suffix matching strategy")
    ap.add_argument("--cache", help="Path of the suffix cache file")
    args = ap.parse_args(argv)

    cfg = build_config(args)
    setup_logging(cfg.data)
    log = logging.getLogger(__name__)

    try:
        parser = HostnameParser.from_config(cfg)
    except ValueError as e:
        ap.error(str(e))

    status = 0
    with parser:
        for source in args.hostnames:
            try:
                result = parser.parse(source)
            except HostnameFormatError as e:
                log.error("Skipping %s: %s", source, e)
                print(json.dumps({"source": source, "error": str(e)}))
                status = 2
                continue
            except HostSuffixError as e:
                log.error("Suffix list unavailable: %s", e)
                return 1
            print(json.dumps(result.to_dict()))
    return status


if __name__ == "__main__":
    sys.exit(main())
