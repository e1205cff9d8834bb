#!/usr/bin/env python3
"""
PDC Command-Line Interface

Usage:
    pdc [--format json|yaml|text] [--config FILE] [--state FILE] <command> ...

Commands:
    invoke      Run a transaction entry point against the file ledger
    key         Print the composite key of an asset record
    partition   Print the private partition name of an organization
    hash        Print the commitment digest of a payload file
    config      Show, query or update configuration

Examples:
    pdc invoke CreateMobile '{"name":"m1","color":"red","size":5}' \\
        --org Org1MSP --transient mobile_properties=@m1.private.json
    pdc invoke GetMobilePrivateDetails m1 --org Org1MSP

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from pdc import __version__
from pdc.commitment import commitment_digest
from pdc.config import ConfigError, get_config
from pdc.contract import AssetContract, to_wire
from pdc.errors import AssetError
from pdc.keys import RecordType, asset_key, partition_name, printable_key
from pdc.ledger import FileLedger
from pdc.observability import Layer, configure_logging, get_logger

logger = get_logger("cli", Layer.CLI)

DEFAULT_CONFIG_FILE = "pdc.yaml"


class OutputFormat(Enum):
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 2):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str, ensure_ascii=False)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip()
    if isinstance(data, dict):
        return "\n".join(f"{k}: {v}" for k, v in data.items())
    return str(data)


def parse_transient(items: List[str]) -> Dict[str, bytes]:
    """Parse ``KEY=VALUE`` / ``KEY=@FILE`` pairs into transient bytes."""
    transient: Dict[str, bytes] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise CLIError(f"invalid --transient entry (expected KEY=VALUE): {item!r}")
        if value.startswith("@"):
            path = Path(value[1:])
            if not path.is_file():
                raise CLIError(f"transient file not found: {path}")
            transient[key] = path.read_bytes()
        else:
            transient[key] = value.encode("utf-8")
    return transient


def _write_config_value(path: Path, dotted: str, value: Any) -> None:
    """Merge one dotted setting into a YAML configuration file."""
    data: Dict[str, Any] = {}
    if path.exists():
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise CLIError(f"configuration root must be a mapping: {path}")
    node = data
    *parents, leaf = dotted.split(".")
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, default_flow_style=False, sort_keys=True), encoding="utf-8")


class PdcCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="pdc",
            description="Public/private asset records on a ledger with private partitions",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument("--version", "-V", action="version", version=f"pdc {__version__}")
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument("--config", "-c", help="YAML configuration file")
        self.parser.add_argument("--state", "-s", help="Ledger snapshot file (overrides config)")

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        invoke = self.subparsers.add_parser("invoke", help="Run a transaction entry point")
        invoke.add_argument(
            "function",
            choices=sorted(AssetContract.TRANSACTIONS),
            help="Transaction function name",
        )
        invoke.add_argument("args", nargs="*", help="Positional transaction arguments")
        invoke.add_argument("--org", "-o", required=True, help="Caller organization (MSP id)")
        invoke.add_argument(
            "--transient", "-t",
            action="append",
            default=[],
            help="Transient field KEY=VALUE or KEY=@FILE (repeatable)",
        )
        invoke.add_argument(
            "--non-atomic",
            action="store_true",
            help="Apply each write immediately instead of as one unit",
        )

        key = self.subparsers.add_parser("key", help="Print an asset record's composite key")
        key.add_argument("name", help="Asset name")
        key.add_argument("--private", action="store_true", help="Private record key")

        partition = self.subparsers.add_parser("partition", help="Print a partition name")
        partition.add_argument("org", help="Organization (MSP id)")

        hash_cmd = self.subparsers.add_parser("hash", help="Commitment digest of a payload file")
        hash_cmd.add_argument("file", help="Payload file ('-' for stdin)")

        config = self.subparsers.add_parser("config", help="Configuration")
        config_sub = config.add_subparsers(dest="subcommand")
        config_sub.add_parser("show", help="Show effective configuration")
        get = config_sub.add_parser("get", help="Get a value by dotted path")
        get.add_argument("path", help="e.g. contract.sentinel_compat")
        set_cmd = config_sub.add_parser("set", help="Set a value in the configuration file")
        set_cmd.add_argument("path", help="e.g. ledger.atomic_transactions")
        set_cmd.add_argument("value", help="New value (coerced to the setting's type)")

    # -- command handlers -------------------------------------------------------

    def _cmd_invoke(self, args: argparse.Namespace) -> Any:
        cfg = get_config()
        state_path = args.state or cfg.get("ledger.state_path")
        atomic = cfg.get("ledger.atomic_transactions") and not args.non_atomic

        ledger = FileLedger(state_path, atomic=atomic)
        contract = AssetContract.from_config(cfg.config)
        ctx = ledger.begin(args.org, transient=parse_transient(args.transient))
        logger.info("invoking", function=args.function, org=args.org, state=str(state_path))
        result = contract.invoke(ctx, args.function, *args.args)
        return {"tx_id": ctx.tx_id, "function": args.function, "result": to_wire(result)}

    def _cmd_key(self, args: argparse.Namespace) -> Any:
        record_type = RecordType.PRIVATE if args.private else RecordType.PUBLIC
        return {
            "name": args.name,
            "doctype": record_type.value,
            "key": printable_key(asset_key(args.name, record_type)),
        }

    def _cmd_partition(self, args: argparse.Namespace) -> Any:
        prefix = get_config().get("contract.partition_prefix")
        return {"org": args.org, "partition": partition_name(args.org, prefix)}

    def _cmd_hash(self, args: argparse.Namespace) -> Any:
        if args.file == "-":
            payload = sys.stdin.buffer.read()
        else:
            path = Path(args.file)
            if not path.is_file():
                raise CLIError(f"file not found: {path}")
            payload = path.read_bytes()
        return {"sha256": commitment_digest(payload).hex(), "bytes": len(payload)}

    def _cmd_config(self, args: argparse.Namespace) -> Any:
        cfg = get_config()
        if args.subcommand == "get":
            return {args.path: cfg.get(args.path)}
        if args.subcommand == "set":
            target = Path(args.config) if args.config else Path(DEFAULT_CONFIG_FILE)
            cfg.set(args.path, args.value)
            _write_config_value(target, args.path, cfg.get(args.path))
            return {args.path: cfg.get(args.path), "file": str(target)}
        if args.subcommand in (None, "show"):
            return cfg.config.to_dict()
        raise CLIError(f"unknown config subcommand: {args.subcommand}")

    # -- entry --------------------------------------------------------------------

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        fmt = OutputFormat(args.format)

        if not args.command:
            self.parser.print_help()
            return 0

        try:
            cfg = get_config()
            if args.config:
                cfg.load_from_file(args.config)
            else:
                cfg.load_defaults()
            configure_logging(
                level=cfg.get("observability.log_level"),
                fmt=cfg.get("observability.log_format"),
            )

            handler = getattr(self, f"_cmd_{args.command}")
            result = handler(args)
        except AssetError as e:
            print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
            return 1
        except (CLIError, ConfigError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return getattr(e, "exit_code", 2)

        print(format_output(result, fmt))
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    return PdcCLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
