#!/usr/bin/env python3
"""Command-line entry point.

Loads the configuration, runs one command against the server and prints the
result as JSON. Exit codes: 0 on success, 1 when the call was skipped, timed
out or found nothing, 2 on a configuration error or an unreadable input
file.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from .cli import parse_args
from .client import OpsviewClient
from .config import get_config
from .logging_conf import get_logger, setup_logging
from .types import ConfigError, ObjectNotFoundError, ReloadOutcome

logger = get_logger("opsview_client")


def _emit(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def run_command(args: argparse.Namespace, client: OpsviewClient) -> int:
    if args.command == "reload":
        outcome = await client.reload()
        _emit({"outcome": outcome.value})
        return 0 if outcome in (ReloadOutcome.completed, ReloadOutcome.already_in_progress) else 1

    if args.command == "get":
        try:
            obj = await client.get_resource(args.resource_type, args.name)
        except ObjectNotFoundError as e:
            logger.warning("object.not_found", extra={"event": "not_found", "error": str(e)})
            return 1
        if obj is None:
            return 1
        _emit(obj)
        return 0

    if args.command == "list":
        objs = await client.get_resources(args.resource_type)
        if objs is None:
            return 1
        _emit(objs)
        return 0

    if args.command == "put":
        try:
            body = json.loads(Path(args.file).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("input.error", extra={"event": "input_error", "file": args.file, "error": str(e)})
            return 2
        ack = await client.put(args.resource_type, body)
        if ack is None:
            return 1
        _emit(ack)
        return 0

    raise ValueError(f"unknown command: {args.command}")


async def _run(args: argparse.Namespace) -> int:
    settings = get_config(args.config)
    async with OpsviewClient(settings, poll_interval=args.poll_interval) as client:
        return await run_command(args, client)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    setup_logging(args.log_level)
    try:
        code = asyncio.run(_run(args))
    except ConfigError as e:
        logger.error("config.error", extra={"event": "config_error", "error": str(e)})
        raise SystemExit(2) from e
    raise SystemExit(code)


if __name__ == "__main__":
    main()
