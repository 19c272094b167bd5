from __future__ import annotations

import argparse
import os

from .config import config_path_from_env
from .reload import POLL_INTERVAL_S


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the Opsview client."""
    parser = argparse.ArgumentParser(description="Push, fetch and reload Opsview configuration")
    parser.add_argument("--config", default=config_path_from_env(), help="YAML file with url/username/password/timeout")
    parser.add_argument("--poll", type=float, default=POLL_INTERVAL_S, dest="poll_interval")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("reload", help="Trigger a reload and wait for it to finish")

    get = sub.add_parser("get", help="Fetch one config object by name")
    get.add_argument("resource_type")
    get.add_argument("name")

    lst = sub.add_parser("list", help="Fetch all config objects of a type")
    lst.add_argument("resource_type")

    put = sub.add_parser("put", help="Send a config object read from a JSON file")
    put.add_argument("resource_type")
    put.add_argument("file")
    return parser.parse_args(argv)
