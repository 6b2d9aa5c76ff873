"""
Command-line entry point for inspecting and driving a router cluster.

Examples::

    ring-cluster --config cluster.json locate user:1 user:2
    ring-cluster --config cluster.json exec GET user:1
    ring-cluster --config cluster.json all PING

``--config`` defaults to the ``RING_CLUSTER_CONFIG`` environment variable.
Each result is printed as one JSON object per line.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from .client import ServerClient
from .client_protocol import ClientFactory
from .config import RouterConfig, ServerDescriptor, load_config
from .exceptions import RingClusterError, TransportError
from .router import ClusterRouter

_LOGGER = logging.getLogger(__name__)

CONFIG_ENV = "RING_CLUSTER_CONFIG"

EXIT_OK = 0
EXIT_TRANSPORT = 1
EXIT_CONFIG = 2

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def emit(payload: dict[str, Any]) -> None:
    """Emit one JSON line to stdout and flush immediately."""
    print(json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str), flush=True)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ring-cluster", description="Consistent-hashing Redis router")
    parser.add_argument(
        "--config",
        default=os.getenv(CONFIG_ENV, "").strip() or None,
        help=f"JSON cluster configuration (default: ${CONFIG_ENV})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=LOG_LEVELS,
        help="logging level for library output",
    )
    commands = parser.add_subparsers(dest="action", required=True)

    locate = commands.add_parser("locate", help="print the server each key hashes to")
    locate.add_argument("keys", nargs="+")

    execute = commands.add_parser("exec", help="run one routed command")
    execute.add_argument("name")
    execute.add_argument("args", nargs="*")

    broadcast = commands.add_parser("all", help="run one command on every routable server")
    broadcast.add_argument("name")
    broadcast.add_argument("args", nargs="*")
    return parser


def routable_servers(config: RouterConfig) -> list[ServerDescriptor]:
    """Return descriptors in dense index order, skipping a write-only master."""
    return [
        server
        for server in config.servers
        if config.read_on_master or not server.master
    ]


def _run(args: argparse.Namespace, config: RouterConfig, client_factory: ClientFactory) -> None:
    servers = routable_servers(config)
    with ClusterRouter.from_config(config, client_factory=client_factory) as router:
        if args.action == "locate":
            for key in args.keys:
                index = router.hash(key)
                emit({"key": key, "index": index, "server": servers[index].identity})
        elif args.action == "exec":
            emit({"ok": True, "result": router.execute(args.name, *args.args)})
        else:
            results = router.all(args.name, *args.args)
            for server, result in zip(servers, results):
                emit({"ok": True, "server": server.identity, "result": result})


def main(argv: Sequence[str] | None = None, *, client_factory: ClientFactory = ServerClient) -> int:
    """
    Run the CLI and return its process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    if not args.config:
        parser.error(f"--config is required when ${CONFIG_ENV} is not set")

    try:
        config = load_config(args.config)
        _run(args, config, client_factory)
    except RingClusterError as exc:
        emit({"ok": False, "error": str(exc)})
        return EXIT_CONFIG
    except TransportError as exc:
        _LOGGER.warning("Transport failure action=%s error=%s", args.action, exc)
        emit({"ok": False, "error": str(exc)})
        return EXIT_TRANSPORT
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
