"""CLI for spfinder."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .address import parse_address
from .config import Settings
from .engine import BatchSummary, FanOutEngine
from .errors import SpFinderError
from .gateway import GatewayClient
from .peers import format_addr_info, miner_info_to_addr_info
from .resolver import RESOLVERS, Resolver


_LOGGER = logging.getLogger("spfinder.cli")


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spfinder")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--gateway", help="Gateway host (default api.node.glif.io or SPFINDER_GATEWAY)")
    common.add_argument("--timeout", type=_positive_int, help="Request timeout in seconds")
    common.add_argument("--json", action="store_true", help="Print results as JSON")

    find_parser = subparsers.add_parser(
        "find", parents=[common], help="Look up the peer id and addresses of one storage provider"
    )
    find_parser.add_argument(
        "--storage_provider_id",
        "--storage-provider-id",
        dest="storage_provider_id",
        default="",
        help="Storage Provider ID (Required)",
    )

    for name, help_text in (
        ("populate", "Resolve the peer id of every market participant"),
        ("query-asks", "Query the storage ask of every market participant"),
    ):
        batch_parser = subparsers.add_parser(name, parents=[common], help=help_text)
        batch_parser.add_argument(
            "--workers",
            type=_positive_int,
            help="Number of concurrent lookups (default 20 or SPFINDER_WORKERS)",
        )

    return parser


def run_find(client: GatewayClient, spid: str, as_json: bool = False) -> int:
    address = str(parse_address(spid))
    head = client.chain_head()
    miner_info = client.state_miner_info(address, head.key)
    miner_list = client.state_market_participants()
    addr_info = miner_info_to_addr_info(miner_info, address)

    if as_json:
        print(
            json.dumps(
                {
                    "id": address,
                    "peer_id": addr_info.identity,
                    "addrs": addr_info.addrs,
                    "miner_list_size": len(miner_list),
                }
            )
        )
    else:
        for line in format_addr_info(addr_info):
            print(line)
        print(f"Miner List Size: {len(miner_list)}")
    return 0


def run_batch(client: GatewayClient, engine: FanOutEngine, resolver: Resolver, as_json: bool = False) -> int:
    status_stream = sys.stderr if as_json else sys.stdout
    print("Populating...", file=status_stream)
    participants = client.state_market_participants()
    _LOGGER.info("fetched %d market participants", len(participants))

    summary = BatchSummary()
    try:
        for line in engine.run(participants, resolver, client):
            summary.add(line)
            print(json.dumps(line.to_dict()) if as_json else line, flush=True)
    except KeyboardInterrupt:
        print(f"Interrupted after {summary.total} of {len(participants)}", file=sys.stderr)
        return 130

    print(summary, file=status_stream)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "find" and not args.storage_provider_id:
        print("--storage_provider_id is required", file=sys.stderr)
        return 1

    try:
        settings = Settings.from_env().override(
            gateway=args.gateway,
            workers=getattr(args, "workers", None),
            timeout=args.timeout,
        )
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        with GatewayClient(settings.url, timeout=settings.timeout, pool_size=settings.workers) as client:
            if args.command == "find":
                return run_find(client, args.storage_provider_id, as_json=args.json)
            if args.command in RESOLVERS:
                engine = FanOutEngine(workers=settings.workers)
                return run_batch(client, engine, RESOLVERS[args.command], as_json=args.json)
    except SpFinderError as exc:
        print(exc, file=sys.stderr)
        return 1

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
