"""
Command-line interface for relaycast.

Provides commands for inspecting relay endpoints and broadcasting bundles
and raw transactions.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

import structlog

from relaycast import __version__
from relaycast.account import Account, NonceTracker
from relaycast.config import Network, RelaycastConfig, set_config
from relaycast.errors import AccountError, RelaycastError
from relaycast.node import MultiNodeTxSender
from relaycast.outcome import BroadcastOutcome, any_succeeded
from relaycast.relay import BuilderIdentity, BundleBroadcaster, EndpointRegistry


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config, INFO)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Output logs in JSON format",
    )


def _add_network_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--network",
        choices=[network.value for network in Network],
        help="Ethereum network (default: from config, mainnet)",
    )


def _add_builder_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--builder",
        dest="builders",
        action="append",
        help="Builder to target, repeatable (default: from config, all)",
    )


def _add_rpc_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--rpc",
        dest="rpc_endpoints",
        action="append",
        help="JSON-RPC node URL, repeatable (default: from config)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="relaycast",
        description="Broadcast Ethereum transactions and MEV bundles to block builder relays",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Endpoints command
    endpoints_parser = subparsers.add_parser("endpoints", help="List resolved relay endpoints")
    _add_builder_argument(endpoints_parser)
    _add_network_argument(endpoints_parser)
    _add_common_arguments(endpoints_parser)

    # Address command
    address_parser = subparsers.add_parser("address", help="Show the configured account address")
    _add_common_arguments(address_parser)

    # Send bundle command
    bundle_parser = subparsers.add_parser("send-bundle", help="Broadcast a bundle to relays")
    bundle_parser.add_argument(
        "--tx",
        dest="txs",
        action="append",
        required=True,
        help="Raw signed transaction (0x hex), repeatable, in execution order",
    )
    bundle_parser.add_argument(
        "--block",
        required=True,
        type=lambda value: int(value, 0),
        help="Target block number (decimal or 0x hex)",
    )
    bundle_parser.add_argument("--min-timestamp", type=int, help="Minimum block timestamp")
    bundle_parser.add_argument("--max-timestamp", type=int, help="Maximum block timestamp")
    bundle_parser.add_argument(
        "--reverting-tx-hash",
        dest="reverting_tx_hashes",
        action="append",
        help="Transaction hash allowed to revert, repeatable",
    )
    bundle_parser.add_argument("--replacement-uuid", help="Replacement UUID for the bundle")
    bundle_parser.add_argument(
        "--sign",
        dest="sign_bundle_requests",
        action="store_true",
        default=None,
        help="Attach X-Flashbots-Signature using the configured account",
    )
    _add_builder_argument(bundle_parser)
    _add_network_argument(bundle_parser)
    _add_common_arguments(bundle_parser)

    # Send raw transaction command
    raw_parser = subparsers.add_parser("send-raw", help="Send a raw transaction to RPC nodes")
    raw_parser.add_argument("--tx", required=True, help="Raw signed transaction (0x hex)")
    _add_rpc_argument(raw_parser)
    _add_common_arguments(raw_parser)

    # Nonce command
    nonce_parser = subparsers.add_parser("nonce", help="Reconcile the account nonce across RPC nodes")
    _add_rpc_argument(nonce_parser)
    _add_common_arguments(nonce_parser)

    return parser


def build_config(args: argparse.Namespace) -> RelaycastConfig:
    """Create the configuration, command-line values overriding the environment."""
    overrides: Dict[str, Any] = {}
    for name in (
        "network",
        "builders",
        "rpc_endpoints",
        "sign_bundle_requests",
        "log_level",
        "log_json",
    ):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    return RelaycastConfig(**overrides)


def print_outcomes(outcomes: List[BroadcastOutcome]) -> None:
    """Print per-endpoint outcomes."""
    for outcome in outcomes:
        if outcome.succeeded:
            print(f"  OK    {outcome.endpoint}  {outcome.result or '-'}  ({outcome.elapsed_ms:.0f} ms)")
        else:
            print(f"  FAIL  {outcome.endpoint}  {outcome.error_kind}: {outcome.error.reason}")
    accepted = sum(1 for outcome in outcomes if outcome.succeeded)
    print(f"\n{accepted}/{len(outcomes)} endpoint(s) accepted the request")


async def list_endpoints(config: RelaycastConfig) -> int:
    """Print the endpoints the configured builders resolve to."""
    registry = EndpointRegistry()
    for name in config.builders:
        identity = BuilderIdentity.parse(name)
        try:
            urls = registry.resolve(identity, config.network)
        except RelaycastError as e:
            print(f"{identity.value}: {e}")
            continue
        print(f"{identity.value} ({config.network.value}):")
        for url in urls:
            print(f"  {url}")
    return 0


async def show_address(config: RelaycastConfig) -> int:
    """Print the configured account address."""
    account = Account.from_config(config)
    print(account.checksum_address)
    return 0


async def send_bundle(args: argparse.Namespace, config: RelaycastConfig) -> int:
    """Broadcast a bundle to the configured builders."""
    async with BundleBroadcaster(config) as broadcaster:
        outcomes = await broadcaster.broadcast_bundle(
            args.txs,
            args.block,
            min_timestamp=args.min_timestamp,
            max_timestamp=args.max_timestamp,
            reverting_tx_hashes=args.reverting_tx_hashes,
            replacement_uuid=args.replacement_uuid,
        )

    print(f"Bundle for block {hex(args.block)} on {config.network.value}:")
    print_outcomes(outcomes)
    return 0 if any_succeeded(outcomes) else 1


async def send_raw(args: argparse.Namespace, config: RelaycastConfig) -> int:
    """Send a raw transaction to every configured node."""
    async with MultiNodeTxSender.from_config(config) as sender:
        outcomes = await sender.send_raw_transaction(args.tx)

    print("Raw transaction:")
    print_outcomes(outcomes)
    return 0 if any_succeeded(outcomes) else 1


async def reconcile_nonce(config: RelaycastConfig) -> int:
    """Query every node for the account nonce and print the maximum."""
    account = Account.from_config(config)
    tracker = NonceTracker(account.address)

    async with MultiNodeTxSender.from_config(config) as sender:
        nonce = await sender.sync_nonce(tracker)

    print(f"{account.checksum_address} next nonce: {nonce}")
    return 0


async def run_command(args: argparse.Namespace, config: RelaycastConfig) -> int:
    """Dispatch a parsed command."""
    if args.command == "endpoints":
        return await list_endpoints(config)
    if args.command == "address":
        return await show_address(config)
    if args.command == "send-bundle":
        return await send_bundle(args, config)
    if args.command == "send-raw":
        return await send_raw(args, config)
    if args.command == "nonce":
        return await reconcile_nonce(config)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)
    set_config(config)

    # Setup logging
    setup_logging(config.log_level, config.log_json)

    try:
        code = asyncio.run(run_command(args, config))
    except AccountError as e:
        print(f"Account error: {e}", file=sys.stderr)
        sys.exit(1)
    except (RelaycastError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
