#!/usr/bin/env python3
"""
Command line entry point for generating storage overrides.

Resolves the balance or approval slot of a token against a live node and
prints the override map to feed into a state-override ``eth_call``.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Union

import structlog
import yaml

from .config import Settings
from .ethereum.token_reader import TokenReader
from .exceptions import StorageMockerError
from .logging_config import configure_logging
from .mock_data import MockDataGenerator
from .overrides import MockData
from .resolvers.permit2 import PERMIT2_ADDRESS, generate_mock_permit2_allowance
from .rpc.server import build_generator, start_rpc_server
from .simulation import (
    read_allowance_with_override,
    read_balance_with_override,
    read_permit2_allowance_with_override,
)

logger = structlog.get_logger()


def _block_identifier(value: str) -> Union[int, str]:
    return int(value) if value.isdigit() else value


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storage-mocker",
        description="Find token storage slots and build state overrides for simulated calls",
    )
    parser.add_argument("--rpc-url", default=settings.web3_provider_url, help=f"Web3 provider URL (default: {settings.web3_provider_url})")
    parser.add_argument("--format", choices=["json", "yaml"], default="json", help="Output format (default: json)")
    parser.add_argument("--log-level", default=settings.log_level, choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], help="Logging level")
    parser.add_argument("--pretty-logs", action="store_true", help="Human readable log lines instead of JSON")
    parser.add_argument("--block", type=_block_identifier, default="latest", help="Block number or tag to read at (default: latest, pinned per search)")

    commands = parser.add_subparsers(dest="command", required=True)

    balance = commands.add_parser("balance", help="Mock an ERC20 balance")
    balance.add_argument("--token", required=True, help="ERC20 token address")
    balance.add_argument("--holder", required=True, help="Address with a nonzero balance, used to find the slot")
    balance.add_argument("--mock-address", required=True, help="Address to mock the balance for")
    balance.add_argument("--amount", help="Balance to mock (defaults to the holder's balance)")
    balance.add_argument("--max-slots", type=int, default=settings.max_slots, help="Slot indices to search")
    balance.add_argument("--verify", action="store_true", help="Re-read the balance through eth_call with the override")

    approval = commands.add_parser("approval", help="Mock an ERC20 approval")
    approval.add_argument("--token", required=True, help="ERC20 token address")
    approval.add_argument("--owner", required=True, help="Address with a nonzero approval, used to find the slot")
    approval.add_argument("--spender", required=True, help="Spender of the approval")
    approval.add_argument("--mock-address", required=True, help="Address to mock the approval from")
    approval.add_argument("--amount", required=True, help="Approval amount to mock")
    approval.add_argument("--max-slots", type=int, default=settings.max_slots, help="Slot indices to search")
    approval.add_argument("--use-fallback", action="store_true", help=f"Assume slot {settings.fallback_slot} when the search has no signal")
    approval.add_argument("--verify", action="store_true", help="Re-read the allowance through eth_call with the override")

    permit2 = commands.add_parser("permit2", help="Mock a Permit2 allowance")
    permit2.add_argument("--owner", required=True)
    permit2.add_argument("--token", required=True)
    permit2.add_argument("--spender", required=True)
    permit2.add_argument("--amount", required=True, help="Allowance word to write")
    permit2.add_argument("--permit2", default=PERMIT2_ADDRESS, help="Permit2 contract address")
    permit2.add_argument("--expiration", type=int, help="Pack the amount with this expiration timestamp")
    permit2.add_argument("--nonce", type=int, help="Pack the amount with this nonce")
    permit2.add_argument("--verify", action="store_true", help="Re-read the allowance through eth_call with the override")

    serve = commands.add_parser("serve", help="Run the JSON-RPC server")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    return parser


def format_output(payload: Dict[str, Any], output_format: str) -> str:
    if output_format == "yaml":
        return yaml.safe_dump(payload, default_flow_style=False, sort_keys=False)
    return json.dumps(payload, indent=2)


def _payload(
    mock: MockData, verified_value: Optional[int] = None, expected: Optional[int] = None
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"mock": mock.to_dict(), "stateOverride": mock.to_override()}
    if verified_value is not None:
        payload["simulatedValue"] = str(verified_value)
        payload["matches"] = verified_value == (mock.value if expected is None else expected)
    return payload


def run_command(
    args: argparse.Namespace,
    generator: Optional[MockDataGenerator],
    reader: Optional[TokenReader],
) -> Dict[str, Any]:
    verified: Optional[int] = None
    expected: Optional[int] = None

    if args.command == "balance":
        mock = generator.generate_mock_balance(
            args.token, args.holder, args.mock_address, args.amount, args.max_slots
        )
        if args.verify:
            verified = read_balance_with_override(
                reader.web3, args.token, args.mock_address, mock.to_override()
            )
    elif args.command == "approval":
        mock = generator.generate_mock_approval(
            args.token,
            args.owner,
            args.spender,
            args.mock_address,
            args.amount,
            args.max_slots,
            args.use_fallback,
        )
        if args.verify:
            verified = read_allowance_with_override(
                reader.web3, args.token, args.mock_address, args.spender, mock.to_override()
            )
    elif args.command == "permit2":
        mock = generate_mock_permit2_allowance(
            args.owner,
            args.token,
            args.spender,
            args.amount,
            args.permit2,
            args.expiration,
            args.nonce,
        )
        if args.verify:
            verified = read_permit2_allowance_with_override(
                reader.web3, args.permit2, args.owner, args.token, args.spender, mock.to_override()
            )
            # Permit2 returns the amount field of the packed word
            expected = mock.value & (2**160 - 1)
    else:
        raise ValueError(f"Unknown command: {args.command}")

    return _payload(mock, verified, expected)


def main(argv: Optional[List[str]] = None) -> int:
    settings = Settings.from_env()
    args = build_parser(settings).parse_args(argv)
    configure_logging(args.log_level, pretty=args.pretty_logs)
    settings.web3_provider_url = args.rpc_url

    try:
        if args.command == "serve":
            settings.host, settings.port = args.host, args.port
            start_rpc_server(settings)
            return 0

        reader = generator = None
        # Permit2 keys are computed offline unless the result is verified
        if args.command != "permit2" or args.verify:
            reader = TokenReader.from_url(settings.web3_provider_url, args.block)
            generator = build_generator(reader, settings)
        payload = run_command(args, generator, reader)

        print(format_output(payload, args.format))
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except (StorageMockerError, ConnectionError, ValueError, RuntimeError) as e:
        logger.error("Command failed", command=args.command, error=str(e), kind=type(e).__name__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
