"""Command-line interface for osmo-transfer.

One invocation sends one transfer::

    osmo-transfer 100uosmo osmo1...destination

The report ``code``, ``height`` and ``tx_hash`` is printed on stdout whenever
the chain returned a receipt, as a short summary or, with ``--json``, as one
JSON line. Every other failure prints a single ``error: [step] message`` line
on stderr and exits with a per-kind status.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

from . import __version__
from .chain_client import CosmosChainClient
from .config import BALANCE_CHECK_POLICIES, NETWORK_PRESETS, ConfigurationError, TransferConfig, load_transfer_config
from .credentials import credential_source_from_config
from .errors import EXIT_CONFIGURATION, EXIT_INTERRUPTED, TransactionFailedError, TransferError
from .logging_config import LoggingSetupError, configure_logging
from .model import TransactionOutcome
from .orchestrator import TransferOrchestrator
from .validation import check_address_prefix, validate_request

logger = logging.getLogger(__name__)

COMPACT_JSON_SEPARATORS = (",", ":")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osmo-transfer",
        description="Send one token transfer from a mnemonic-derived wallet",
    )
    parser.add_argument("amount_token", metavar="AMOUNT_TOKEN", help="Amount and token to send, e.g. 110uosmo")
    parser.add_argument("address", metavar="ADDRESS", help="Destination address to receive the funds")
    parser.add_argument("--config", default=None, help="Path to a YAML config file (default: ~/.osmo-transfer.yaml)")
    parser.add_argument(
        "--network",
        default=None,
        help=f"Network to use ({', '.join(sorted(NETWORK_PRESETS))} or a network from the config file)",
    )
    credential_group = parser.add_mutually_exclusive_group()
    credential_group.add_argument(
        "--wallet-file",
        default=None,
        help="File holding the secret recovery phrase (default: wallet/wallet.key)",
    )
    credential_group.add_argument(
        "--mnemonic-env",
        default=None,
        help="Environment variable holding the secret recovery phrase instead of a file",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for the per-run log file; pass an empty string to log to the console only",
    )
    parser.add_argument(
        "--balance-check",
        choices=BALANCE_CHECK_POLICIES,
        default=None,
        help="Whether a failed destination balance lookup aborts the transfer (default: required)",
    )
    parser.add_argument("--request-timeout", type=float, default=None, help="Timeout in seconds for node queries")
    parser.add_argument(
        "--broadcast-timeout",
        type=float,
        default=None,
        help="Seconds to wait for the transaction to be included in a block",
    )
    parser.add_argument(
        "--no-prefix-check",
        action="store_true",
        help="Accept destination addresses that do not start with the network's address prefix",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as a compact JSON object instead of a readable summary",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "network": args.network,
        "wallet_file": args.wallet_file,
        "mnemonic_env": args.mnemonic_env,
        "log_dir": args.log_dir,
        "balance_check": args.balance_check,
        "request_timeout": args.request_timeout,
        "broadcast_timeout": args.broadcast_timeout,
    }
    if args.no_prefix_check:
        overrides["enforce_address_prefix"] = False
    return {key: value for key, value in overrides.items() if value is not None}


def build_client(config: TransferConfig) -> CosmosChainClient:
    return CosmosChainClient(
        request_timeout=config.request_timeout,
        broadcast_timeout=config.broadcast_timeout,
        poll_period=config.poll_period,
    )


def _print_report(outcome: TransactionOutcome, *, as_json: bool = False) -> None:
    report = outcome.to_report()
    if as_json:
        print(json.dumps(report, separators=COMPACT_JSON_SEPARATORS))
        return
    status = "succeeded" if outcome.succeeded else "failed"
    print(f"Transfer of {outcome.coin.amount}{outcome.coin.denom} to {outcome.destination} {status}")
    print(f"  code:    {report['code']}")
    print(f"  height:  {report['height']}")
    print(f"  tx_hash: {report['tx_hash']}")


def run_transfer(args: argparse.Namespace) -> TransactionOutcome:
    request = validate_request(args.amount_token, args.address)
    config = load_transfer_config(config_path=args.config, overrides=_overrides_from_args(args))
    run_logger = configure_logging(
        config.log_dir, level=logging.DEBUG if args.verbose else logging.INFO
    )
    run_logger.info("osmo-transfer %s has started", __version__)

    if config.enforce_address_prefix:
        check_address_prefix(request.destination, config.address_prefix)
    orchestrator = TransferOrchestrator(
        build_client(config),
        config.network,
        credential_source_from_config(config),
        logger=run_logger,
        balance_check=config.balance_check,
    )
    return orchestrator.execute(request)


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        outcome = run_transfer(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user before the broadcast; nothing was sent")
        parser.exit(EXIT_INTERRUPTED, "error: interrupted before the broadcast; nothing was sent\n")
    except TransactionFailedError as exc:
        _print_report(exc.outcome, as_json=args.json)
        parser.exit(exc.exit_code, f"error: {exc.describe()}\n")
    except TransferError as exc:
        parser.exit(exc.exit_code, f"error: {exc.describe()}\n")
    except (ConfigurationError, LoggingSetupError) as exc:
        parser.exit(EXIT_CONFIGURATION, f"error: [configuration] {exc}\n")
    _print_report(outcome, as_json=args.json)


if __name__ == "__main__":
    main(sys.argv[1:])
