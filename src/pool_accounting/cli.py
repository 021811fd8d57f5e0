"""Command-line interface for pool accounting.

Provides read-only reports over a JSON pool snapshot:
- account: health factor, balances and safe withdraw/borrow bounds for a user
- rates: utilization, borrow/supply APR and accrued indices per reserve
- repay-plan: full-repay (buffered) or partial-repay raw amounts
- verify-log: check the hash chain of an audit log

Nothing here signs or submits transactions.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from pool_accounting.core.accrual import accrue
from pool_accounting.core.config import PoolAccountingConfig
from pool_accounting.core.errors import PoolAccountingError
from pool_accounting.core.interest_rate import rates_for_reserve
from pool_accounting.core.logging import AuditLogger, verify_audit_log
from pool_accounting.core.risk import RiskCalculator
from pool_accounting.core.settlement import DebtSettlementResolver
from pool_accounting.data.snapshot_loader import load_snapshot
from pool_accounting.display import (
    apr_display,
    format_units,
    health_factor_display,
    is_display_dust,
    rate_to_apr_pct,
    utilization_pct,
    wad_to_decimal,
)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pool-accounting",
        description="Off-chain lending pool accounting (read-only)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Path to a .env file with configuration overrides",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    account = subparsers.add_parser("account", help="Risk report for one account")
    account.add_argument("--snapshot", type=Path, required=True, help="Snapshot JSON file")
    account.add_argument("--user", required=True, help="Account address")
    account.add_argument(
        "--now",
        type=int,
        help="Accrue to this unix timestamp (default: snapshot timestamp)",
    )
    account.add_argument("--output-json", type=Path, help="Save the report as JSON")

    rates = subparsers.add_parser("rates", help="Rates and indices for every reserve")
    rates.add_argument("--snapshot", type=Path, required=True, help="Snapshot JSON file")
    rates.add_argument("--now", type=int, help="Accrue to this unix timestamp")

    repay = subparsers.add_parser("repay-plan", help="Compute a repay amount")
    repay.add_argument("--debt", type=int, help="Debt principal at read, raw units (repay all)")
    repay.add_argument("--amount", help="Human amount for a partial repay (e.g. 2.5)")
    repay.add_argument("--decimals", type=int, default=18, help="Token decimals (default: 18)")

    verify = subparsers.add_parser("verify-log", help="Verify an audit log hash chain")
    verify.add_argument("path", type=Path, help="Audit log (.jsonl)")

    return parser


def _print_banner(title: str) -> None:
    print("=" * 60)
    print(title)
    print("=" * 60)


def run_account(
    args: argparse.Namespace, config: PoolAccountingConfig, audit: AuditLogger
) -> int:
    """Print a risk report for one account."""
    snapshot = load_snapshot(args.snapshot, audit)
    calculator = RiskCalculator(at_risk_health_factor=config.at_risk_health_factor_wad)
    risk = calculator.assess(snapshot, args.user, args.now)

    _print_banner(f"Account {risk.user_address}")
    print(f"Ledger version: {risk.ledger_version} (as of {risk.timestamp})")
    print()
    print(f"Supplied (USD):        {wad_to_decimal(risk.total_supply_usd):.2f}")
    print(f"Collateral (USD, LT):  {wad_to_decimal(risk.collateral_value_usd):.2f}")
    print(f"Borrow capacity (USD): {wad_to_decimal(risk.borrow_capacity_usd):.2f}")
    print(f"Debt (USD):            {wad_to_decimal(risk.debt_value_usd):.2f}")
    print(f"Health factor:         {health_factor_display(risk.health_factor)}")
    print(f"Status:                {risk.status.value}")
    print()

    limits: dict[str, dict[str, str]] = {}
    print("Assets:")
    for asset, reserve in snapshot.reserves.items():
        exposure = next((e for e in risk.exposures if e.asset == asset), None)
        max_withdraw = calculator.max_withdraw_for(snapshot, args.user, asset, args.now)
        max_borrow = calculator.max_borrow_for(snapshot, args.user, asset, args.now)
        label = reserve.symbol or asset
        limits[asset] = {"max_withdraw": str(max_withdraw), "max_borrow": str(max_borrow)}

        if exposure is not None:
            debt = format_units(exposure.borrow_balance, reserve.decimals)
            if is_display_dust(exposure.borrow_balance, reserve.decimals):
                debt += " (dust)"
            print(
                f"  {label}: supplied {format_units(exposure.supply_balance, reserve.decimals)}"
                f"{' [collateral]' if exposure.use_as_collateral else ''}, borrowed {debt}"
            )
        else:
            print(f"  {label}: no position")
        print(
            f"    max withdraw {format_units(max_withdraw, reserve.decimals)}, "
            f"max borrow {format_units(max_borrow, reserve.decimals)}"
        )

    report: dict[str, Any] = {**risk.to_dict(), "limits": limits}
    audit.log_event("account_report", report)

    if args.output_json:
        with open(args.output_json, "w") as f:
            json.dump(report, f, indent=2)
        print()
        print(f"Report saved to {args.output_json}")
    return 0


def run_rates(args: argparse.Namespace, audit: AuditLogger) -> int:
    """Print utilization, APRs and indices for every reserve."""
    snapshot = load_snapshot(args.snapshot, audit)
    now = snapshot.timestamp if args.now is None else args.now

    _print_banner(f"Reserves at ledger version {snapshot.ledger_version}")
    for asset, reserve in snapshot.reserves.items():
        quote = rates_for_reserve(reserve)
        accrued = accrue(reserve, now)
        print(f"{reserve.symbol or asset}:")
        print(f"  Utilization:     {utilization_pct(quote.utilization):.2f}%")
        print(f"  Borrow APR:      {apr_display(rate_to_apr_pct(quote.borrow_rate))}")
        print(f"  Supply APR:      {apr_display(rate_to_apr_pct(quote.supply_rate))}")
        print(f"  Liquidity index: {accrued.liquidity_index}")
        print(f"  Borrow index:    {accrued.variable_borrow_index}")
    return 0


def run_repay_plan(args: argparse.Namespace, config: PoolAccountingConfig) -> int:
    """Print the raw amount to approve and repay."""
    resolver = DebtSettlementResolver(config)

    if args.debt is not None:
        amount = resolver.buffered_repay_amount(args.debt)
        print(f"Full repay (buffer {config.buffer_numerator}/{config.buffer_denominator}):")
        print(f"  Debt at read: {args.debt}")
        print(f"  Repay amount: {amount} ({format_units(amount, args.decimals)})")
        print("  Prefer the max-uint256 sentinel where the wallet allows it.")
        return 0

    if args.amount is not None:
        amount = resolver.partial_repay_amount(args.amount, args.decimals)
        print(f"Partial repay: {amount} raw units ({format_units(amount, args.decimals)})")
        return 0

    print("ERROR: Must specify --debt or --amount", file=sys.stderr)
    return 1


def run_verify_log(args: argparse.Namespace) -> int:
    """Verify an audit log file."""
    is_valid, errors = verify_audit_log(args.path)
    if is_valid:
        print(f"{args.path}: hash chain intact")
        return 0
    print(f"{args.path}: {len(errors)} problem(s)")
    for error in errors:
        print(f"  {error}")
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point with subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "verify-log":
        return run_verify_log(args)

    try:
        config = PoolAccountingConfig.from_env(args.env_file)
    except PoolAccountingError as e:
        print(f"ERROR: configuration: {e}", file=sys.stderr)
        return 1

    audit = AuditLogger.open_session(
        f"cli_{args.command.replace('-', '_')}", config.log_dir, console=False
    )
    try:
        if args.command == "account":
            return run_account(args, config, audit)
        if args.command == "rates":
            return run_rates(args, audit)
        return run_repay_plan(args, config)
    except (PoolAccountingError, KeyError, ValueError, OSError) as e:
        audit.error(f"{args.command} failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        audit.close()


if __name__ == "__main__":
    sys.exit(main())
