#!/usr/bin/env python3
"""Offline CLI for previewing allocation plans and protocol fees"""

import argparse
import json
import sys
from typing import List, Optional

from lpkit.config import settings
from lpkit.core.distribution import LiquidityShape, RangePreset, plan_distribution, resolve_range
from lpkit.core.fees import FeeConfig, compute_fee, format_fee
from lpkit.logging_config import setup_logging


def print_plan(plan):
    """Pretty print an allocation plan"""
    rng = plan.bucket_range
    print(f"\n📊 {plan.shape.value.title()} distribution")
    print("=" * 50)
    print(f"Range: {rng.lower_bucket_id}..{rng.upper_bucket_id} (active {rng.active_bucket_id})")
    print(f"X side: {plan.x_bucket_count} buckets, total {plan.total_x:,.4f}")
    print(f"Y side: {plan.y_bucket_count} buckets, total {plan.total_y:,.4f}")

    if plan.bucket_range.bucket_count:
        print("\nBucket        X              Y")
        print("-" * 50)
        for bucket_id, x, y in plan.rows():
            marker = "◀" if bucket_id == rng.active_bucket_id else ""
            print(f"{bucket_id:>6} {x:>14,.4f} {y:>14,.4f} {marker}")


def print_fee(breakdown, symbol: str):
    """Pretty print a fee breakdown"""
    print("\n💸 Protocol fee")
    print("=" * 50)
    if breakdown.exempt:
        print("Exempt (below the USD threshold)")
    print(f"Fee:       {format_fee(breakdown, symbol)}")
    print(f"Gross:     {breakdown.total.gross_amount:,.0f}")
    print(f"Net:       {breakdown.total.net_amount:,.0f}")
    print(f"Recipient: {breakdown.protocol.recipient}")


def cli_plan(args) -> None:
    """CLI command to preview a distribution plan"""
    bucket_range = resolve_range(args.active, args.preset, args.min_offset, args.max_offset)
    plan = plan_distribution(args.x, args.y, bucket_range, LiquidityShape.parse(args.shape))

    if args.json:
        print(json.dumps(plan.to_dict(), indent=2))
    else:
        print_plan(plan)


def cli_fee(args) -> None:
    """CLI command to compute a protocol fee"""
    unit_price = args.price_usd / 10 ** args.decimals
    breakdown = compute_fee(args.amount, unit_price, FeeConfig.from_settings(settings))

    if args.json:
        print(json.dumps(breakdown.to_dict(), indent=2))
    else:
        print_fee(breakdown, args.symbol)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="lpkit CLI")
    subparsers = parser.add_subparsers(dest="command")

    plan_parser = subparsers.add_parser("plan", help="Preview a per-bucket allocation")
    plan_parser.add_argument("--active", type=int, required=True, help="Active bucket id")
    plan_parser.add_argument(
        "--preset",
        choices=[p.value for p in RangePreset],
        default=RangePreset.CONCENTRATED.value,
        help="Range preset (default: concentrated)",
    )
    plan_parser.add_argument("--min-offset", type=int, help="Lower offset from active (custom preset)")
    plan_parser.add_argument("--max-offset", type=int, help="Upper offset from active (custom preset)")
    plan_parser.add_argument("--shape", default="spot", help="spot, curve or bidask (default: spot)")
    plan_parser.add_argument("--x", type=float, default=0.0, help="Value for asset X (active bucket and above)")
    plan_parser.add_argument("--y", type=float, default=0.0, help="Value for asset Y (below active)")
    plan_parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    fee_parser = subparsers.add_parser("fee", help="Compute the protocol fee for a deposit")
    fee_parser.add_argument("amount", type=int, help="Gross deposit in base units")
    fee_parser.add_argument("--price-usd", type=float, required=True, help="USD price of one whole token")
    fee_parser.add_argument("--decimals", type=int, default=9, help="Token decimals (default: 9)")
    fee_parser.add_argument("--symbol", default="", help="Token symbol for display")
    fee_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(stream=sys.stderr)

    try:
        if args.command == "plan":
            cli_plan(args)
        elif args.command == "fee":
            cli_fee(args)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
