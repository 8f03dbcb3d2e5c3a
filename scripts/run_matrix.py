#!/usr/bin/env python3
"""
Build the premium matrix for one primary code and print it:
- resolve related (rider) codes
- expand every code into its term rows
- enrich each row with availability and premiums

Optionally change the age / base amount afterwards to see the recompute.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

from src.integrations import build_backend
from src.matrix.models import MatrixSnapshot
from src.matrix.orchestrator import SelectionOrchestrator
from src.utils.config_loader import load_matrix_config


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def _amount(value) -> str:
    return "-" if value is None else f"{value:,.0f}"


def print_matrix(snapshot: MatrixSnapshot, title: str) -> None:
    state = snapshot.state
    print(f"\n### {title}")
    print(f"primary={state.primary_code} related={state.related_codes} age={state.age} base_amount={state.base_amount}")
    print(f"progress={state.progress} loading={state.is_loading} rows={len(snapshot.rows)}\n")
    for row in snapshot.rows:
        print(
            f"[{row.kind.value}] {row.code} {row.name} | {row.insurance_term}/{row.payment_term} | "
            f"{row.age_range} | {row.availability.label()} | "
            f"M {_amount(row.male_premium)} F {_amount(row.female_premium)}"
        )
        if row.error_text:
            print(f"    ! {row.error_text}")
    if state.errors:
        print("\n### Errors")
        for message in state.errors:
            print(f"- {message}")


async def run(args: argparse.Namespace) -> int:
    cfg = load_matrix_config(args.config)
    if args.mock:
        cfg.backend.use_mock = True
    backend = build_backend(cfg)
    orchestrator = SelectionOrchestrator(backend, cfg)
    try:
        snapshot = await orchestrator.select_primary_code(args.code)
        print_matrix(snapshot, f"Matrix for {args.code}")
        if args.age is not None:
            await orchestrator.set_age(args.age)
            print_matrix(orchestrator.snapshot(), f"After age change to {args.age}")
        if args.base_amount is not None:
            await orchestrator.set_base_amount(args.base_amount)
            print_matrix(orchestrator.snapshot(), f"After base amount change to {args.base_amount}")
    finally:
        await orchestrator.aclose()
        gateway = getattr(backend, "gateway", None)
        if gateway is not None:
            await gateway.aclose()
    return 1 if orchestrator.snapshot().state.errors else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Build the premium matrix for a primary product code.")
    parser.add_argument("code", type=str, help="Primary product code, e.g. 21686")
    parser.add_argument("--age", type=int, default=None, help="Re-enrich at this age after the first build")
    parser.add_argument("--base-amount", type=int, default=None, help="Recalculate premiums at this base amount")
    parser.add_argument("--mock", action="store_true", help="Use the in-memory mock backend")
    parser.add_argument("--config", type=Path, default=None, help="Path to matrix_config.yml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging (per-call timings)")
    args = parser.parse_args()

    setup_logging(args.verbose)
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
