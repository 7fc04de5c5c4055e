"""CLI and main logic."""

import argparse
import logging
import os
import sys
from pathlib import Path

from tqdm import tqdm

from risefi_vault.console import print_event_log, print_external_metrics, print_step_failures, print_vault_summary
from risefi_vault.constants import DEFAULT_PUBLIC_BASE_RPC_URLS, MORPHO_USDC_VAULT_BASE
from risefi_vault.errors import VaultError
from risefi_vault.parsing import parse_scenario, parse_scenario_bytes
from risefi_vault.reports import summarize_vault
from risefi_vault.simulation import build_simulation, run_step
from risefi_vault.validation import validate_summary_progression, validate_vault_invariants

# Internal defaults (not exposed as CLI flags)
DEFAULT_TIMEOUT = 30


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="RiseFi USDC vault: share accounting simulation and inspection.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log vault operations to stderr.")
    sub = p.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Replay a JSON scenario against an in-memory vault.")
    sim.add_argument("scenario", type=Path, help="Path to the scenario JSON file.")
    sim.add_argument("--events", type=int, default=20, help="Number of trailing events to print (0 to hide).")

    inspect = sub.add_parser("inspect", help="Read live metrics of the external ERC-4626 vault.")
    inspect.add_argument(
        "--rpc-url",
        default=None,
        help="Base RPC URL. Falls back to the BASE_RPC_URL environment variable, then public endpoints.",
    )
    inspect.add_argument(
        "--vault",
        default=MORPHO_USDC_VAULT_BASE,
        help="External ERC-4626 vault address. Default: Morpho USDC vault on Base.",
    )
    inspect.add_argument("--block", type=int, default=None, help="Block number to read at (default: latest).")
    return p.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    if not verbose:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root = logging.getLogger("risefi_vault")
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)


def run_simulate(args: argparse.Namespace) -> int:
    try:
        scenario_json = parse_scenario_bytes(args.scenario.read_bytes())
        scenario = parse_scenario(scenario_json)
    except (OSError, ValueError, ArithmeticError, VaultError) as ex:
        print(f"Error: cannot load scenario {args.scenario}: {ex}", file=sys.stderr)
        return 2

    sim = build_simulation(scenario)
    prev_summary = summarize_vault(sim.vault)

    with tqdm(scenario.steps, desc="⚙️  Replaying scenario", unit="step", file=sys.stderr) as pbar:
        for index, step in enumerate(pbar):
            pbar.set_postfix(action=step.action)
            run_step(sim, index, step)
            summary = summarize_vault(sim.vault)
            for issue in validate_summary_progression(prev_summary, summary, warn_only=True):
                tqdm.write(f"ℹ️  step #{index} {step.action}: {issue}", file=sys.stderr)
            prev_summary = summary

    print_vault_summary(summarize_vault(sim.vault))
    print_event_log(sim.vault.events, limit=args.events)
    print_step_failures(sim.failures)

    issues = validate_vault_invariants(sim.vault, warn_only=True)
    if issues:
        print("⚠️  Invariant violations:", file=sys.stderr)
        for issue in issues:
            print(f"   {issue}", file=sys.stderr)
        return 1
    return 1 if sim.failures else 0


def run_inspect(args: argparse.Namespace) -> int:
    from web3 import Web3

    from risefi_vault.contracts import fetch_external_vault_metrics

    rpc_url = args.rpc_url or os.getenv("BASE_RPC_URL")
    rpc_urls = [rpc_url] if rpc_url else list(DEFAULT_PUBLIC_BASE_RPC_URLS)

    w3 = None
    for rpc_url in rpc_urls:
        candidate = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": DEFAULT_TIMEOUT}))
        if candidate.is_connected():
            w3 = candidate
            break
        print(f"⚠️  failed to connect to RPC at {rpc_url}", file=sys.stderr)
    if w3 is None:
        print("Error: no RPC endpoint reachable. Provide --rpc-url or set BASE_RPC_URL.", file=sys.stderr)
        return 2

    block_identifier = args.block if args.block is not None else "latest"
    try:
        metrics = fetch_external_vault_metrics(w3, args.vault, block_identifier=block_identifier)
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"Error: failed to read vault {args.vault}: {ex}", file=sys.stderr)
        return 2

    print_external_metrics(metrics)
    return 0


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)
    if args.command == "simulate":
        return run_simulate(args)
    return run_inspect(args)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
