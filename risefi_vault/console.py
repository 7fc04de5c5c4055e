"""Console output formatting."""

from collections.abc import Sequence
from dataclasses import asdict

from risefi_vault.constants import ASSET_DECIMALS
from risefi_vault.formatters import format_bp, format_raw_sci, format_shares, format_usdc, short_address
from risefi_vault.models import ExternalVaultMetrics, VaultSummary
from risefi_vault.reports import count_events, net_flows


def vault_status(summary: VaultSummary) -> tuple[str, str]:
    """Returns (emoji, status)."""
    if summary.emergency_mode:
        return "🚨", "Emergency mode"
    if summary.paused:
        return "⏸️", "Paused (exits only)"
    return "▶️", "Active"


def print_vault_summary(summary: VaultSummary) -> None:
    status_emoji, status_text = vault_status(summary)
    print("=" * 70)
    print(f"🏦 {summary.name} ({summary.symbol})")
    print(f"   Status: {status_emoji} {status_text}  •  Owner: {short_address(summary.owner)}")
    print("=" * 70)
    print(f"   💰 Total assets:        {format_usdc(summary.total_assets)}")
    print(f"   📊 Total shares:        {format_shares(summary.total_shares)}  ({format_raw_sci(summary.total_shares)} raw)")
    print(f"      • Dead shares:       {summary.dead_shares} raw units")
    print(f"      • Circulating:       {format_shares(summary.circulating_shares)}")
    print(f"   💱 Price per share:     {format_usdc(summary.price_per_share)}")
    print(f"   👥 Holders:             {summary.holders}")
    print(f"   🔗 External shares:     {format_raw_sci(summary.external_shares)}")
    print(f"   ⚙️  Min deposit:         {format_usdc(summary.min_deposit)}")
    print(f"   ⚙️  Slippage tolerance:  {format_bp(summary.slippage_tolerance_bps)}")
    print("")


def print_event_log(events: Sequence[object], *, limit: int = 20) -> None:
    counts = count_events(events)
    deposited, withdrawn = net_flows(events)
    print(f"📜 Events ({len(events)} total)")
    for name, count in sorted(counts.items()):
        print(f"   • {name}: {count}")
    print(f"   Deposited: {format_usdc(deposited)}  •  Paid out: {format_usdc(withdrawn)}")
    if limit and events:
        print(f"   Last {min(limit, len(events))}:")
        for event in events[-limit:]:
            fields = ", ".join(f"{k}={v}" for k, v in asdict(event).items())
            print(f"      {event.event_name}({fields})")
    print("")


def print_external_metrics(metrics: ExternalVaultMetrics) -> None:
    block_label = f"{metrics.block_number}" if metrics.block_number is not None else "latest"
    print("=" * 70)
    print(f"🔗 External vault {metrics.vault} (block {block_label})")
    print("=" * 70)
    print(f"   Asset:             {metrics.asset}")
    print(f"   Total assets:      {format_usdc(metrics.total_assets, decimals=ASSET_DECIMALS)}")
    print(f"   Total supply:      {format_shares(metrics.total_supply, decimals=metrics.decimals)}")
    print(f"   Assets per share:  {format_usdc(metrics.assets_per_share, decimals=ASSET_DECIMALS)}")
    print("")


def print_step_failures(failures: Sequence[tuple[int, str, str]]) -> None:
    if not failures:
        print("✅ All steps behaved as expected.")
        return
    print(f"⚠️  {len(failures)} step(s) did not behave as expected:")
    for index, action, message in failures:
        print(f"   #{index} {action}: {message}")
