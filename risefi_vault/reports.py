"""Vault summaries and event aggregation."""

from collections import Counter
from collections.abc import Iterable
from typing import TYPE_CHECKING

from risefi_vault.models import Deposit, EmergencyWithdraw, VaultSummary, Withdraw

if TYPE_CHECKING:
    from risefi_vault.vault import Vault  # pragma: no cover


def price_per_share(total_assets: int, circulating_shares: int, *, share_decimals: int, scale: int) -> int:
    """Raw asset units backing one whole circulating share (10**share_decimals units).

    Dead shares are left out: this is the accounting price users see, not the
    rate deposits and redemptions are priced at.
    """
    one_share = 10**share_decimals
    if circulating_shares == 0:
        return one_share // scale
    return (total_assets * one_share) // circulating_shares


def summarize_vault(vault: "Vault") -> VaultSummary:
    """Compute a point-in-time summary of a vault."""
    cfg = vault.config
    total_assets = vault.total_assets()
    total_shares = vault.total_shares()
    circulating = max(total_shares - cfg.dead_shares, 0)
    holders = [a for a in vault.ledger.holders() if a != vault.dead_address]

    return VaultSummary(
        name=vault.name,
        symbol=vault.symbol,
        owner=vault.owner,
        paused=vault.is_paused(),
        emergency_mode=vault.is_emergency_mode(),
        total_assets=total_assets,
        total_shares=total_shares,
        dead_shares=cfg.dead_shares,
        circulating_shares=circulating,
        price_per_share=price_per_share(
            total_assets, circulating, share_decimals=cfg.share_decimals, scale=cfg.decimals_scale
        ),
        holders=len(holders),
        external_shares=vault.external_shares(),
        min_deposit=cfg.min_deposit,
        slippage_tolerance_bps=cfg.slippage_tolerance_bps,
    )


def count_events(events: Iterable[object]) -> dict[str, int]:
    """Count emitted records by event name."""
    return dict(Counter(getattr(e, "event_name", type(e).__name__) for e in events))


def net_flows(events: Iterable[object]) -> tuple[int, int]:
    """Return (assets deposited, assets paid out) across the given events."""
    deposited = 0
    withdrawn = 0
    for e in events:
        if isinstance(e, Deposit):
            deposited += e.assets
        elif isinstance(e, (Withdraw, EmergencyWithdraw)):
            withdrawn += e.assets
    return deposited, withdrawn
