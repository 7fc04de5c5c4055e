"""Share/asset conversion arithmetic.

All functions are pure. Mint and burn amounts are priced against the full
``total_shares``, dead shares included, so the dead shares take their cut of
any assets donated to the vault and a donation cannot zero out a later
deposit. The accounting price reported to users excludes them (see
`reports.price_per_share`).

Rounding is directional and always favours the vault:

* shares minted for a deposit round down,
* assets paid for a redeem round down,
* shares burned for an exact withdraw round up,
* assets pulled for an exact mint round up.

A fresh vault (no assets, only dead shares) uses the initial price: one asset
unit is worth ``scale`` share units, where ``scale`` is
``10 ** (share_decimals - asset_decimals)``. Circulating shares with no assets
behind them (a total loss) price against one virtual asset unit, so they keep
no claim on new deposits.
"""

from dataclasses import dataclass

from risefi_vault.formatters import ceil_div, mul_div_down, mul_div_up


@dataclass(frozen=True)
class Totals:
    """Inputs every conversion needs."""

    total_assets: int
    total_shares: int
    dead_shares: int
    scale: int

    @property
    def circulating_shares(self) -> int:
        return max(self.total_shares - self.dead_shares, 0)

    @property
    def at_initial_price(self) -> bool:
        return self.total_assets == 0 and self.circulating_shares == 0

    @property
    def asset_basis(self) -> int:
        return max(self.total_assets, 1)


def shares_for_deposit(assets: int, totals: Totals) -> int:
    """Shares minted for depositing `assets` (rounds down)."""
    if assets <= 0:
        return 0
    if totals.at_initial_price:
        return assets * totals.scale
    return mul_div_down(assets, totals.total_shares, totals.asset_basis)


def assets_for_redeem(shares: int, totals: Totals) -> int:
    """Assets paid out for redeeming `shares` (rounds down)."""
    if shares <= 0:
        return 0
    if totals.at_initial_price:
        return shares // totals.scale
    return mul_div_down(shares, totals.total_assets, totals.total_shares)


def shares_for_withdraw(assets: int, totals: Totals) -> int:
    """Shares burned to withdraw exactly `assets` (rounds up)."""
    if assets <= 0:
        return 0
    if totals.at_initial_price:
        return assets * totals.scale
    return mul_div_up(assets, totals.total_shares, totals.asset_basis)


def assets_for_mint(shares: int, totals: Totals) -> int:
    """Assets pulled to mint exactly `shares` (rounds up)."""
    if shares <= 0:
        return 0
    if totals.at_initial_price:
        return ceil_div(shares, totals.scale)
    return mul_div_up(shares, totals.total_assets, totals.total_shares)


def min_accepted(expected: int, tolerance_bps: int, basis_points: int) -> int:
    """Lowest amount accepted from the external protocol for an expected payout."""
    return mul_div_down(expected, basis_points - tolerance_bps, basis_points)


def with_slippage_buffer(amount: int, tolerance_bps: int, basis_points: int) -> int:
    """`amount` grown by the tolerance, rounded up."""
    return mul_div_up(amount, basis_points + tolerance_bps, basis_points)
