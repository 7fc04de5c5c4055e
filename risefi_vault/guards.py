"""Guard checks run by every mutating vault call.

The vault applies them in a fixed order: authorization, pause state,
minimum deposit, nonzero conversion, entitlement.
"""

from risefi_vault.errors import (
    BelowMinimumDeposit,
    EmergencyModeDisabled,
    ExceededMaxRedeem,
    ExceededMaxWithdraw,
    Unauthorized,
    VaultPaused,
    ZeroConversion,
)
from risefi_vault.models import VaultState


def check_owner(state: VaultState, caller: str, action: str) -> None:
    if caller != state.owner:
        raise Unauthorized(caller, action)


def check_not_paused(state: VaultState, action: str) -> None:
    """Only deposits and mints call this; exits stay open while paused."""
    if state.paused:
        raise VaultPaused(action)


def check_min_deposit(assets: int, minimum: int) -> None:
    """Zero is a no-op, not an error, so only nonzero amounts are checked."""
    if 0 < assets < minimum:
        raise BelowMinimumDeposit(assets, minimum)


def check_nonzero_conversion(action: str, amount: int, converted: int) -> None:
    if amount > 0 and converted == 0:
        raise ZeroConversion(action, amount)


def check_max_withdraw(owner: str, assets: int, max_assets: int) -> None:
    if assets > max_assets:
        raise ExceededMaxWithdraw(owner, assets, max_assets)


def check_max_redeem(owner: str, shares: int, max_shares: int) -> None:
    if shares > max_shares:
        raise ExceededMaxRedeem(owner, shares, max_shares)


def check_emergency_mode(state: VaultState) -> None:
    if not state.emergency_mode:
        raise EmergencyModeDisabled()
