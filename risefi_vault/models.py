"""Data models for the RiseFi vault."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from risefi_vault.constants import (
    ASSET_DECIMALS,
    BASIS_POINTS,
    DEAD_ADDRESS,
    DEAD_SHARES,
    MIN_DEPOSIT,
    SHARE_DECIMALS,
    SHARE_NAME,
    SHARE_SYMBOL,
    SLIPPAGE_TOLERANCE_BPS,
)


@dataclass(frozen=True)
class VaultConfig:
    """Construction-time constants of a vault. Immutable for the vault's lifetime."""

    min_deposit: int = MIN_DEPOSIT
    dead_shares: int = DEAD_SHARES
    dead_address: str = DEAD_ADDRESS
    basis_points: int = BASIS_POINTS
    slippage_tolerance_bps: int = SLIPPAGE_TOLERANCE_BPS
    asset_decimals: int = ASSET_DECIMALS
    share_decimals: int = SHARE_DECIMALS
    name: str = SHARE_NAME
    symbol: str = SHARE_SYMBOL

    def __post_init__(self) -> None:
        if self.min_deposit < 0:
            raise ValueError("min_deposit must be non-negative")
        if self.dead_shares <= 0:
            raise ValueError("dead_shares must be > 0")
        if self.basis_points <= 0:
            raise ValueError("basis_points must be > 0")
        if not 0 <= self.slippage_tolerance_bps < self.basis_points:
            raise ValueError("slippage_tolerance_bps must be in [0, basis_points)")
        if self.share_decimals < self.asset_decimals:
            raise ValueError("share_decimals must be >= asset_decimals")

    @property
    def decimals_scale(self) -> int:
        """Share units per asset unit at the initial 1:1 price."""
        return 10 ** (self.share_decimals - self.asset_decimals)


@dataclass
class VaultState:
    """Mutable flags of a vault. Share totals live in the ShareLedger."""

    owner: str
    paused: bool = False
    # Separate from `paused`; only this flag unlocks emergency_withdraw.
    emergency_mode: bool = False


class RedemptionPhase(Enum):
    IDLE = "idle"
    INITIATED = "initiated"
    SETTLED = "settled"
    FAILED = "failed"


@dataclass
class RedemptionTicket:
    """One pass through the burn -> external redeem -> payout sequence."""

    caller: str
    receiver: str
    owner: str
    assets: int
    shares: int
    check_slippage: bool = True
    phase: RedemptionPhase = RedemptionPhase.IDLE
    external_shares: int = 0
    assets_received: int = 0
    assets_paid: int = 0


# Emitted records. `event_name` mirrors the on-chain event of the same meaning.


@dataclass(frozen=True)
class Deposit:
    event_name: ClassVar[str] = "Deposit"
    caller: str
    receiver: str
    assets: int
    shares: int


@dataclass(frozen=True)
class Withdraw:
    event_name: ClassVar[str] = "Withdraw"
    caller: str
    receiver: str
    owner: str
    assets: int
    shares: int


@dataclass(frozen=True)
class Transfer:
    event_name: ClassVar[str] = "Transfer"
    sender: str
    receiver: str
    value: int


@dataclass(frozen=True)
class Approval:
    event_name: ClassVar[str] = "Approval"
    owner: str
    spender: str
    value: int


@dataclass(frozen=True)
class SharesBurned:
    event_name: ClassVar[str] = "SharesBurned"
    owner: str
    shares: int


@dataclass(frozen=True)
class RedemptionInitiated:
    event_name: ClassVar[str] = "RedemptionInitiated"
    vault_shares_burned: int
    external_shares_to_redeem: int


@dataclass(frozen=True)
class RedemptionSettled:
    event_name: ClassVar[str] = "RedemptionSettled"
    external_shares_redeemed: int
    assets_received: int


@dataclass(frozen=True)
class Paused:
    event_name: ClassVar[str] = "Paused"
    account: str


@dataclass(frozen=True)
class Unpaused:
    event_name: ClassVar[str] = "Unpaused"
    account: str


@dataclass(frozen=True)
class EmergencyModeChanged:
    event_name: ClassVar[str] = "EmergencyModeChanged"
    account: str
    enabled: bool


@dataclass(frozen=True)
class EmergencyWithdraw:
    event_name: ClassVar[str] = "EmergencyWithdraw"
    caller: str
    receiver: str
    owner: str
    assets: int
    shares: int


@dataclass(frozen=True)
class OwnershipTransferred:
    event_name: ClassVar[str] = "OwnershipTransferred"
    previous_owner: str
    new_owner: str


@dataclass(frozen=True)
class VaultSummary:
    """Point-in-time view of a vault's accounting."""

    name: str
    symbol: str
    owner: str
    paused: bool
    emergency_mode: bool
    total_assets: int
    total_shares: int
    dead_shares: int
    circulating_shares: int
    # Assets per 10**share_decimals circulating shares, in raw asset units.
    price_per_share: int
    holders: int
    external_shares: int
    min_deposit: int
    slippage_tolerance_bps: int


@dataclass(frozen=True)
class ExternalVaultMetrics:
    """On-chain metrics of an ERC-4626 yield vault."""

    vault: str
    asset: str
    decimals: int
    total_assets: int
    total_supply: int
    # Assets for one whole share (10**decimals share units), raw units.
    assets_per_share: int
    block_number: int | None = None


@dataclass(frozen=True)
class ScenarioStep:
    """A single operation in a simulation scenario."""

    action: str
    caller: str
    args: dict[str, Any] = field(default_factory=dict)
    expect_error: str | None = None
