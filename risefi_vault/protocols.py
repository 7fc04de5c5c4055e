"""Collaborators of the vault: the base asset and the external yield protocol.

The vault only talks to them through the `BaseAsset` and `ExternalProtocol`
interfaces. In-memory implementations live here; web3-backed ones are in
`risefi_vault.onchain`.
"""

import logging
from collections.abc import Callable
from typing import Protocol, TypeVar

from risefi_vault.constants import ASSET_DECIMALS, BASIS_POINTS, MAX_UINT256
from risefi_vault.errors import ExternalProtocolCallFailed, InsufficientAllowance, InsufficientBalance
from risefi_vault.formatters import ceil_div, mul_div_down, normalize_address
from risefi_vault.journal import Journal

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseAsset(Protocol):
    address: str

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None: ...


class ExternalProtocol(Protocol):
    """Opaque share-based yield vault (ERC-4626 shaped)."""

    address: str

    def balance_of(self, account: str) -> int: ...

    def convert_to_assets(self, shares: int) -> int: ...

    def preview_withdraw(self, assets: int) -> int: ...

    def deposit(self, caller: str, assets: int, receiver: str) -> int: ...

    def redeem(self, caller: str, shares: int, receiver: str, owner: str) -> int: ...


def call_external(operation: str, fn: Callable[..., T], *args) -> T:
    """Invoke the external protocol; any failure becomes ExternalProtocolCallFailed."""
    try:
        return fn(*args)
    except Exception as ex:
        raise ExternalProtocolCallFailed(operation, str(ex) or type(ex).__name__) from ex


def supply_to_external(
    asset: BaseAsset, external: ExternalProtocol, vault_address: str, assets: int, journal: Journal
) -> int:
    """Approve and deposit `assets` from vault custody into the external protocol.

    Returns external shares received. Records undos that unwind both steps.
    """
    previous_allowance = asset.allowance(vault_address, external.address)
    asset.approve(vault_address, external.address, assets)
    journal.record(
        "external allowance", lambda: asset.approve(vault_address, external.address, previous_allowance)
    )
    shares = call_external("deposit", external.deposit, vault_address, assets, vault_address)
    journal.record(
        "external deposit",
        lambda: call_external("redeem", external.redeem, vault_address, shares, vault_address, vault_address),
    )
    logger.debug("Supplied %d asset units to %s for %d external shares", assets, external.address, shares)
    return shares


class InMemoryToken:
    """ERC-20 style token kept in memory. `mint` is an open faucet, like a mock USDC."""

    def __init__(self, address: str, symbol: str = "USDC", decimals: int = ASSET_DECIMALS):
        self.address = normalize_address(address)
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self.total_supply = 0

    def mint(self, to: str, amount: int) -> None:
        to = normalize_address(to)
        self._balances[to] = self.balance_of(to) + amount
        self.total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(account, balance, amount)
        self._balances[account] = balance - amount
        self.total_supply -= amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(sender, balance, amount)
        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        # Allowance is checked before balance, matching OpenZeppelin ERC20.
        current = self.allowance(owner, spender)
        if current < amount:
            raise InsufficientAllowance(spender, current, amount)
        self.transfer(owner, to, amount)
        if current != MAX_UINT256:
            self._allowances[(owner, spender)] = current - amount


class InMemoryYieldVault:
    """A minimal ERC-4626 vault standing in for the external yield protocol.

    Knobs for simulations and tests:

    - `accrue_yield(amount)` credits assets to the vault, raising its share price;
    - `redeem_haircut_bps` burns a fraction of every redemption (slippage lost to the market);
    - `fail_deposits` / `fail_redeems` make the corresponding call raise;
    - `on_redeem` is invoked mid-redeem, before assets move, to simulate callbacks.
    """

    def __init__(self, address: str, asset: InMemoryToken):
        self.address = normalize_address(address)
        self.asset = asset
        self._shares: dict[str, int] = {}
        self.total_supply = 0
        self.redeem_haircut_bps = 0
        self.fail_deposits = False
        self.fail_redeems = False
        self.on_redeem: Callable[[], None] | None = None

    def total_assets(self) -> int:
        return self.asset.balance_of(self.address)

    def balance_of(self, account: str) -> int:
        return self._shares.get(account, 0)

    def convert_to_shares(self, assets: int) -> int:
        # Virtual share/asset of 1 keeps the empty-vault price at 1:1.
        return mul_div_down(assets, self.total_supply + 1, self.total_assets() + 1)

    def convert_to_assets(self, shares: int) -> int:
        return mul_div_down(shares, self.total_assets() + 1, self.total_supply + 1)

    def preview_withdraw(self, assets: int) -> int:
        return ceil_div(assets * (self.total_supply + 1), self.total_assets() + 1)

    def accrue_yield(self, amount: int) -> None:
        self.asset.mint(self.address, amount)
        logger.debug("Accrued %d asset units in external vault %s", amount, self.address)

    def realize_loss(self, amount: int) -> None:
        """Remove assets from the vault without burning shares (bad debt)."""
        self.asset.burn(self.address, min(amount, self.asset.balance_of(self.address)))

    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        if self.fail_deposits:
            raise RuntimeError("deposit reverted")
        shares = self.convert_to_shares(assets)
        self.asset.transfer_from(self.address, caller, self.address, assets)
        self._shares[receiver] = self.balance_of(receiver) + shares
        self.total_supply += shares
        return shares

    def redeem(self, caller: str, shares: int, receiver: str, owner: str) -> int:
        if self.fail_redeems:
            raise RuntimeError("redeem reverted")
        if caller != owner:
            raise PermissionError("redeem on behalf of another owner is not supported")
        balance = self.balance_of(owner)
        if balance < shares:
            raise InsufficientBalance(owner, balance, shares)
        if self.on_redeem is not None:
            self.on_redeem()
        gross = self.convert_to_assets(shares)
        withheld = mul_div_down(gross, self.redeem_haircut_bps, BASIS_POINTS)
        assets = gross - withheld
        self._shares[owner] = balance - shares
        self.total_supply -= shares
        if withheld:
            self.asset.burn(self.address, withheld)
        self.asset.transfer(self.address, receiver, assets)
        return assets
