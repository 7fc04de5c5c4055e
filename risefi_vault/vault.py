"""The RiseFi USDC vault: share accounting over one external yield protocol.

Every mutating entry point takes the caller explicitly and runs as a single
all-or-nothing operation. If any step raises, every state change made during
the call is undone and none of its events are published.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from risefi_vault import guards, redemption
from risefi_vault.constants import MAX_UINT256
from risefi_vault.conversion import Totals, assets_for_mint, assets_for_redeem, shares_for_deposit, shares_for_withdraw
from risefi_vault.errors import InvalidAddress, ReentrantCall
from risefi_vault.formatters import normalize_address
from risefi_vault.journal import Journal, atomic
from risefi_vault.ledger import ShareLedger
from risefi_vault.models import (
    Deposit,
    EmergencyModeChanged,
    EmergencyWithdraw,
    OwnershipTransferred,
    Paused,
    RedemptionTicket,
    Unpaused,
    VaultConfig,
    VaultState,
    Withdraw,
)
from risefi_vault.protocols import BaseAsset, ExternalProtocol, call_external, supply_to_external

logger = logging.getLogger(__name__)


class Vault:
    """Single-asset vault exchanging a base asset for proportional shares.

    All capital is forwarded to `external`. `total_assets()` is always read
    back from the external protocol and never cached.
    """

    def __init__(
        self,
        address: str,
        asset: BaseAsset,
        external: ExternalProtocol,
        owner: str,
        config: VaultConfig | None = None,
    ):
        self.address = normalize_address(address)
        self.asset = asset
        self.external = external
        self.config = config or VaultConfig()
        self.state = VaultState(owner=normalize_address(owner))
        self.dead_address = normalize_address(self.config.dead_address)
        self.events: list[object] = []
        self._pending: list[object] | None = None
        self._entered = False
        self.ledger = ShareLedger(dead_address=self.dead_address, emit=self._emit)

        with self._operation("construct"):
            self.ledger.mint(self.dead_address, self.config.dead_shares)
        logger.info(
            "Vault %s created: owner=%s, external=%s, dead shares=%d",
            self.address,
            self.state.owner,
            external.address,
            self.config.dead_shares,
        )

    # -- operation plumbing --------------------------------------------------

    def _emit(self, event: object) -> None:
        if self._pending is None:
            self.events.append(event)
        else:
            self._pending.append(event)

    @contextmanager
    def _operation(self, action: str) -> Iterator[Journal]:
        if self._entered:
            raise ReentrantCall(action)
        self._entered = True
        self._pending = []
        try:
            with atomic(action) as journal:
                yield journal
            self.events.extend(self._pending)
        finally:
            self._pending = None
            self._entered = False

    def _redemption_context(self) -> redemption.RedemptionContext:
        return redemption.RedemptionContext(
            vault_address=self.address,
            ledger=self.ledger,
            asset=self.asset,
            external=self.external,
            config=self.config,
            emit=self._emit,
        )

    def _totals(self) -> Totals:
        return Totals(
            total_assets=self.total_assets(),
            total_shares=self.ledger.total_supply,
            dead_shares=self.config.dead_shares,
            scale=self.config.decimals_scale,
        )

    def _receiver(self, value: str) -> str:
        receiver = normalize_address(value)
        if receiver == self.address:
            raise InvalidAddress(receiver, "vault cannot receive its own shares")
        if receiver == self.dead_address:
            raise InvalidAddress(receiver, "dead address cannot receive shares")
        return receiver

    # -- read surface ----------------------------------------------------------

    @property
    def owner(self) -> str:
        return self.state.owner

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def symbol(self) -> str:
        return self.config.symbol

    @property
    def decimals(self) -> int:
        return self.config.share_decimals

    @property
    def MIN_DEPOSIT(self) -> int:  # pylint: disable=invalid-name
        return self.config.min_deposit

    @property
    def DEAD_SHARES(self) -> int:  # pylint: disable=invalid-name
        return self.config.dead_shares

    @property
    def DEAD_ADDRESS(self) -> str:  # pylint: disable=invalid-name
        return self.dead_address

    @property
    def BASIS_POINTS(self) -> int:  # pylint: disable=invalid-name
        return self.config.basis_points

    def get_slippage_tolerance(self) -> int:
        return self.config.slippage_tolerance_bps

    def asset_address(self) -> str:
        return self.asset.address

    def external_protocol_address(self) -> str:
        return self.external.address

    def is_paused(self) -> bool:
        return self.state.paused

    def is_emergency_mode(self) -> bool:
        return self.state.emergency_mode

    def total_assets(self) -> int:
        external_shares = self.external_shares()
        if external_shares == 0:
            return 0
        return call_external("convertToAssets", self.external.convert_to_assets, external_shares)

    def total_shares(self) -> int:
        return self.ledger.total_supply

    def total_supply(self) -> int:
        return self.ledger.total_supply

    def balance_of(self, account: str) -> int:
        return self.ledger.balance_of(normalize_address(account))

    def allowance(self, owner: str, spender: str) -> int:
        return self.ledger.allowance(normalize_address(owner), normalize_address(spender))

    def convert_to_shares(self, assets: int) -> int:
        return shares_for_deposit(assets, self._totals())

    def convert_to_assets(self, shares: int) -> int:
        return assets_for_redeem(shares, self._totals())

    def max_deposit(self, receiver: str | None = None) -> int:  # pylint: disable=unused-argument
        return MAX_UINT256

    def max_mint(self, receiver: str | None = None) -> int:  # pylint: disable=unused-argument
        return MAX_UINT256

    def max_redeem(self, owner: str) -> int:
        owner = normalize_address(owner)
        if owner == self.dead_address:
            return 0
        return self.ledger.balance_of(owner)

    def max_withdraw(self, owner: str) -> int:
        return assets_for_redeem(self.max_redeem(owner), self._totals())

    def preview_deposit(self, assets: int) -> int:
        return shares_for_deposit(assets, self._totals())

    def preview_mint(self, shares: int) -> int:
        return assets_for_mint(shares, self._totals())

    def preview_withdraw(self, assets: int) -> int:
        return shares_for_withdraw(assets, self._totals())

    def preview_redeem(self, shares: int) -> int:
        return assets_for_redeem(shares, self._totals())

    # -- deposit / mint --------------------------------------------------------

    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        """Pull `assets` from `caller`, supply them externally, mint shares to `receiver`."""
        with self._operation("deposit") as journal:
            caller = normalize_address(caller)
            receiver = self._receiver(receiver)
            guards.check_not_paused(self.state, "deposit")
            guards.check_min_deposit(assets, self.config.min_deposit)
            if assets == 0:
                return 0
            shares = self.preview_deposit(assets)
            guards.check_nonzero_conversion("deposit", assets, shares)
            self._enter_position(caller, receiver, assets, shares, journal)
            return shares

    def mint(self, caller: str, shares: int, receiver: str) -> int:
        """Mint exactly `shares` to `receiver`, pulling the assets they cost."""
        with self._operation("mint") as journal:
            caller = normalize_address(caller)
            receiver = self._receiver(receiver)
            guards.check_not_paused(self.state, "mint")
            if shares == 0:
                return 0
            assets = self.preview_mint(shares)
            guards.check_min_deposit(assets, self.config.min_deposit)
            guards.check_nonzero_conversion("mint", shares, assets)
            self._enter_position(caller, receiver, assets, shares, journal)
            return assets

    def _enter_position(self, caller: str, receiver: str, assets: int, shares: int, journal: Journal) -> None:
        # Quotes are taken before any asset moves; total_assets changes as soon as the supply lands.
        self.asset.transfer_from(self.address, caller, self.address, assets)
        journal.record("pull assets", lambda: self.asset.transfer(self.address, caller, assets))
        supply_to_external(self.asset, self.external, self.address, assets, journal)
        self.ledger.mint(receiver, shares, journal)
        self._emit(Deposit(caller=caller, receiver=receiver, assets=assets, shares=shares))
        logger.info("Deposit: %s -> %s, %d assets for %d shares", caller, receiver, assets, shares)

    # -- withdraw / redeem -----------------------------------------------------

    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int:
        """Burn the shares worth exactly `assets` from `owner` and pay `receiver`.

        Returns the shares burned. Not blocked by pause.
        """
        with self._operation("withdraw") as journal:
            caller = normalize_address(caller)
            receiver = normalize_address(receiver)
            owner = normalize_address(owner)
            if assets == 0:
                return 0
            guards.check_max_withdraw(owner, assets, self.max_withdraw(owner))
            shares = self.preview_withdraw(assets)
            ticket = RedemptionTicket(caller=caller, receiver=receiver, owner=owner, assets=assets, shares=shares)
            paid = redemption.run(self._redemption_context(), ticket, journal)
            self._emit(Withdraw(caller=caller, receiver=receiver, owner=owner, assets=paid, shares=shares))
            logger.info("Withdraw: %s burned %d shares, %d assets to %s", owner, shares, paid, receiver)
            return shares

    def redeem(self, caller: str, shares: int, receiver: str, owner: str) -> int:
        """Burn `shares` from `owner` and pay their asset value to `receiver`.

        Returns the assets paid. Not blocked by pause.
        """
        with self._operation("redeem") as journal:
            caller = normalize_address(caller)
            receiver = normalize_address(receiver)
            owner = normalize_address(owner)
            if shares == 0:
                return 0
            guards.check_max_redeem(owner, shares, self.max_redeem(owner))
            assets = self.preview_redeem(shares)
            ticket = RedemptionTicket(caller=caller, receiver=receiver, owner=owner, assets=assets, shares=shares)
            paid = redemption.run(self._redemption_context(), ticket, journal)
            self._emit(Withdraw(caller=caller, receiver=receiver, owner=owner, assets=paid, shares=shares))
            logger.info("Redeem: %s burned %d shares, %d assets to %s", owner, shares, paid, receiver)
            return paid

    def emergency_withdraw(self, caller: str, shares: int, receiver: str, owner: str) -> int:
        """Redeem without the slippage check. Only available in emergency mode."""
        with self._operation("emergency_withdraw") as journal:
            caller = normalize_address(caller)
            receiver = normalize_address(receiver)
            owner = normalize_address(owner)
            guards.check_emergency_mode(self.state)
            if shares == 0:
                return 0
            guards.check_max_redeem(owner, shares, self.max_redeem(owner))
            assets = self.preview_redeem(shares)
            ticket = RedemptionTicket(
                caller=caller,
                receiver=receiver,
                owner=owner,
                assets=assets,
                shares=shares,
                check_slippage=False,
            )
            paid = redemption.run(self._redemption_context(), ticket, journal)
            self._emit(EmergencyWithdraw(caller=caller, receiver=receiver, owner=owner, assets=paid, shares=shares))
            logger.warning("Emergency withdraw: %s burned %d shares, %d assets to %s", owner, shares, paid, receiver)
            return paid

    # -- circuit breaker -------------------------------------------------------

    def _set_flag(self, name: str, value: bool, journal: Journal) -> bool:
        """Set a state flag; returns False when it already had that value."""
        previous = getattr(self.state, name)
        if previous == value:
            return False
        journal.record(name, lambda: setattr(self.state, name, previous))
        setattr(self.state, name, value)
        return True

    def pause(self, caller: str) -> None:
        with self._operation("pause") as journal:
            caller = normalize_address(caller)
            guards.check_owner(self.state, caller, "pause")
            if self._set_flag("paused", True, journal):
                self._emit(Paused(account=caller))
                logger.warning("Vault %s paused by %s", self.address, caller)

    def unpause(self, caller: str) -> None:
        with self._operation("unpause") as journal:
            caller = normalize_address(caller)
            guards.check_owner(self.state, caller, "unpause")
            if self._set_flag("paused", False, journal):
                self._emit(Unpaused(account=caller))
                logger.info("Vault %s unpaused by %s", self.address, caller)

    def set_emergency_mode(self, caller: str, enabled: bool) -> None:
        with self._operation("set_emergency_mode") as journal:
            caller = normalize_address(caller)
            guards.check_owner(self.state, caller, "set emergency mode")
            if self._set_flag("emergency_mode", enabled, journal):
                self._emit(EmergencyModeChanged(account=caller, enabled=enabled))
                logger.warning("Vault %s emergency mode %s by %s", self.address, "on" if enabled else "off", caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._operation("transfer_ownership") as journal:
            caller = normalize_address(caller)
            new_owner = normalize_address(new_owner)
            guards.check_owner(self.state, caller, "transfer ownership")
            if new_owner in (self.dead_address, self.address):
                raise InvalidAddress(new_owner, "invalid owner")
            previous = self.state.owner
            journal.record("owner", lambda: setattr(self.state, "owner", previous))
            self.state.owner = new_owner
            self._emit(OwnershipTransferred(previous_owner=previous, new_owner=new_owner))

    # -- share token -----------------------------------------------------------

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        with self._operation("approve") as journal:
            self.ledger.approve(normalize_address(caller), normalize_address(spender), amount, journal)
            return True

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        with self._operation("transfer") as journal:
            self.ledger.transfer(normalize_address(caller), self._receiver(to), amount, journal)
            return True

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> bool:
        with self._operation("transfer_from") as journal:
            caller = normalize_address(caller)
            owner = normalize_address(owner)
            self.ledger.spend_allowance(owner, caller, amount, journal)
            self.ledger.transfer(owner, self._receiver(to), amount, journal)
            return True

    # -- misc --------------------------------------------------------------------

    def external_shares(self) -> int:
        return call_external("balanceOf", self.external.balance_of, self.address)
