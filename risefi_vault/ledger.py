"""Vault share bookkeeping: balances, allowances and total supply."""

from collections.abc import Callable

from risefi_vault.constants import MAX_UINT256, ZERO_ADDRESS
from risefi_vault.errors import DeadSharesLocked, InsufficientAllowance, InsufficientBalance, InvalidAddress
from risefi_vault.journal import Journal
from risefi_vault.models import Approval, Transfer


class ShareLedger:
    """Fungible share balances.

    The sum of all balances always equals `total_supply`. Shares held by the
    dead address can never leave it. Mutations take an optional journal so a
    failing vault operation can undo them.
    """

    def __init__(self, dead_address: str, emit: Callable[[object], None]):
        self.dead_address = dead_address
        self._emit = emit
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def holders(self) -> dict[str, int]:
        """Non-zero balances."""
        return {k: v for k, v in self._balances.items() if v > 0}

    def mint(self, to: str, amount: int, journal: Journal | None = None) -> None:
        if to == ZERO_ADDRESS:
            raise InvalidAddress(to, "cannot mint to the zero address")
        self._set_balance(to, self.balance_of(to) + amount, journal)
        self._set_total(self._total_supply + amount, journal)
        self._emit(Transfer(sender=ZERO_ADDRESS, receiver=to, value=amount))

    def burn(self, owner: str, amount: int, journal: Journal | None = None) -> None:
        self._check_outflow(owner, amount)
        self._set_balance(owner, self.balance_of(owner) - amount, journal)
        self._set_total(self._total_supply - amount, journal)
        self._emit(Transfer(sender=owner, receiver=ZERO_ADDRESS, value=amount))

    def transfer(self, sender: str, to: str, amount: int, journal: Journal | None = None) -> None:
        if to == ZERO_ADDRESS:
            raise InvalidAddress(to, "cannot transfer to the zero address")
        self._check_outflow(sender, amount)
        self._set_balance(sender, self.balance_of(sender) - amount, journal)
        self._set_balance(to, self.balance_of(to) + amount, journal)
        self._emit(Transfer(sender=sender, receiver=to, value=amount))

    def approve(self, owner: str, spender: str, amount: int, journal: Journal | None = None) -> None:
        if spender == ZERO_ADDRESS:
            raise InvalidAddress(spender, "cannot approve the zero address")
        self._set_allowance(owner, spender, amount, journal)
        self._emit(Approval(owner=owner, spender=spender, value=amount))

    def spend_allowance(self, owner: str, spender: str, amount: int, journal: Journal | None = None) -> None:
        """Consume `amount` of the spender's allowance. MAX_UINT256 is never consumed."""
        current = self.allowance(owner, spender)
        if current == MAX_UINT256:
            return
        if current < amount:
            raise InsufficientAllowance(spender, current, amount)
        self._set_allowance(owner, spender, current - amount, journal)

    def _check_outflow(self, owner: str, amount: int) -> None:
        if owner == self.dead_address and amount > 0:
            raise DeadSharesLocked()
        balance = self.balance_of(owner)
        if balance < amount:
            raise InsufficientBalance(owner, balance, amount)

    def _set_balance(self, account: str, value: int, journal: Journal | None) -> None:
        previous = self.balance_of(account)
        if journal is not None:
            journal.record(f"balance of {account}", lambda: self._restore_balance(account, previous))
        self._restore_balance(account, value)

    def _restore_balance(self, account: str, value: int) -> None:
        if value:
            self._balances[account] = value
        else:
            self._balances.pop(account, None)

    def _set_total(self, value: int, journal: Journal | None) -> None:
        previous = self._total_supply
        if journal is not None:
            journal.record("total supply", lambda: setattr(self, "_total_supply", previous))
        self._total_supply = value

    def _set_allowance(self, owner: str, spender: str, value: int, journal: Journal | None) -> None:
        key = (owner, spender)
        previous = self._allowances.get(key, 0)
        if journal is not None:
            journal.record(f"allowance {owner}->{spender}", lambda: self._restore_allowance(key, previous))
        self._restore_allowance(key, value)

    def _restore_allowance(self, key: tuple[str, str], value: int) -> None:
        if value:
            self._allowances[key] = value
        else:
            self._allowances.pop(key, None)
