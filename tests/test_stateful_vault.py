from hypothesis import settings
from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, precondition, rule

from conftest import ALICE, BOB, OWNER, USDC
from risefi_vault.constants import MAX_UINT256, MORPHO_USDC_VAULT_BASE, RISEFI_VAULT_ADDRESS, USDC_BASE
from risefi_vault.errors import VaultError
from risefi_vault.protocols import InMemoryToken, InMemoryYieldVault
from risefi_vault.validation import validate_vault_invariants
from risefi_vault.vault import Vault

USERS = (ALICE, BOB)


class StatefulVault(RuleBasedStateMachine):
    user = st.sampled_from(USERS)
    amount = st.integers(min_value=0, max_value=5_000 * USDC)
    fraction = st.integers(min_value=1, max_value=100)

    def __init__(self):
        super().__init__()
        self.token = InMemoryToken(USDC_BASE)
        self.external = InMemoryYieldVault(MORPHO_USDC_VAULT_BASE, self.token)
        self.vault = Vault(RISEFI_VAULT_ADDRESS, self.token, self.external, OWNER)
        for user in USERS:
            self.token.mint(user, 1_000_000 * USDC)
            self.token.approve(user, self.vault.address, MAX_UINT256)

    def _ledger(self):
        return self.vault.ledger.holders(), self.vault.total_shares()

    def _attempt(self, fn, *args):
        """Run a vault call; a failed call must leave the ledger untouched."""
        before = self._ledger()
        try:
            return fn(*args)
        except VaultError:
            assert self._ledger() == before
            return None

    @rule(user=user, assets=amount)
    def deposit(self, user, assets):
        self._attempt(self.vault.deposit, user, assets, user)

    @rule(user=user, assets=amount)
    def round_trip(self, user, assets):
        shares = self._attempt(self.vault.deposit, user, assets, user)
        if shares is None or assets == 0:
            return
        assert shares > 0
        paid = self._attempt(self.vault.redeem, user, shares, user, user)
        if paid is not None:
            assert paid <= assets

    @rule(user=user, pct=fraction)
    def redeem(self, user, pct):
        shares = self.vault.max_redeem(user) * pct // 100
        self._attempt(self.vault.redeem, user, shares, user, user)

    @rule(user=user, pct=fraction)
    def withdraw(self, user, pct):
        assets = self.vault.max_withdraw(user) * pct // 100
        self._attempt(self.vault.withdraw, user, assets, user, user)

    @rule(user=user, shares=st.integers(min_value=0, max_value=10**22))
    def mint(self, user, shares):
        self._attempt(self.vault.mint, user, shares, user)

    @rule(user=user, pct=fraction)
    def transfer(self, user, pct):
        other = BOB if user == ALICE else ALICE
        self._attempt(self.vault.transfer, user, other, self.vault.balance_of(user) * pct // 100)

    @rule(bps=st.integers(min_value=0, max_value=200))
    def set_haircut(self, bps):
        self.external.redeem_haircut_bps = bps

    @rule(pct=fraction)
    def realize_loss(self, pct):
        self.external.realize_loss(self.external.total_assets() * pct // 100)

    @rule(assets=st.integers(min_value=1, max_value=100 * USDC))
    def accrue_yield(self, assets):
        self.external.accrue_yield(assets)

    @precondition(lambda self: not self.vault.is_paused())
    @rule()
    def pause(self):
        self.vault.pause(OWNER)

    @precondition(lambda self: self.vault.is_paused())
    @rule()
    def unpause(self):
        self.vault.unpause(OWNER)

    @invariant()
    def share_floor(self):
        assert self.vault.total_shares() >= self.vault.DEAD_SHARES
        assert self.vault.balance_of(self.vault.DEAD_ADDRESS) == self.vault.DEAD_SHARES

    @invariant()
    def conservation(self):
        assert sum(self.vault.ledger.holders().values()) == self.vault.total_shares()

    @invariant()
    def accounting(self):
        assert validate_vault_invariants(self.vault, warn_only=True) == []


StatefulVault.TestCase.settings = settings(max_examples=50, stateful_step_count=30, deadline=None)
TestStatefulVault = StatefulVault.TestCase
