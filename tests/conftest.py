import pytest

from risefi_vault.constants import MAX_UINT256, MORPHO_USDC_VAULT_BASE, RISEFI_VAULT_ADDRESS, USDC_BASE
from risefi_vault.parsing import DEFAULT_ACCOUNTS
from risefi_vault.protocols import InMemoryToken, InMemoryYieldVault
from risefi_vault.vault import Vault

OWNER = DEFAULT_ACCOUNTS["owner"]
ALICE = DEFAULT_ACCOUNTS["alice"]
BOB = DEFAULT_ACCOUNTS["bob"]
USDC = 10**6
STARTING_BALANCE = 10_000 * USDC


@pytest.fixture
def token():
    return InMemoryToken(USDC_BASE)


@pytest.fixture
def external(token):
    return InMemoryYieldVault(MORPHO_USDC_VAULT_BASE, token)


@pytest.fixture
def vault(token, external):
    """Fresh vault; alice and bob hold 10k USDC each and have approved the vault."""
    v = Vault(RISEFI_VAULT_ADDRESS, token, external, OWNER)
    for user in (ALICE, BOB):
        token.mint(user, STARTING_BALANCE)
        token.approve(user, v.address, MAX_UINT256)
    return v


def snapshot(vault, token):
    """Everything a failed or no-op call must leave untouched."""
    return (
        vault.ledger.holders(),
        vault.total_shares(),
        {a: token.balance_of(a) for a in (ALICE, BOB, vault.address)},
        vault.external_shares(),
        len(vault.events),
    )
