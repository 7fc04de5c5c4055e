import pytest

from conftest import ALICE, BOB, OWNER, STARTING_BALANCE, USDC, snapshot
from risefi_vault.constants import DEAD_ADDRESS, MAX_UINT256
from risefi_vault.errors import (
    ExceededMaxRedeem,
    ExceededMaxWithdraw,
    ExternalProtocolCallFailed,
    InsufficientAllowance,
    ReentrantCall,
    SlippageExceeded,
    VaultPaused,
)
from risefi_vault.models import RedemptionInitiated, RedemptionSettled, SharesBurned, Withdraw


def events_of(vault, kind):
    return [e for e in vault.events if isinstance(e, kind)]


def test_first_depositor_round_trip_within_tolerance(vault, token, external):
    shares = vault.deposit(ALICE, 100 * USDC, ALICE)
    assert shares == 100 * 10**18
    assert vault.total_shares() == 1000 + shares

    # The external protocol shaves off exactly the tolerated 0.5%.
    external.redeem_haircut_bps = 50
    paid = vault.redeem(ALICE, shares, ALICE, ALICE)

    assert 99_500_000 <= paid <= 100 * USDC
    assert paid == 99_500_000
    assert vault.balance_of(ALICE) == 0
    assert vault.total_shares() == 1000
    assert token.balance_of(ALICE) == STARTING_BALANCE - 100 * USDC + paid

    with pytest.raises(ExceededMaxRedeem):
        vault.redeem(ALICE, 1, ALICE, ALICE)


def test_redeem_emits_two_phase_records(vault):
    shares = vault.deposit(ALICE, 100 * USDC, ALICE)
    vault.redeem(ALICE, shares, BOB, ALICE)

    assert events_of(vault, SharesBurned) == [SharesBurned(owner=ALICE, shares=shares)]
    assert events_of(vault, RedemptionInitiated) == [
        RedemptionInitiated(vault_shares_burned=shares, external_shares_to_redeem=100 * USDC)
    ]
    assert events_of(vault, RedemptionSettled) == [
        RedemptionSettled(external_shares_redeemed=100 * USDC, assets_received=100 * USDC)
    ]
    # Dead shares keep their sliver; the 1 unit left over is supplied back.
    assert vault.events[-1] == Withdraw(caller=ALICE, receiver=BOB, owner=ALICE, assets=100 * USDC - 1, shares=shares)


def test_redeem_more_than_balance_fails(vault, token):
    shares = vault.deposit(ALICE, 100 * USDC, ALICE)
    before = snapshot(vault, token)
    with pytest.raises(ExceededMaxRedeem) as exc:
        vault.redeem(ALICE, shares + 1, ALICE, ALICE)
    assert exc.value.max_shares == shares
    assert snapshot(vault, token) == before


def test_withdraw_entitlement_boundary(vault, token):
    vault.deposit(ALICE, 100 * USDC, ALICE)
    max_assets = vault.max_withdraw(ALICE)
    assert max_assets == 100 * USDC - 1

    before = snapshot(vault, token)
    with pytest.raises(ExceededMaxWithdraw):
        vault.withdraw(ALICE, max_assets + 1, ALICE, ALICE)
    assert snapshot(vault, token) == before


def test_withdraw_buffers_for_slippage_and_resupplies_surplus(vault, token, external):
    vault.deposit(ALICE, 1000 * USDC, ALICE)
    external.redeem_haircut_bps = 30

    shares = vault.withdraw(ALICE, 100 * USDC, ALICE, ALICE)

    assert shares == 100 * 10**18 + 100
    assert vault.balance_of(ALICE) == 900 * 10**18 - 100
    assert token.balance_of(ALICE) == STARTING_BALANCE - 900 * USDC
    # 100.5 external shares redeemed, 0.3% of that lost: the 0.1985 USDC surplus goes back.
    assert events_of(vault, RedemptionInitiated)[-1].external_shares_to_redeem == 100_500_000
    assert events_of(vault, RedemptionSettled)[-1].assets_received == 100_198_500
    assert vault.events[-1].assets == 100 * USDC
    assert token.balance_of(vault.address) == 0
    assert vault.total_assets() == 899_698_500


def test_slippage_failure_restores_shares_bit_for_bit(vault, token, external):
    shares = vault.deposit(ALICE, 1000 * USDC, ALICE)
    vault.approve(ALICE, BOB, 7)
    external.redeem_haircut_bps = 100
    events_before = list(vault.events)

    with pytest.raises(SlippageExceeded) as exc:
        vault.redeem(ALICE, shares, ALICE, ALICE)

    assert exc.value.expected == 1000 * USDC - 1
    assert exc.value.received == 990 * USDC
    assert exc.value.minimum == 994_999_999
    assert vault.balance_of(ALICE) == shares
    assert vault.total_shares() == 1000 + shares
    assert vault.allowance(ALICE, BOB) == 7
    assert vault.events == events_before
    assert token.balance_of(ALICE) == STARTING_BALANCE - 1000 * USDC
    assert token.balance_of(vault.address) == 0
    # The received assets are supplied back; the haircut itself has left the external protocol.
    assert vault.total_assets() == 990 * USDC


def test_external_redeem_failure_aborts(vault, token, external):
    shares = vault.deposit(ALICE, 100 * USDC, ALICE)
    external.fail_redeems = True
    before = snapshot(vault, token)

    with pytest.raises(ExternalProtocolCallFailed) as exc:
        vault.redeem(ALICE, shares, ALICE, ALICE)

    assert exc.value.operation == "redeem"
    assert snapshot(vault, token) == before


def test_redeem_on_behalf_spends_share_allowance(vault, token):
    vault.deposit(ALICE, 100 * USDC, ALICE)
    vault.approve(ALICE, BOB, 50 * 10**18)

    paid = vault.redeem(BOB, 50 * 10**18, BOB, ALICE)

    assert paid == 50 * USDC - 1
    assert token.balance_of(BOB) == STARTING_BALANCE + paid
    assert vault.allowance(ALICE, BOB) == 0
    assert vault.balance_of(ALICE) == 50 * 10**18
    with pytest.raises(InsufficientAllowance):
        vault.redeem(BOB, 1, BOB, ALICE)
    assert vault.balance_of(ALICE) == 50 * 10**18


def test_pause_blocks_entries_but_not_exits(vault):
    shares = vault.deposit(ALICE, 100 * USDC, ALICE)
    vault.pause(OWNER)

    with pytest.raises(VaultPaused):
        vault.deposit(BOB, 10 * USDC, BOB)
    with pytest.raises(VaultPaused):
        vault.mint(BOB, 10**18, BOB)
    with pytest.raises(VaultPaused):
        vault.deposit(BOB, 0, BOB)
    # The limits stay unbounded; the pause is enforced by the entry points.
    assert vault.max_deposit(BOB) == MAX_UINT256
    assert vault.max_mint(BOB) == MAX_UINT256

    assert vault.withdraw(ALICE, 10 * USDC, ALICE, ALICE) == 10 * 10**18 + 100
    assert vault.redeem(ALICE, vault.max_redeem(ALICE), ALICE, ALICE) == 90 * USDC - 1
    assert vault.balance_of(ALICE) == 0
    assert shares == 100 * 10**18


def test_shares_are_burned_before_the_external_call(vault, external):
    vault.deposit(ALICE, 100 * USDC, ALICE)
    seen = []

    def callback():
        seen.append(vault.balance_of(ALICE))
        try:
            vault.deposit(BOB, 10 * USDC, BOB)
        except ReentrantCall as ex:
            seen.append(ex)

    external.on_redeem = callback
    paid = vault.redeem(ALICE, 100 * 10**18, ALICE, ALICE)

    assert paid == 100 * USDC - 1
    assert seen[0] == 0
    assert isinstance(seen[1], ReentrantCall)
    assert vault.balance_of(BOB) == 0


def test_reentrant_call_aborts_the_outer_operation(vault, token, external):
    vault.deposit(ALICE, 100 * USDC, ALICE)
    external.on_redeem = lambda: vault.redeem(ALICE, 1, ALICE, ALICE)
    before = snapshot(vault, token)

    with pytest.raises(ExternalProtocolCallFailed) as exc:
        vault.redeem(ALICE, 10**18, ALICE, ALICE)

    assert isinstance(exc.value.__cause__, ReentrantCall)
    assert snapshot(vault, token) == before

    # The guard is released after the failure.
    external.on_redeem = None
    assert vault.redeem(ALICE, 10**18, ALICE, ALICE) == USDC - 1


def test_dead_shares_are_not_redeemable(vault):
    assert vault.max_redeem(DEAD_ADDRESS) == 0
    assert vault.max_withdraw(DEAD_ADDRESS) == 0
    with pytest.raises(ExceededMaxRedeem):
        vault.redeem(DEAD_ADDRESS, 1, ALICE, DEAD_ADDRESS)


def test_round_trip_never_profits_with_other_holders(vault, external):
    vault.deposit(BOB, 1234 * USDC, BOB)
    external.accrue_yield(17 * USDC + 3)

    shares = vault.deposit(ALICE, 333 * USDC + 7, ALICE)
    paid = vault.redeem(ALICE, shares, ALICE, ALICE)
    assert paid <= 333 * USDC + 7


def test_realized_loss_lowers_redemptions(vault, external):
    shares = vault.deposit(ALICE, 100 * USDC, ALICE)
    external.realize_loss(10 * USDC)
    assert vault.preview_redeem(shares) == 90 * USDC - 1
    assert vault.redeem(ALICE, shares, ALICE, ALICE) == 90 * USDC - 1
