import pytest
from hypothesis import given
from hypothesis import strategies as st

from risefi_vault.conversion import (
    Totals,
    assets_for_mint,
    assets_for_redeem,
    min_accepted,
    shares_for_deposit,
    shares_for_withdraw,
    with_slippage_buffer,
)
from risefi_vault.errors import InvalidAddress
from risefi_vault.formatters import (
    as_int,
    ceil_div,
    format_bp,
    format_raw_sci,
    format_shares,
    format_usdc,
    normalize_address,
    parse_units,
    short_address,
)

SCALE = 10**12
DEAD = 1000


def totals(total_assets, total_shares):
    return Totals(total_assets=total_assets, total_shares=total_shares, dead_shares=DEAD, scale=SCALE)


def test_initial_price_applies_decimal_scale_both_ways():
    t = totals(0, DEAD)
    assert t.at_initial_price
    assert t.circulating_shares == 0
    assert shares_for_deposit(100 * 10**6, t) == 100 * 10**18
    assert shares_for_withdraw(10**6, t) == 10**18
    assert assets_for_redeem(10**18, t) == 10**6
    assert assets_for_mint(10**18, t) == 10**6
    assert assets_for_mint(10**18 + 1, t) == 10**6 + 1


def test_dead_shares_dilute_every_conversion():
    t = totals(100, DEAD + 100)
    assert shares_for_deposit(10, t) == 110
    assert assets_for_redeem(110, t) == 10


def test_rounding_is_directional():
    t = totals(3, DEAD + 10)
    assert shares_for_deposit(1, t) == 336  # floor(1010 / 3)
    assert shares_for_withdraw(1, t) == 337  # ceil(1010 / 3)
    assert assets_for_redeem(337, t) == 1  # floor(1011 / 1010)
    assert assets_for_mint(337, t) == 2  # ceil(1011 / 1010)


def test_total_loss_leaves_no_claim_on_new_deposits():
    t = totals(0, DEAD + 2000)
    assert not t.at_initial_price
    assert assets_for_redeem(1000, t) == 0
    assert assets_for_mint(10**18, t) == 0
    shares = shares_for_deposit(10**6, t)
    assert shares == 3000 * 10**6
    assert assets_for_redeem(shares, totals(10**6, DEAD + 2000 + shares)) == 10**6 - 1


def test_assets_left_with_dead_shares_stay_with_them():
    t = totals(500, DEAD)
    assert not t.at_initial_price
    shares = shares_for_deposit(100, t)
    assert shares == 200
    assert assets_for_redeem(shares, totals(600, DEAD + shares)) == 100


@pytest.mark.parametrize("fn", [shares_for_deposit, assets_for_redeem, shares_for_withdraw, assets_for_mint])
@pytest.mark.parametrize("amount", [0, -5])
def test_non_positive_amounts_convert_to_zero(fn, amount):
    assert fn(amount, totals(10**6, DEAD + 10**18)) == 0


def test_slippage_bounds():
    assert min_accepted(1_000_000, 50, 10_000) == 995_000
    assert with_slippage_buffer(1_000_000, 50, 10_000) == 1_005_000
    assert with_slippage_buffer(1, 50, 10_000) == 2
    assert min_accepted(100, 0, 10_000) == 100


@given(
    total_assets=st.integers(min_value=1, max_value=10**15),
    circulating=st.integers(min_value=1, max_value=10**30),
    assets=st.integers(min_value=1, max_value=10**15),
)
def test_deposit_then_redeem_never_returns_more(total_assets, circulating, assets):
    before = totals(total_assets, DEAD + circulating)
    shares = shares_for_deposit(assets, before)
    after = totals(total_assets + assets, DEAD + circulating + shares)
    assert assets_for_redeem(shares, after) <= assets


@given(
    total_assets=st.integers(min_value=1, max_value=10**15),
    circulating=st.integers(min_value=1, max_value=10**30),
    assets=st.integers(min_value=1, max_value=10**15),
)
def test_withdraw_costs_at_least_redeem_value(total_assets, circulating, assets):
    t = totals(total_assets, DEAD + circulating)
    shares = shares_for_withdraw(assets, t)
    assert assets_for_redeem(shares, t) >= assets
    assert assets_for_mint(shares_for_deposit(assets, t), t) <= assets


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 0),
        (True, 1),
        (5, 5),
        ("  5  ", 5),
        ("0x10", 16),
        ("1_000_000", 1_000_000),
    ],
)
def test_as_int(value, expected):
    assert as_int(value) == expected


def test_parse_units_truncates_extra_precision():
    assert parse_units("100") == 100_000_000
    assert parse_units("100.5") == 100_500_000
    assert parse_units("0.0000019") == 1
    assert parse_units(3, 18) == 3 * 10**18


def test_normalize_address():
    lower = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
    assert normalize_address(lower) == "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
    with pytest.raises(InvalidAddress):
        normalize_address("0x1234")
    with pytest.raises(InvalidAddress):
        normalize_address(None)


def test_ceil_div():
    assert ceil_div(10, 3) == 4
    assert ceil_div(9, 3) == 3
    assert ceil_div(0, 3) == 0
    with pytest.raises(ZeroDivisionError):
        ceil_div(1, 0)


def test_formatters():
    assert format_usdc(100_500_000) == "100.5 USDC"
    assert format_usdc(0) == "0 USDC"
    assert format_shares(10**18) == "1 shares"
    assert format_shares(15 * 10**17) == "1.5 shares"
    assert format_bp(50) == "0.50%"
    assert format_raw_sci(0) == "0"
    assert format_raw_sci(1000) == "1e3"
    assert format_raw_sci(16900000000000) == "1.69e13"
    assert format_raw_sci(-1000) == "-1e3"
    assert short_address("0x70997970C51812dc3A010C7d01b50e0d17dc79C8") == "0x709979...79C8"
