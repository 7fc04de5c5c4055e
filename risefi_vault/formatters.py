"""Formatting and conversion utilities."""

from decimal import Decimal

from web3 import Web3

from risefi_vault.constants import ASSET_DECIMALS, SHARE_DECIMALS
from risefi_vault.errors import InvalidAddress


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling various types."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip().replace("_", "")
        if v.startswith("0x"):
            return int(v, 16)
        return int(v)
    return int(value)


def normalize_address(value: str) -> str:
    """Return the EIP-55 checksum form of an address, or raise InvalidAddress."""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidAddress(value)
    return Web3.to_checksum_address(value)


def ceil_div(numer: int, denom: int) -> int:
    """Ceiling division."""
    if denom == 0:
        raise ZeroDivisionError("denom must be > 0")
    return (numer + denom - 1) // denom


def mul_div_down(x: int, y: int, denom: int) -> int:
    return (x * y) // denom


def mul_div_up(x: int, y: int, denom: int) -> int:
    return ceil_div(x * y, denom)


def parse_units(amount: str | int | Decimal, decimals: int = ASSET_DECIMALS) -> int:
    """Convert a human amount ("100.5") to raw units, truncating extra precision."""
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


def format_bp(bp: int) -> str:
    """Format basis points as percentage."""
    return f"{(Decimal(bp) / Decimal(100)):.2f}%"


def format_raw_sci(value: int, *, sig: int = 3) -> str:
    """Format a raw integer amount in scientific notation."""
    if value == 0:
        return "0"
    s = format(Decimal(abs(value)), f".{max(0, sig - 1)}e")  # 1.69e+13
    mant, exp = s.split("e")
    mant = mant.rstrip("0").rstrip(".")
    exp_i = int(exp)
    sign = "-" if value < 0 else ""
    return f"{sign}{mant}e{exp_i}"


def format_usdc(value: int, *, decimals: int = ASSET_DECIMALS, symbol: str = "USDC") -> str:
    """Format raw base-asset units."""
    amount = Decimal(value) / (Decimal(10) ** decimals)
    s = f"{amount:.{decimals}f}".rstrip("0").rstrip(".")
    return f"{s} {symbol}"


def format_shares(value: int, *, decimals: int = SHARE_DECIMALS, places: int = 6) -> str:
    """Format raw share units."""
    shares = Decimal(value) / (Decimal(10) ** decimals)
    s = f"{shares:.{places}f}".rstrip("0").rstrip(".")
    return f"{s} shares"


def short_address(address: str) -> str:
    return f"{address[:8]}...{address[-4:]}"
