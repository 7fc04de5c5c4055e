"""RiseFi USDC vault: ERC-4626 share accounting over an external yield vault."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the risefi-vault script."""
    import sys

    from risefi_vault.cli import main

    raise SystemExit(main(sys.argv[1:]))
