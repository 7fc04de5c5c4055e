"""Web3-backed implementations of the vault's collaborators.

`OnchainToken` and `OnchainYieldVault` satisfy the `BaseAsset` and
`ExternalProtocol` interfaces by calling contracts through web3.py. Writes are
sent with ``transact({"from": ...})`` and so need an unlocked sender, as on an
Anvil fork.
"""

from typing import TYPE_CHECKING, Any

from risefi_vault.constants import ERC20_MIN_ABI, ERC4626_MIN_ABI
from risefi_vault.formatters import as_int

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def _send(w3: "Web3", fn: Any, sender: str) -> Any:
    """Send a contract transaction and wait for it to be mined; raise if it reverted."""
    tx_hash = fn.transact({"from": sender})
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash)
    if receipt["status"] != 1:
        raise RuntimeError(f"Transaction {tx_hash.hex() if hasattr(tx_hash, 'hex') else tx_hash} reverted")
    return receipt


class OnchainToken:
    """ERC-20 base asset reached through web3."""

    def __init__(self, w3: "Web3", address: str, *, contract: Any = None, block_identifier: int | str = "latest"):
        self.w3 = w3
        self.address = w3.to_checksum_address(address)
        self.contract = contract or w3.eth.contract(address=self.address, abi=ERC20_MIN_ABI)
        self.block_identifier = block_identifier

    def decimals(self) -> int:
        return as_int(self.contract.functions.decimals().call())

    def balance_of(self, account: str) -> int:
        return as_int(self.contract.functions.balanceOf(account).call(block_identifier=self.block_identifier))

    def allowance(self, owner: str, spender: str) -> int:
        return as_int(
            self.contract.functions.allowance(owner, spender).call(block_identifier=self.block_identifier)
        )

    def approve(self, owner: str, spender: str, amount: int) -> None:
        _send(self.w3, self.contract.functions.approve(spender, amount), owner)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        _send(self.w3, self.contract.functions.transfer(to, amount), sender)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        _send(self.w3, self.contract.functions.transferFrom(owner, to, amount), spender)


class OnchainYieldVault:
    """ERC-4626 external protocol reached through web3 (Morpho USDC vault on Base by default)."""

    def __init__(self, w3: "Web3", address: str, *, contract: Any = None, block_identifier: int | str = "latest"):
        self.w3 = w3
        self.address = w3.to_checksum_address(address)
        self.contract = contract or w3.eth.contract(address=self.address, abi=ERC4626_MIN_ABI)
        self.block_identifier = block_identifier

    def _call(self, fn: Any) -> int:
        return as_int(fn.call(block_identifier=self.block_identifier))

    def asset(self) -> str:
        return str(self.contract.functions.asset().call())

    def decimals(self) -> int:
        return self._call(self.contract.functions.decimals())

    def total_assets(self) -> int:
        return self._call(self.contract.functions.totalAssets())

    def total_supply(self) -> int:
        return self._call(self.contract.functions.totalSupply())

    def balance_of(self, account: str) -> int:
        return self._call(self.contract.functions.balanceOf(account))

    def convert_to_assets(self, shares: int) -> int:
        return self._call(self.contract.functions.convertToAssets(shares))

    def convert_to_shares(self, assets: int) -> int:
        return self._call(self.contract.functions.convertToShares(assets))

    def preview_withdraw(self, assets: int) -> int:
        return self._call(self.contract.functions.previewWithdraw(assets))

    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        before = self.balance_of(receiver)
        _send(self.w3, self.contract.functions.deposit(assets, receiver), caller)
        return self.balance_of(receiver) - before

    def redeem(self, caller: str, shares: int, receiver: str, owner: str) -> int:
        # The vault measures what it actually received; the return value is informational.
        expected = self.convert_to_assets(shares)
        _send(self.w3, self.contract.functions.redeem(shares, receiver, owner), caller)
        return expected
