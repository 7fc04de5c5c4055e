"""Contract interaction functions."""

from typing import TYPE_CHECKING

from risefi_vault.formatters import as_int
from risefi_vault.models import ExternalVaultMetrics
from risefi_vault.onchain import OnchainYieldVault

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def fetch_external_vault_metrics(
    w3: "Web3", vault_address: str, *, block_identifier: int | str = "latest"
) -> ExternalVaultMetrics:
    """
    Read the headline numbers of an ERC-4626 vault.

    `assets_per_share` is convertToAssets(10**decimals): the asset value of one whole share.
    """
    vault = OnchainYieldVault(w3, vault_address, block_identifier=block_identifier)
    decimals = vault.decimals()
    block_number = as_int(block_identifier) if isinstance(block_identifier, int) else None
    return ExternalVaultMetrics(
        vault=vault.address,
        asset=vault.asset(),
        decimals=decimals,
        total_assets=vault.total_assets(),
        total_supply=vault.total_supply(),
        assets_per_share=vault.convert_to_assets(10**decimals),
        block_number=block_number,
    )

