"""Constants and configuration for the RiseFi USDC vault."""

# Share token metadata, as deployed.
SHARE_NAME = "RiseFi USDC Vault Share"
SHARE_SYMBOL = "RFUSDV"

# Base asset is USDC (6 decimals); vault shares carry 18 decimals.
ASSET_DECIMALS = 6
SHARE_DECIMALS = 18

# 1 USDC minimum deposit (raw units).
MIN_DEPOSIT = 1_000_000

# Minted once to DEAD_ADDRESS at construction. Raw share units.
DEAD_SHARES = 1000
DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

BASIS_POINTS = 10_000
SLIPPAGE_TOLERANCE_BPS = 50  # 0.5%

# Returned by max_deposit / max_mint when unbounded.
MAX_UINT256 = 2**256 - 1

# Base mainnet addresses.
USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
MORPHO_USDC_VAULT_BASE = "0x3128a0f7f0ea68e7b7c9b00afa7e41045828e858"

# Deployed RiseFi vault on Base; simulations reuse it as the in-memory vault address.
RISEFI_VAULT_ADDRESS = "0x5a629b4f8c0176715599a45d0bc57322e8ce1848"

# Used only when neither --rpc-url nor BASE_RPC_URL are provided.
DEFAULT_PUBLIC_BASE_RPC_URLS = (
    "https://mainnet.base.org",
    "https://base.publicnode.com",
)

# Minimal ERC-20 ABI - reads plus the transfer functions the vault needs.
ERC20_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "allowance",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "approve",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "transferFrom",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

# Minimal ERC-4626 ABI for the external yield vault (Morpho on Base).
ERC4626_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "asset",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "totalAssets",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "totalSupply",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "convertToAssets",
        "stateMutability": "view",
        "inputs": [{"name": "shares", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "convertToShares",
        "stateMutability": "view",
        "inputs": [{"name": "assets", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "previewWithdraw",
        "stateMutability": "view",
        "inputs": [{"name": "assets", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "deposit",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "assets", "type": "uint256"},
            {"name": "receiver", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "redeem",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "shares", "type": "uint256"},
            {"name": "receiver", "type": "address"},
            {"name": "owner", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]
