"""Scenario parsing.

A scenario is a JSON object::

    {
      "config": {"min_deposit": "1", "slippage_tolerance_bps": 50},
      "accounts": {"owner": "0xf39F...", "alice": "0x7099..."},
      "owner": "owner",
      "fund": {"alice": "1000"},
      "steps": [
        {"action": "approve_asset", "caller": "alice", "assets": "100"},
        {"action": "deposit", "caller": "alice", "assets": "100", "receiver": "alice"},
        {"action": "redeem", "caller": "alice", "shares": "max", "receiver": "alice", "owner": "alice"}
      ]
    }

Asset amounts are human units of the base asset ("100.5" USDC); share amounts
are raw integers or ``"max"`` (the owner's whole redeemable balance).
"""

import json
from dataclasses import dataclass, field
from typing import Any

from risefi_vault.constants import ASSET_DECIMALS
from risefi_vault.formatters import as_int, normalize_address, parse_units
from risefi_vault.models import ScenarioStep, VaultConfig
from risefi_vault.validation import validate_scenario_json

# Anvil's first three default accounts.
DEFAULT_ACCOUNTS = {
    "owner": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    "alice": "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    "bob": "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
}

ASSET_ARGS = ("assets", "amount")
SHARE_ARGS = ("shares",)
ADDRESS_ARGS = ("receiver", "owner", "spender", "to")
MAX_SHARES = "max"


@dataclass(frozen=True)
class Scenario:
    accounts: dict[str, str]
    owner: str
    config: VaultConfig
    fund: dict[str, int] = field(default_factory=dict)
    steps: list[ScenarioStep] = field(default_factory=list)


def parse_scenario_bytes(raw_bytes: bytes) -> dict[str, Any]:
    """Parse scenario JSON from raw bytes."""
    data = json.loads(raw_bytes.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Unexpected scenario format (expected JSON object)")
    return data


def resolve_account(value: Any, accounts: dict[str, str]) -> str:
    """Resolve an account name or a literal address to a checksum address."""
    name = str(value).strip()
    if name in accounts:
        return accounts[name]
    return normalize_address(name)


def parse_config(config_json: dict[str, Any] | None) -> VaultConfig:
    """Build a VaultConfig; `min_deposit` is given in human asset units."""
    config_json = config_json or {}
    kwargs: dict[str, Any] = {}
    asset_decimals = as_int(config_json.get("asset_decimals"), default=ASSET_DECIMALS)
    if "min_deposit" in config_json:
        kwargs["min_deposit"] = parse_units(config_json["min_deposit"], asset_decimals)
    for key in ("dead_shares", "slippage_tolerance_bps", "asset_decimals", "share_decimals"):
        if key in config_json:
            kwargs[key] = as_int(config_json[key])
    return VaultConfig(**kwargs)


def parse_step(step_json: dict[str, Any], accounts: dict[str, str], *, asset_decimals: int) -> ScenarioStep:
    action = str(step_json["action"]).strip()
    caller = resolve_account(step_json["caller"], accounts) if "caller" in step_json else ""
    args: dict[str, Any] = {}
    for key, value in step_json.items():
        if key in ("action", "caller", "expect_error"):
            continue
        if key in ASSET_ARGS:
            args[key] = parse_units(value, asset_decimals)
        elif key in SHARE_ARGS:
            args[key] = MAX_SHARES if str(value).strip().lower() == MAX_SHARES else as_int(value)
        elif key in ADDRESS_ARGS:
            args[key] = resolve_account(value, accounts)
        else:
            args[key] = value
    return ScenarioStep(action=action, caller=caller, args=args, expect_error=step_json.get("expect_error"))


def parse_scenario(scenario_json: dict[str, Any]) -> Scenario:
    """Parse and validate a scenario JSON object."""
    issues = validate_scenario_json(scenario_json)
    if issues:
        raise ValueError("Invalid scenario: " + "; ".join(issues))

    accounts = dict(DEFAULT_ACCOUNTS)
    for name, address in (scenario_json.get("accounts") or {}).items():
        accounts[str(name)] = normalize_address(address)

    config = parse_config(scenario_json.get("config"))
    owner = resolve_account(scenario_json.get("owner", "owner"), accounts)
    fund = {
        resolve_account(name, accounts): parse_units(amount, config.asset_decimals)
        for name, amount in (scenario_json.get("fund") or {}).items()
    }
    steps = [parse_step(s, accounts, asset_decimals=config.asset_decimals) for s in scenario_json["steps"]]
    return Scenario(accounts=accounts, owner=owner, config=config, fund=fund, steps=steps)
