"""Invariant checks for vault state and summaries."""

from typing import TYPE_CHECKING, Any

from risefi_vault.models import VaultSummary

SCENARIO_ACTIONS = (
    "deposit",
    "mint",
    "withdraw",
    "redeem",
    "emergency_withdraw",
    "transfer",
    "approve",
    "pause",
    "unpause",
    "set_emergency_mode",
    "transfer_ownership",
    "approve_asset",
    "accrue_yield",
    "realize_loss",
    "set_haircut",
)
# Steps acting on the external protocol directly, with no vault caller.
CALLERLESS_ACTIONS = ("accrue_yield", "realize_loss", "set_haircut")

if TYPE_CHECKING:
    from risefi_vault.vault import Vault  # pragma: no cover


def validate_vault_invariants(vault: "Vault", *, warn_only: bool = False) -> list[str]:
    """
    Validate the accounting invariants of a live vault.

    Returns list of validation warnings/errors. If warn_only=False, raises ValueError on the first one.
    """
    issues: list[str] = []

    def report(msg: str) -> None:
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    cfg = vault.config
    total = vault.total_shares()

    # 1. Share floor
    if total < cfg.dead_shares:
        report(f"Vault {vault.address}: total shares {total} below dead shares {cfg.dead_shares}")

    # 2. Dead shares never move
    dead_balance = vault.balance_of(vault.dead_address)
    if dead_balance != cfg.dead_shares:
        report(f"Vault {vault.address}: dead address holds {dead_balance} shares, expected {cfg.dead_shares}")

    # 3. Conservation: balances sum to total supply
    holders_sum = sum(vault.ledger.holders().values())
    if holders_sum != total:
        report(f"Vault {vault.address}: balances sum to {holders_sum} != total shares {total}")

    # 4. All capital is with the external protocol; nothing idle in custody
    idle = vault.asset.balance_of(vault.address)
    if idle:
        report(f"Vault {vault.address}: {idle} asset units idle in custody (not supplied externally)")

    # 5. Flags are well-formed
    for name in ("paused", "emergency_mode"):
        value = getattr(vault.state, name)
        if not isinstance(value, bool):
            report(f"Vault {vault.address}: {name} flag is {value!r}, expected bool")

    return issues


def validate_summary_progression(
    prev: VaultSummary,
    cur: VaultSummary,
    *,
    warn_only: bool = True,
) -> list[str]:
    """
    Compare two summaries of the same vault taken in order.

    Returns list of warnings. By default, only warns (doesn't raise) since the external
    protocol may realize losses.
    """
    issues: list[str] = []

    if cur.dead_shares != prev.dead_shares:
        msg = f"Dead shares changed: {prev.dead_shares} -> {cur.dead_shares}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    if prev.circulating_shares and cur.circulating_shares and cur.price_per_share < prev.price_per_share:
        msg = f"Share price decreased: {prev.price_per_share} -> {cur.price_per_share}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    if cur.total_shares < cur.dead_shares:
        msg = f"Total shares {cur.total_shares} below dead shares {cur.dead_shares}"
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    return issues


def validate_scenario_json(scenario_json: Any) -> list[str]:
    """
    Validate scenario file structure (accounts, steps).

    Returns list of problems; an empty list means the scenario can be parsed.
    """
    issues: list[str] = []
    if not isinstance(scenario_json, dict):
        return ["Scenario must be a JSON object"]

    accounts = scenario_json.get("accounts", {})
    if not isinstance(accounts, dict):
        issues.append("'accounts' must be an object mapping names to addresses")

    steps = scenario_json.get("steps")
    if not isinstance(steps, list):
        issues.append("'steps' must be a list")
        return issues

    for i, step in enumerate(steps):
        if not isinstance(step, dict):
            issues.append(f"step {i}: must be an object")
            continue
        action = step.get("action")
        if not action:
            issues.append(f"step {i}: missing 'action'")
        elif action not in SCENARIO_ACTIONS:
            issues.append(f"step {i}: unknown action {action!r}")
        if "caller" not in step and action not in CALLERLESS_ACTIONS:
            issues.append(f"step {i}: missing 'caller'")
    return issues
