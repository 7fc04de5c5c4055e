"""In-memory vault simulation driven by parsed scenarios."""

import logging
from dataclasses import dataclass, field

from risefi_vault import errors
from risefi_vault.constants import MORPHO_USDC_VAULT_BASE, RISEFI_VAULT_ADDRESS, USDC_BASE
from risefi_vault.models import ScenarioStep
from risefi_vault.parsing import MAX_SHARES, Scenario
from risefi_vault.protocols import InMemoryToken, InMemoryYieldVault
from risefi_vault.vault import Vault

logger = logging.getLogger(__name__)


@dataclass
class Simulation:
    vault: Vault
    asset: InMemoryToken
    external: InMemoryYieldVault
    failures: list[tuple[int, str, str]] = field(default_factory=list)


def build_simulation(scenario: Scenario) -> Simulation:
    """Deploy an in-memory asset, external vault and RiseFi vault, and fund accounts."""
    asset = InMemoryToken(USDC_BASE, symbol="USDC", decimals=scenario.config.asset_decimals)
    external = InMemoryYieldVault(MORPHO_USDC_VAULT_BASE, asset)
    vault = Vault(RISEFI_VAULT_ADDRESS, asset, external, scenario.owner, scenario.config)
    for account, amount in scenario.fund.items():
        asset.mint(account, amount)
    return Simulation(vault=vault, asset=asset, external=external)


def _shares_arg(sim: Simulation, step: ScenarioStep) -> int:
    shares = step.args.get("shares", 0)
    if shares == MAX_SHARES:
        return sim.vault.max_redeem(step.args.get("owner", step.caller))
    return shares


def apply_step(sim: Simulation, step: ScenarioStep) -> object:
    """Execute one step. Vault errors propagate to the caller."""
    vault = sim.vault
    args = step.args
    caller = step.caller
    receiver = args.get("receiver", caller)
    owner = args.get("owner", caller)

    if step.action == "deposit":
        return vault.deposit(caller, args["assets"], receiver)
    if step.action == "mint":
        return vault.mint(caller, _shares_arg(sim, step), receiver)
    if step.action == "withdraw":
        return vault.withdraw(caller, args["assets"], receiver, owner)
    if step.action == "redeem":
        return vault.redeem(caller, _shares_arg(sim, step), receiver, owner)
    if step.action == "emergency_withdraw":
        return vault.emergency_withdraw(caller, _shares_arg(sim, step), receiver, owner)
    if step.action == "transfer":
        return vault.transfer(caller, args["to"], _shares_arg(sim, step))
    if step.action == "approve":
        return vault.approve(caller, args["spender"], _shares_arg(sim, step))
    if step.action == "pause":
        return vault.pause(caller)
    if step.action == "unpause":
        return vault.unpause(caller)
    if step.action == "set_emergency_mode":
        return vault.set_emergency_mode(caller, bool(args.get("enabled", True)))
    if step.action == "transfer_ownership":
        return vault.transfer_ownership(caller, args["to"])
    if step.action == "approve_asset":
        return sim.asset.approve(caller, vault.address, args["assets"])
    if step.action == "accrue_yield":
        return sim.external.accrue_yield(args["amount"])
    if step.action == "realize_loss":
        return sim.external.realize_loss(args["amount"])
    if step.action == "set_haircut":
        sim.external.redeem_haircut_bps = int(args.get("bps", 0))
        return None
    raise ValueError(f"Unknown action: {step.action}")


def run_step(sim: Simulation, index: int, step: ScenarioStep) -> bool:
    """Run a step and compare the outcome with `expect_error`. Returns True when as expected."""
    try:
        result = apply_step(sim, step)
    except errors.VaultError as ex:
        error_name = type(ex).__name__
        if step.expect_error == error_name:
            logger.debug("Step %d %s failed as expected: %s", index, step.action, ex)
            return True
        sim.failures.append((index, step.action, f"{error_name}: {ex}"))
        return False

    if step.expect_error:
        sim.failures.append((index, step.action, f"expected {step.expect_error}, succeeded with {result!r}"))
        return False
    logger.debug("Step %d %s -> %r", index, step.action, result)
    return True
