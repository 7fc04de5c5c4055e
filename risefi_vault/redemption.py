"""Two-phase redemption against the external protocol.

A `RedemptionTicket` moves ``IDLE -> INITIATED -> SETTLED``, or to ``FAILED``
when the surrounding operation rolls back.

`initiate` burns the owner's vault shares before anything external is touched,
so a callback from the external protocol can never see a claim that is both
still on the ledger and about to be paid. `settle` refuses a ticket that was
not initiated, and checks the amount actually received before any asset leaves
the vault.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from risefi_vault.conversion import min_accepted, with_slippage_buffer
from risefi_vault.errors import InvalidRedemptionState, SlippageExceeded
from risefi_vault.journal import Journal
from risefi_vault.ledger import ShareLedger
from risefi_vault.models import (
    RedemptionInitiated,
    RedemptionPhase,
    RedemptionSettled,
    RedemptionTicket,
    SharesBurned,
    VaultConfig,
)
from risefi_vault.protocols import BaseAsset, ExternalProtocol, call_external, supply_to_external

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedemptionContext:
    """Everything the redemption steps may touch."""

    vault_address: str
    ledger: ShareLedger
    asset: BaseAsset
    external: ExternalProtocol
    config: VaultConfig
    emit: Callable[[object], None]


def _set_phase(ticket: RedemptionTicket, phase: RedemptionPhase, journal: Journal) -> None:
    journal.record("redemption phase", lambda: setattr(ticket, "phase", RedemptionPhase.FAILED))
    ticket.phase = phase


def initiate(ctx: RedemptionContext, ticket: RedemptionTicket, journal: Journal) -> None:
    """Burn the owner's shares and size the external redemption."""
    if ticket.phase is not RedemptionPhase.IDLE:
        raise InvalidRedemptionState(ticket.phase.value, RedemptionPhase.IDLE.value)

    if ticket.caller != ticket.owner:
        ctx.ledger.spend_allowance(ticket.owner, ticket.caller, ticket.shares, journal)
    ctx.ledger.burn(ticket.owner, ticket.shares, journal)
    ctx.emit(SharesBurned(owner=ticket.owner, shares=ticket.shares))

    if ticket.assets > 0:
        needed = call_external("previewWithdraw", ctx.external.preview_withdraw, ticket.assets)
        buffered = with_slippage_buffer(needed, ctx.config.slippage_tolerance_bps, ctx.config.basis_points)
        held = call_external("balanceOf", ctx.external.balance_of, ctx.vault_address)
        ticket.external_shares = min(buffered, held)

    _set_phase(ticket, RedemptionPhase.INITIATED, journal)
    ctx.emit(
        RedemptionInitiated(vault_shares_burned=ticket.shares, external_shares_to_redeem=ticket.external_shares)
    )
    logger.debug(
        "Redemption initiated for %s: burned %d shares, redeeming %d external shares",
        ticket.owner,
        ticket.shares,
        ticket.external_shares,
    )


def settle(ctx: RedemptionContext, ticket: RedemptionTicket, journal: Journal) -> int:
    """Redeem from the external protocol, verify, and pay the receiver.

    The receiver gets ``min(received, ticket.assets)``; any surplus released by
    the slippage buffer is supplied back to the external protocol.
    Returns the amount paid.
    """
    if ticket.phase is not RedemptionPhase.INITIATED:
        raise InvalidRedemptionState(ticket.phase.value, RedemptionPhase.INITIATED.value)

    received = 0
    if ticket.external_shares > 0:
        # The protocol's return value is not trusted; measure the custody balance instead.
        before = ctx.asset.balance_of(ctx.vault_address)
        call_external(
            "redeem",
            ctx.external.redeem,
            ctx.vault_address,
            ticket.external_shares,
            ctx.vault_address,
            ctx.vault_address,
        )
        received = ctx.asset.balance_of(ctx.vault_address) - before
        if received > 0:
            supplied_back = received
            journal.record(
                "external redeem",
                lambda: supply_to_external(ctx.asset, ctx.external, ctx.vault_address, supplied_back, Journal("undo")),
            )

    minimum = min_accepted(ticket.assets, ctx.config.slippage_tolerance_bps, ctx.config.basis_points)
    if ticket.check_slippage and received < minimum:
        raise SlippageExceeded(ticket.assets, received, minimum)

    payout = min(received, ticket.assets)
    surplus = received - payout
    if surplus > 0:
        supply_to_external(ctx.asset, ctx.external, ctx.vault_address, surplus, journal)

    ticket.assets_received = received
    ticket.assets_paid = payout
    _set_phase(ticket, RedemptionPhase.SETTLED, journal)
    ctx.emit(RedemptionSettled(external_shares_redeemed=ticket.external_shares, assets_received=received))

    if payout > 0:
        ctx.asset.transfer(ctx.vault_address, ticket.receiver, payout)
    logger.debug("Redemption settled for %s: received %d, paid %d", ticket.receiver, received, payout)
    return payout


def run(ctx: RedemptionContext, ticket: RedemptionTicket, journal: Journal) -> int:
    """Initiate then settle. The only entry point the vault uses."""
    initiate(ctx, ticket, journal)
    return settle(ctx, ticket, journal)
