"""Run raffle operations against persisted raffles.

Each workflow locks the ``Raffle`` row (``SELECT ... FOR UPDATE`` where the
database supports it), rebuilds a :class:`RaffleStateMachine` from it,
runs exactly one operation and, only when it succeeds, writes the resulting
snapshot back and flushes. A rejected operation raises its
:class:`~nftraffle.raffle.errors.RaffleError` and leaves the row untouched.
Committing or rolling back the surrounding transaction is up to the caller.
"""

import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy.orm import Session

from .blockchain.collaborators import ChainAssetRegistry, ChainValueTransfer
from .models import Raffle, RaffleDraw
from .raffle.machine import RaffleStateMachine
from .raffle.randomness import RandomSource
from .raffle.state import PrizeReference

if TYPE_CHECKING:
    from .blockchain.api import ChainClient

logger = logging.getLogger(__name__)


def _machine(
    session: Session,
    raffle: Raffle,
    *,
    client: Optional["ChainClient"] = None,
    random_source: Optional[RandomSource] = None,
) -> RaffleStateMachine:
    if raffle.id is None:
        raise ValueError("Raffle must be persisted before running an operation")
    # Reload under a row lock so concurrent sessions run one operation at a time.
    session.refresh(raffle, with_for_update=True)
    return RaffleStateMachine.from_snapshot(
        raffle.to_snapshot(),
        value_transfer=ChainValueTransfer(session, raffle, client),
        asset_registry=ChainAssetRegistry(session, raffle, client),
        random_source=random_source,
    )


def _save(session: Session, raffle: Raffle, machine: RaffleStateMachine) -> None:
    raffle.apply_snapshot(session, machine.snapshot())


def get_raffle(session: Session, name: str) -> Optional[Raffle]:
    """Return the raffle registered under ``name``, if any."""
    return Raffle.get_by_name(session, name)


def create_raffle(
    session: Session,
    operator: str,
    entry_fee: int,
    name: Optional[str] = None,
) -> Raffle:
    """Persist a new idle raffle owned by ``operator``.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    operator : str
        Identity allowed to run operator-only actions on the raffle.
    entry_fee : int
        Price of one entry. Fixed for the lifetime of the raffle.
    name : Optional[str]
        Optional unique lookup name.

    Returns
    -------
    Raffle
        The flushed ``Raffle`` row with a populated ``id``.

    Raises
    ------
    ValueError
        If ``entry_fee`` is not positive, ``operator`` is empty, or ``name``
        is already taken.
    """
    # Let the state machine validate the construction arguments.
    machine = RaffleStateMachine(
        operator,
        entry_fee,
        value_transfer=ChainValueTransfer(session),
        asset_registry=ChainAssetRegistry(session),
    )
    if name is not None and Raffle.get_by_name(session, name) is not None:
        raise ValueError(f"A raffle named {name!r} already exists")

    snapshot = machine.snapshot()
    raffle = Raffle(
        name=name,
        operator=snapshot.operator,
        entry_fee=snapshot.entry_fee,
        phase=snapshot.phase.value,
        total_entries=0,
        fee_pool_balance=0,
        cycle=0,
    )
    session.add(raffle)
    session.flush()
    logger.info(f"Created raffle {raffle.id} with entry fee {entry_fee}")
    return raffle


def open_raffle(
    session: Session, raffle: Raffle, caller: str, prize: PrizeReference
) -> None:
    """Configure ``prize`` and open entry sales (operator only)."""
    machine = _machine(session, raffle)
    machine.open(caller, prize)
    _save(session, raffle, machine)


def buy_entries(
    session: Session, raffle: Raffle, caller: str, count: int, payment: int
) -> None:
    """Record ``count`` entries bought by ``caller`` for exactly ``payment``."""
    machine = _machine(session, raffle)
    machine.buy_entries(caller, count, payment)
    _save(session, raffle, machine)


def close_raffle(session: Session, raffle: Raffle, caller: str) -> None:
    """Stop entry sales (operator only)."""
    machine = _machine(session, raffle)
    machine.close(caller)
    _save(session, raffle, machine)


def select_winner(
    session: Session,
    raffle: Raffle,
    caller: str,
    *,
    random_source: Optional[RandomSource] = None,
    client: Optional["ChainClient"] = None,
) -> RaffleDraw:
    """Draw the winner, deliver the prize and record the draw.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    raffle : Raffle
        A closed raffle.
    caller : str
        Must be the raffle operator.
    random_source : Optional[RandomSource]
        Source for the winning index; the system CSPRNG when omitted. Pass a
        :class:`~nftraffle.raffle.randomness.ProvablyFairRandomSource` to
        store a verifiable proof with the draw.
    client : Optional[ChainClient]
        Pre-configured wallet client used for the prize transfer.

    Returns
    -------
    RaffleDraw
        The persisted draw, including the winner.
    """
    machine = _machine(session, raffle, client=client, random_source=random_source)
    record = machine.draw(caller)

    _save(session, raffle, machine)
    draw = RaffleDraw.from_record(raffle, record)
    session.add(draw)
    session.flush()
    return draw


def withdraw_fees(
    session: Session,
    raffle: Raffle,
    caller: str,
    *,
    client: Optional["ChainClient"] = None,
) -> int:
    """Pay the fee pool out to the operator; returns the amount paid."""
    machine = _machine(session, raffle, client=client)
    amount = machine.withdraw_fees(caller)
    _save(session, raffle, machine)
    return amount


def withdraw_refund(
    session: Session,
    raffle: Raffle,
    caller: str,
    *,
    client: Optional["ChainClient"] = None,
) -> int:
    """Pay ``caller`` its refund balance; returns the amount paid."""
    machine = _machine(session, raffle, client=client)
    amount = machine.withdraw_refund(caller)
    _save(session, raffle, machine)
    return amount


def issue_refund(
    session: Session, raffle: Raffle, caller: str, participant: str, amount: int
) -> None:
    """Move ``amount`` from the fee pool to ``participant``'s refund balance."""
    machine = _machine(session, raffle)
    machine.issue_refund(caller, participant, amount)
    _save(session, raffle, machine)
