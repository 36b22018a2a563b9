"""Single-prize raffle state machine with pooled entry fees."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .collaborators import AssetRegistry, ValueTransfer
from .errors import (
    AlreadyConfigured,
    IncorrectPayment,
    InsufficientBalance,
    InvalidAmount,
    InvalidEntryCount,
    NoBalance,
    NoPlayers,
    NotOpen,
    NotStarted,
    RandomnessError,
    StillRunning,
    TransferFailed,
    Unauthorized,
)
from .randomness import RandomSource, SystemRandomSource
from .selection import pick_weighted_winner
from .state import DrawRecord, Phase, PrizeReference, RaffleSnapshot

logger = logging.getLogger(__name__)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class RaffleStateMachine:
    """Owns every piece of mutable raffle state.

    Lifecycle: ``IDLE --open--> OPEN --close--> CLOSED --select_winner--> IDLE``.

    Each public operation validates all of its preconditions before touching
    state. Operations that call out to a collaborator zero the owed balance (or
    reset the cycle) *before* the call, so a re-entrant call from the
    collaborator sees the already-updated state. If the collaborator fails,
    only the calling operation's own change is undone; whatever a re-entrant
    call did in the meantime stands.

    The fee pool and the refund balances survive cycle resets; the prize, the
    entry ledger and the total do not.
    """

    def __init__(
        self,
        operator: str,
        entry_fee: int,
        *,
        value_transfer: ValueTransfer,
        asset_registry: AssetRegistry,
        random_source: Optional[RandomSource] = None,
    ) -> None:
        """Create an idle raffle.

        Parameters
        ----------
        operator : str
            The only identity allowed to open, close, draw, refund and
            withdraw fees. Fixed for the lifetime of the machine.
        entry_fee : int
            Price of a single entry. Must be a positive integer.
        value_transfer : ValueTransfer
            Pays out withdrawals.
        asset_registry : AssetRegistry
            Delivers the prize to the winner.
        random_source : Optional[RandomSource], default: None
            Source for the winning entry index. Defaults to
            :class:`SystemRandomSource`.
        """
        if isinstance(entry_fee, bool) or not isinstance(entry_fee, int):
            raise TypeError("entry_fee must be an integer")
        if entry_fee <= 0:
            raise ValueError("entry_fee must be positive")
        if not isinstance(operator, str) or not operator.strip():
            raise ValueError("operator must be a non-empty string")

        self._operator = operator
        self._entry_fee = entry_fee
        self._value_transfer = value_transfer
        self._asset_registry = asset_registry
        self._random = random_source or SystemRandomSource()

        self._phase = Phase.IDLE
        self._prize: Optional[PrizeReference] = None
        self._entries: dict[str, int] = {}
        self._total_entries = 0
        self._fee_pool_balance = 0
        self._refund_balances: dict[str, int] = {}
        self._cycle = 0

        self.last_draw: Optional[DrawRecord] = None

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RaffleSnapshot,
        *,
        value_transfer: ValueTransfer,
        asset_registry: AssetRegistry,
        random_source: Optional[RandomSource] = None,
    ) -> "RaffleStateMachine":
        """Rebuild a machine from a persisted snapshot.

        Raises
        ------
        ValueError
            If the snapshot violates a raffle invariant.
        """
        snapshot.validate()
        machine = cls(
            snapshot.operator,
            snapshot.entry_fee,
            value_transfer=value_transfer,
            asset_registry=asset_registry,
            random_source=random_source,
        )
        machine._load(snapshot)
        return machine

    # -------- observers --------
    @property
    def operator(self) -> str:
        return self._operator

    @property
    def entry_fee(self) -> int:
        return self._entry_fee

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_open(self) -> bool:
        return self._phase is Phase.OPEN

    @property
    def prize(self) -> Optional[PrizeReference]:
        return self._prize

    @property
    def total_entries(self) -> int:
        return self._total_entries

    @property
    def fee_pool_balance(self) -> int:
        return self._fee_pool_balance

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def participants(self) -> Tuple[str, ...]:
        """Participants of the current cycle in ledger order."""
        return tuple(self._entries)

    def entry_count(self, participant: str) -> int:
        return self._entries.get(participant, 0)

    def refund_balance(self, participant: str) -> int:
        return self._refund_balances.get(participant, 0)

    def snapshot(self) -> RaffleSnapshot:
        return RaffleSnapshot(
            operator=self._operator,
            entry_fee=self._entry_fee,
            phase=self._phase,
            prize=self._prize,
            entries=tuple(self._entries.items()),
            total_entries=self._total_entries,
            fee_pool_balance=self._fee_pool_balance,
            refund_balances=tuple(self._refund_balances.items()),
            cycle=self._cycle,
        )

    # -------- internals --------
    def _load(self, snapshot: RaffleSnapshot) -> None:
        self._phase = snapshot.phase
        self._prize = snapshot.prize
        self._entries = dict(snapshot.entries)
        self._total_entries = snapshot.total_entries
        self._fee_pool_balance = snapshot.fee_pool_balance
        self._refund_balances = dict(snapshot.refund_balances)
        self._cycle = snapshot.cycle

    def _credit_refund(self, participant: str, amount: int, position: int) -> None:
        if participant in self._refund_balances:
            self._refund_balances[participant] += amount
            return
        items = list(self._refund_balances.items())
        items.insert(min(position, len(items)), (participant, amount))
        self._refund_balances = dict(items)

    def _discard_draw(self) -> None:
        discard = getattr(self._random, "discard_last", None)
        if discard is not None:
            discard()

    def _require_operator(self, caller: str) -> None:
        if caller != self._operator:
            raise Unauthorized()

    def _reset_cycle(self) -> None:
        self._phase = Phase.IDLE
        self._prize = None
        self._entries = {}
        self._total_entries = 0

    def _send_value(self, recipient: str, amount: int) -> None:
        try:
            ok = self._value_transfer.send(recipient, amount)
        except Exception as exc:
            logger.warning(f"Value transfer of {amount} to {recipient} raised: {exc}")
            raise TransferFailed(f"Transfer of {amount} to {recipient} failed") from exc
        if not ok:
            logger.warning(f"Value transfer of {amount} to {recipient} was rejected")
            raise TransferFailed(f"Transfer of {amount} to {recipient} failed")

    def _deliver_prize(self, prize: PrizeReference, recipient: str) -> None:
        try:
            ok = self._asset_registry.transfer(prize, recipient)
        except Exception as exc:
            logger.warning(f"Prize transfer of {prize} to {recipient} raised: {exc}")
            raise TransferFailed(f"Prize {prize} could not be sent to {recipient}") from exc
        if not ok:
            logger.warning(f"Prize transfer of {prize} to {recipient} was rejected")
            raise TransferFailed(f"Prize {prize} could not be sent to {recipient}")

    # -------- operations --------
    def open(self, caller: str, prize: PrizeReference) -> None:
        """Configure ``prize`` and start selling entries for a new cycle."""
        self._require_operator(caller)
        if self._phase is not Phase.IDLE:
            raise AlreadyConfigured()
        if not isinstance(prize, PrizeReference):
            raise TypeError("prize must be a PrizeReference")

        self._prize = prize
        self._entries = {}
        self._total_entries = 0
        self._cycle += 1
        self._phase = Phase.OPEN
        logger.info(f"Raffle cycle {self._cycle} opened with prize {prize}")

    def buy_entries(self, caller: str, count: int, payment: int) -> None:
        """Buy ``count`` entries for ``caller``; ``payment`` must be exact."""
        if self._phase is not Phase.OPEN:
            raise NotOpen()
        if not _is_positive_int(count):
            raise InvalidEntryCount()
        if isinstance(payment, bool) or not isinstance(payment, int):
            raise IncorrectPayment()
        if payment != count * self._entry_fee:
            raise IncorrectPayment()

        self._entries[caller] = self._entries.get(caller, 0) + count
        self._total_entries += count
        self._fee_pool_balance += payment
        logger.info(
            f"{caller} bought {count} entries in cycle {self._cycle} "
            f"(total {self._total_entries})"
        )

    def close(self, caller: str) -> None:
        """Stop entry sales so a winner can be drawn."""
        self._require_operator(caller)
        if self._phase is not Phase.OPEN:
            raise NotStarted()

        self._phase = Phase.CLOSED
        logger.info(
            f"Raffle cycle {self._cycle} closed with {self._total_entries} entries"
        )

    def select_winner(self, caller: str) -> str:
        """Draw the winner, hand them the prize and start a fresh cycle.

        Returns
        -------
        str
            The winner's identity. Details of the draw are kept on
            :attr:`last_draw`; :meth:`draw` returns them directly.
        """
        return self.draw(caller).winner

    def draw(self, caller: str) -> DrawRecord:
        """Run :meth:`select_winner` and return the full draw record.

        Checks run in a fixed order: authorization, ``StillRunning`` while
        open, ``NoPlayers`` when no entry was sold (which includes an idle
        raffle), then ``NotStarted`` if the raffle is somehow not closed.

        If the prize transfer fails the raffle goes back to ``CLOSED`` with
        its ledger intact and the random source forgets the draw. A re-entrant
        ``open`` that already started the next cycle is left alone.
        """
        self._require_operator(caller)
        if self._phase is Phase.OPEN:
            raise StillRunning()
        if self._total_entries == 0:
            raise NoPlayers()
        if self._phase is not Phase.CLOSED or self._prize is None:
            raise NotStarted()

        prize = self._prize
        entries = self._entries
        cycle = self._cycle
        total = self._total_entries
        index = self._random.randbelow(total)
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < total:
            self._discard_draw()
            raise RandomnessError(f"Random source returned {index!r} for bound {total}")

        winner = pick_weighted_winner(entries.items(), index)
        record = DrawRecord(
            cycle=cycle,
            winner=winner,
            prize=prize,
            winning_index=index,
            total_entries=total,
            participant_count=len(entries),
            proof=getattr(self._random, "last_proof", None),
        )

        self._reset_cycle()
        try:
            self._deliver_prize(prize, winner)
        except TransferFailed:
            self._discard_draw()
            if self._cycle == cycle and self._phase is Phase.IDLE:
                self._phase = Phase.CLOSED
                self._prize = prize
                self._entries = entries
                self._total_entries = total
            else:
                logger.error(
                    f"Prize {prize} of cycle {cycle} was not delivered and "
                    f"cycle {self._cycle} has already started"
                )
            raise

        self.last_draw = record
        logger.info(
            f"Raffle cycle {cycle} won by {winner} with entry "
            f"#{index} of {total}; prize {prize}"
        )
        return record

    def withdraw_fees(self, caller: str) -> int:
        """Pay the whole fee pool to the operator and return the amount."""
        self._require_operator(caller)
        amount = self._fee_pool_balance
        if amount <= 0:
            raise NoBalance()

        self._fee_pool_balance = 0
        try:
            self._send_value(self._operator, amount)
        except TransferFailed:
            self._fee_pool_balance += amount
            raise
        logger.info(f"Operator withdrew {amount} from the fee pool")
        return amount

    def withdraw_refund(self, caller: str) -> int:
        """Pay ``caller`` its whole refund balance and return the amount."""
        amount = self._refund_balances.get(caller, 0)
        if amount <= 0:
            raise InsufficientBalance()

        position = list(self._refund_balances).index(caller)
        del self._refund_balances[caller]
        try:
            self._send_value(caller, amount)
        except TransferFailed:
            self._credit_refund(caller, amount, position)
            raise
        logger.info(f"{caller} withdrew a refund of {amount}")
        return amount

    def issue_refund(self, caller: str, participant: str, amount: int) -> None:
        """Move ``amount`` from the fee pool into ``participant``'s refund balance."""
        self._require_operator(caller)
        if not _is_positive_int(amount):
            raise InvalidAmount()
        if self._fee_pool_balance < amount:
            raise NoBalance(
                f"Fee pool holds {self._fee_pool_balance}, cannot refund {amount}"
            )

        self._fee_pool_balance -= amount
        self._refund_balances[participant] = (
            self._refund_balances.get(participant, 0) + amount
        )
        logger.info(f"Refund of {amount} credited to {participant}")


__all__ = ["RaffleStateMachine"]
