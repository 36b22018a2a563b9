"""Value types shared by the raffle state machine and its persistence layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .randomness import DrawProof


class Phase(str, Enum):
    """Lifecycle phase of a raffle instance."""

    IDLE = "idle"
    OPEN = "open"
    CLOSED = "closed"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class PrizeReference:
    """Identifies the NFT awarded to the winner.

    Attributes
    ----------
    asset_id : str
        Collection / contract identifier of the NFT on the asset registry.
    token_id : int
        Numeric id of the NFT within ``asset_id``.
    """

    asset_id: str
    token_id: int

    def __post_init__(self) -> None:
        if not isinstance(self.asset_id, str):
            raise TypeError("asset_id must be a string")
        normalized = self.asset_id.strip()
        if not normalized:
            raise ValueError("asset_id must not be empty")
        if not _is_int(self.token_id):
            raise TypeError("token_id must be an integer")
        if self.token_id < 0:
            raise ValueError("token_id must not be negative")
        object.__setattr__(self, "asset_id", normalized)

    def __str__(self) -> str:
        return f"{self.asset_id}#{self.token_id}"


@dataclass(frozen=True)
class RaffleSnapshot:
    """Complete, immutable state of a raffle instance.

    ``entries`` and ``refund_balances`` are ordered ``(participant, value)``
    pairs; the order of ``entries`` is the order used by winner selection.
    """

    operator: str
    entry_fee: int
    phase: Phase = Phase.IDLE
    prize: Optional[PrizeReference] = None
    entries: Tuple[Tuple[str, int], ...] = ()
    total_entries: int = 0
    fee_pool_balance: int = 0
    refund_balances: Tuple[Tuple[str, int], ...] = ()
    cycle: int = 0

    def validate(self) -> None:
        """Raise ``ValueError`` when the snapshot breaks a raffle invariant."""
        if not isinstance(self.operator, str) or not self.operator.strip():
            raise ValueError("operator must be a non-empty string")
        if not _is_int(self.entry_fee) or self.entry_fee <= 0:
            raise ValueError("entry_fee must be a positive integer")
        if not isinstance(self.phase, Phase):
            raise ValueError(f"Unknown phase {self.phase!r}")
        if self.phase is Phase.IDLE:
            if self.prize is not None:
                raise ValueError("An idle raffle cannot hold a prize")
            if self.entries or self.total_entries:
                raise ValueError("An idle raffle cannot hold entries")
        elif self.prize is None:
            raise ValueError(f"A {self.phase.value} raffle must have a prize")

        seen = set()
        for participant, count in self.entries:
            if participant in seen:
                raise ValueError(f"Duplicate ledger entry for {participant!r}")
            seen.add(participant)
            if not _is_int(count) or count <= 0:
                raise ValueError(f"Invalid entry count for {participant!r}")
        if sum(count for _, count in self.entries) != self.total_entries:
            raise ValueError("Entry ledger does not add up to total_entries")

        if not _is_int(self.fee_pool_balance) or self.fee_pool_balance < 0:
            raise ValueError("fee_pool_balance must be a non-negative integer")
        seen = set()
        for participant, amount in self.refund_balances:
            if participant in seen:
                raise ValueError(f"Duplicate refund balance for {participant!r}")
            seen.add(participant)
            if not _is_int(amount) or amount <= 0:
                raise ValueError(f"Invalid refund balance for {participant!r}")
        if not _is_int(self.cycle) or self.cycle < 0:
            raise ValueError("cycle must be a non-negative integer")


@dataclass(frozen=True)
class DrawRecord:
    """Outcome of a completed winner selection."""

    cycle: int
    winner: str
    prize: PrizeReference
    winning_index: int
    total_entries: int
    participant_count: int
    proof: Optional["DrawProof"] = None


__all__ = ["Phase", "PrizeReference", "RaffleSnapshot", "DrawRecord"]
