"""Persistence for raffle instances, their entry ledger and refund balances."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import Base
from .id_type import AMOUNT_TYPE, ID_TYPE
from ..db.utils import dt_iso
from ..raffle.state import Phase, PrizeReference, RaffleSnapshot

if TYPE_CHECKING:
    from .chain import BlockchainTransaction
    from .draw import RaffleDraw


class Raffle(Base):
    """A persisted raffle instance.

    The row mirrors :class:`~nftraffle.raffle.state.RaffleSnapshot`; the
    ledger and refund balances live in :class:`RaffleEntry` and
    :class:`RefundBalance`. Use :meth:`to_snapshot` and :meth:`apply_snapshot`
    rather than editing the counters directly.
    """

    __tablename__ = "raffles"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    name: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True
    )
    """Optional lookup name used by scripts."""

    operator: Mapped[str] = mapped_column(String(255), nullable=False)
    """Identity (paymail) allowed to run operator-only actions."""

    entry_fee: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    """Price of a single entry; fixed when the raffle is created."""

    phase: Mapped[str] = mapped_column(
        String(10), nullable=False, default=Phase.IDLE.value
    )
    """Lifecycle phase: ``idle``, ``open`` or ``closed``."""

    prize_asset_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    prize_token_id: Mapped[Optional[int]] = mapped_column(AMOUNT_TYPE, nullable=True)

    total_entries: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False, default=0)
    fee_pool_balance: Mapped[int] = mapped_column(
        AMOUNT_TYPE, nullable=False, default=0
    )
    cycle: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Number of cycles opened so far."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    entries: Mapped[list["RaffleEntry"]] = relationship(
        back_populates="raffle",
        cascade="all, delete-orphan",
        order_by="RaffleEntry.position",
    )
    refund_balances: Mapped[list["RefundBalance"]] = relationship(
        back_populates="raffle",
        cascade="all, delete-orphan",
        order_by="RefundBalance.position",
    )
    draws: Mapped[list["RaffleDraw"]] = relationship(
        back_populates="raffle",
        cascade="all, delete-orphan",
        order_by="RaffleDraw.cycle",
    )
    chain_txs: Mapped[list["BlockchainTransaction"]] = relationship(
        back_populates="raffle"
    )

    __table_args__ = (
        CheckConstraint("phase IN ('idle','open','closed')", name="phase_enum"),
        CheckConstraint("entry_fee > 0", name="entry_fee_positive"),
        CheckConstraint("total_entries >= 0", name="total_entries_non_negative"),
        CheckConstraint("fee_pool_balance >= 0", name="fee_pool_non_negative"),
    )

    @validates("operator")
    def _normalize_operator(self, _key: str, value: str) -> str:
        normalized = (value or "").strip()
        if not normalized:
            raise ValueError("operator must not be empty")
        return normalized

    @property
    def prize(self) -> Optional[PrizeReference]:
        if self.prize_asset_id is None or self.prize_token_id is None:
            return None
        return PrizeReference(self.prize_asset_id, self.prize_token_id)

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["Raffle"]:
        """Get a raffle by its lookup name."""
        return session.scalar(select(cls).where(cls.name == name))

    def to_snapshot(self) -> RaffleSnapshot:
        """Return the core state stored on this row."""
        return RaffleSnapshot(
            operator=self.operator,
            entry_fee=self.entry_fee,
            phase=Phase(self.phase or Phase.IDLE.value),
            prize=self.prize,
            entries=tuple((e.participant, e.entry_count) for e in self.entries),
            total_entries=self.total_entries or 0,
            fee_pool_balance=self.fee_pool_balance or 0,
            refund_balances=tuple(
                (r.participant, r.amount) for r in self.refund_balances
            ),
            cycle=self.cycle or 0,
        )

    def apply_snapshot(self, session: Session, snapshot: RaffleSnapshot) -> None:
        """Write ``snapshot`` onto this row and its ledger/refund rows.

        Existing child rows are updated in place, missing ones are deleted and
        new ones inserted, so the unique ``(raffle, participant)`` constraints
        hold at every flush.

        Raises
        ------
        ValueError
            If the snapshot is invalid or belongs to a different operator or
            entry fee.
        """
        snapshot.validate()
        if snapshot.operator != self.operator or snapshot.entry_fee != self.entry_fee:
            raise ValueError("Snapshot does not belong to this raffle")

        self.phase = snapshot.phase.value
        prize = snapshot.prize
        self.prize_asset_id = prize.asset_id if prize else None
        self.prize_token_id = prize.token_id if prize else None
        self.total_entries = snapshot.total_entries
        self.fee_pool_balance = snapshot.fee_pool_balance
        self.cycle = snapshot.cycle

        _sync_rows(session, self.entries, snapshot.entries, RaffleEntry, "entry_count")
        _sync_rows(
            session, self.refund_balances, snapshot.refund_balances, RefundBalance, "amount"
        )
        self.updated_at = datetime.now(timezone.utc)
        session.flush()

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "operator": self.operator,
            "entry_fee": self.entry_fee,
            "phase": self.phase,
            "prize_asset_id": self.prize_asset_id,
            "prize_token_id": self.prize_token_id,
            "total_entries": self.total_entries,
            "fee_pool_balance": self.fee_pool_balance,
            "cycle": self.cycle,
            "entries": {e.participant: e.entry_count for e in self.entries},
            "refund_balances": {r.participant: r.amount for r in self.refund_balances},
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return (
            f"<Raffle(id={self.id}, name={self.name!r}, phase='{self.phase}', "
            f"cycle={self.cycle}, total_entries={self.total_entries})>"
        )


def _sync_rows(session, rows, pairs, row_cls, value_attr: str) -> None:
    """Reconcile ``rows`` (a relationship list) with ordered ``pairs``."""
    wanted = dict(pairs)
    for row in list(rows):
        if row.participant not in wanted:
            # delete-orphan cascade removes the row on flush
            rows.remove(row)
    # Deletes must reach the DB before a participant is inserted again.
    session.flush()

    existing = {row.participant: row for row in rows}
    for position, (participant, value) in enumerate(pairs):
        row = existing.get(participant)
        if row is None:
            row = row_cls(participant=participant, position=position)
            rows.append(row)
        setattr(row, value_attr, value)
        row.position = position


class RaffleEntry(Base):
    """Entries one participant holds in the current cycle of a raffle."""

    __tablename__ = "raffle_entries"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    raffle_id: Mapped[int] = mapped_column(
        ForeignKey("raffles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant: Mapped[str] = mapped_column(String(255), nullable=False)
    entry_count: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Order of the participant's first purchase in this cycle."""

    raffle: Mapped["Raffle"] = relationship(back_populates="entries")

    __table_args__ = (
        UniqueConstraint("raffle_id", "participant", name="uq_raffle_entry_participant"),
        CheckConstraint("entry_count > 0", name="entry_count_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<RaffleEntry(raffle_id={self.raffle_id}, participant={self.participant!r}, "
            f"entry_count={self.entry_count})>"
        )


class RefundBalance(Base):
    """Funds a raffle owes back to a participant."""

    __tablename__ = "raffle_refund_balances"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    raffle_id: Mapped[int] = mapped_column(
        ForeignKey("raffles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    raffle: Mapped["Raffle"] = relationship(back_populates="refund_balances")

    __table_args__ = (
        UniqueConstraint("raffle_id", "participant", name="uq_raffle_refund_participant"),
        CheckConstraint("amount > 0", name="amount_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<RefundBalance(raffle_id={self.raffle_id}, participant={self.participant!r}, "
            f"amount={self.amount})>"
        )
