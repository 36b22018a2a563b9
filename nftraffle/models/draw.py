"""History of completed winner selections."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .id_type import AMOUNT_TYPE, ID_TYPE
from ..db.utils import dt_iso
from ..raffle.randomness import DrawProof
from ..raffle.state import DrawRecord, PrizeReference

if TYPE_CHECKING:
    from .raffle import Raffle


class RaffleDraw(Base):
    """Winner of one raffle cycle and the data needed to audit the draw."""

    __tablename__ = "raffle_draws"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    raffle_id: Mapped[int] = mapped_column(
        ForeignKey("raffles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cycle: Mapped[int] = mapped_column(Integer, nullable=False)
    winner: Mapped[str] = mapped_column(String(255), nullable=False)
    prize_asset_id: Mapped[str] = mapped_column(String(255), nullable=False)
    prize_token_id: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    winning_index: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    """Zero-based index of the winning entry."""

    total_entries: Mapped[int] = mapped_column(AMOUNT_TYPE, nullable=False)
    participant_count: Mapped[int] = mapped_column(Integer, nullable=False)
    proof_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Serialized :class:`DrawProof` when a provably fair source was used."""

    drawn_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    raffle: Mapped["Raffle"] = relationship(back_populates="draws")

    __table_args__ = (
        UniqueConstraint("raffle_id", "cycle", name="uq_raffle_draw_cycle"),
    )

    @classmethod
    def from_record(cls, raffle: "Raffle", record: DrawRecord) -> "RaffleDraw":
        return cls(
            raffle=raffle,
            cycle=record.cycle,
            winner=record.winner,
            prize_asset_id=record.prize.asset_id,
            prize_token_id=record.prize.token_id,
            winning_index=record.winning_index,
            total_entries=record.total_entries,
            participant_count=record.participant_count,
            proof_json=(
                json.dumps(record.proof.to_dict()) if record.proof is not None else None
            ),
        )

    @property
    def prize(self) -> PrizeReference:
        return PrizeReference(self.prize_asset_id, self.prize_token_id)

    @property
    def proof(self) -> Optional[DrawProof]:
        if not self.proof_json:
            return None
        return DrawProof.from_dict(json.loads(self.proof_json))

    def to_json(self) -> dict[str, Any]:
        return {
            "raffle_id": self.raffle_id,
            "cycle": self.cycle,
            "winner": self.winner,
            "prize_asset_id": self.prize_asset_id,
            "prize_token_id": self.prize_token_id,
            "winning_index": self.winning_index,
            "total_entries": self.total_entries,
            "participant_count": self.participant_count,
            "proof": json.loads(self.proof_json) if self.proof_json else None,
            "drawn_at": dt_iso(self.drawn_at),
        }

    def __repr__(self) -> str:
        return (
            f"<RaffleDraw(raffle_id={self.raffle_id}, cycle={self.cycle}, "
            f"winner={self.winner!r}, prize={self.prize_asset_id}#{self.prize_token_id})>"
        )
