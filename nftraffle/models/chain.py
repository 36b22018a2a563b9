from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    Integer,
    String,
    DateTime,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
)
from .base import Base
from .id_type import AMOUNT_TYPE

if TYPE_CHECKING:
    from .raffle import Raffle


class BlockchainTransaction(Base):
    """On-chain transfer requested by a raffle.

    One row is written for every attempt, successful or not: prize NFT
    deliveries to winners and payouts of fees or refunds.
    """

    __tablename__ = "blockchain_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    raffle_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("raffles.id", ondelete="SET NULL"), nullable=True
    )
    recipient_paymail: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Optional[int]] = mapped_column(AMOUNT_TYPE, nullable=True)
    prize_asset_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    prize_token_id: Mapped[Optional[int]] = mapped_column(AMOUNT_TYPE, nullable=True)
    tx_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    request_payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    response_payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    raffle: Mapped[Optional["Raffle"]] = relationship(back_populates="chain_txs")

    __table_args__ = (
        CheckConstraint("type IN ('prize_transfer','payout')", name="type_enum"),
        CheckConstraint("status IN ('sent','failed')", name="status_enum"),
        Index("ix_chain_raffle", "raffle_id"),
        Index("ix_chain_status", "status"),
        Index("ix_chain_type_status", "type", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<BlockchainTransaction(id={self.id}, type='{self.type}', "
            f"recipient={self.recipient_paymail}, status='{self.status}', "
            f"created_at={self.created_at})>"
        )
