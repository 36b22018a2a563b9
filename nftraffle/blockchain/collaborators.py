"""Raffle collaborators backed by the wallet service.

Every transfer attempt is recorded as a
:class:`~nftraffle.models.chain.BlockchainTransaction`. Network errors and
responses without a ``transaction_id`` are reported to the state machine as a
failed transfer (``False``) so it can roll the operation back. Once the
wallet has returned a ``transaction_id`` the transfer counts as done; the
audit row is written in a savepoint and a failure to write it is only logged.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.chain import BlockchainTransaction
from ..raffle.state import PrizeReference

if TYPE_CHECKING:
    from ..models.raffle import Raffle
    from .api import ChainClient

logger = logging.getLogger(__name__)


class _ChainCollaborator:
    def __init__(
        self,
        session: Session,
        raffle: Optional["Raffle"] = None,
        client: Optional["ChainClient"] = None,
    ) -> None:
        self.session = session
        self.raffle = raffle
        self._client = client

    @property
    def client(self) -> "ChainClient":
        # Created on first use so operations without transfers never log in.
        if self._client is None:
            from .api import ChainClient

            self._client = ChainClient()
        return self._client

    def _record(
        self,
        *,
        type_: str,
        recipient: str,
        request_payload: dict[str, Any],
        response: Any,
        amount: Optional[int] = None,
        prize: Optional[PrizeReference] = None,
    ) -> bool:
        tx_hash = response.get("transaction_id") if isinstance(response, dict) else None
        status = "sent" if tx_hash else "failed"
        now = datetime.now(timezone.utc)
        tx = BlockchainTransaction(
            raffle_id=self.raffle.id if self.raffle is not None else None,
            recipient_paymail=recipient,
            type=type_,
            status=status,
            amount=amount,
            prize_asset_id=prize.asset_id if prize else None,
            prize_token_id=prize.token_id if prize else None,
            tx_hash=tx_hash,
            request_payload_json=json.dumps(request_payload, ensure_ascii=False),
            response_payload_json=(
                json.dumps(response, ensure_ascii=False, default=str)
                if response is not None
                else None
            ),
            created_at=now,
            confirmed_at=now if tx_hash else None,
        )
        # Audit write failures never change the transfer outcome.
        try:
            with self.session.begin_nested():
                self.session.add(tx)
        except SQLAlchemyError as exc:
            logger.error(
                f"Could not record {type_} to {recipient} "
                f"(status={status}, tx_hash={tx_hash}): {exc}"
            )
        return tx_hash is not None


class ChainValueTransfer(_ChainCollaborator):
    """Pays fee and refund withdrawals out of the operator wallet."""

    def send(self, recipient: str, amount: int) -> bool:
        payload = {"recipient_paymail": recipient, "amount": amount}
        try:
            response: Any = self.client.send_payment(recipient, amount)
        except requests.RequestException as exc:
            logger.warning(f"Payment of {amount} to {recipient} failed: {exc}")
            response = {"error": str(exc)}
        ok = self._record(
            type_="payout",
            recipient=recipient,
            request_payload=payload,
            response=response,
            amount=amount,
        )
        if ok:
            logger.info(f"Paid {amount} to {recipient}")
        return ok


class ChainAssetRegistry(_ChainCollaborator):
    """Delivers the prize NFT from the operator wallet to the winner."""

    def transfer(self, prize: PrizeReference, recipient: str) -> bool:
        payload = {
            "asset_id": prize.asset_id,
            "token_id": prize.token_id,
            "recipient_paymail": recipient,
        }
        try:
            response: Any = self.client.transfer_nft(
                prize.asset_id, prize.token_id, recipient
            )
        except requests.RequestException as exc:
            logger.warning(f"Transfer of prize {prize} to {recipient} failed: {exc}")
            response = {"error": str(exc)}
        ok = self._record(
            type_="prize_transfer",
            recipient=recipient,
            request_payload=payload,
            response=response,
            prize=prize,
        )
        if ok:
            logger.info(f"Prize {prize} sent to {recipient}")
        return ok


__all__ = ["ChainValueTransfer", "ChainAssetRegistry"]
