"""Interfaces of the external systems the raffle hands work to.

Both collaborators report success with a truthy return value. A falsy return
or any exception is treated as a failed transfer and the calling operation is
rolled back.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .state import PrizeReference


@runtime_checkable
class ValueTransfer(Protocol):
    """Moves ``amount`` units of the entry currency to ``recipient``."""

    def send(self, recipient: str, amount: int) -> bool: ...


@runtime_checkable
class AssetRegistry(Protocol):
    """Transfers custody of the prize NFT to ``recipient``."""

    def transfer(self, prize: PrizeReference, recipient: str) -> bool: ...


__all__ = ["ValueTransfer", "AssetRegistry"]
