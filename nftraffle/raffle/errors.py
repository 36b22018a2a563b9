"""Failure taxonomy for raffle operations.

Every rejected operation raises one of these. A rejection never leaves a
partial effect behind: the machine state after the exception equals the state
before the call.
"""

from __future__ import annotations

from typing import Optional


class RaffleError(Exception):
    """Base class for every rejected raffle operation."""

    code = "raffle_error"
    default_message = "Raffle operation rejected"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class Unauthorized(RaffleError):
    code = "unauthorized"
    default_message = "Only owner can call this function"


class AlreadyConfigured(RaffleError):
    code = "already_configured"
    default_message = "NFT prize already set"


class NotOpen(RaffleError):
    code = "not_open"
    default_message = "Raffle has not started"


class InvalidEntryCount(RaffleError):
    code = "invalid_entry_count"
    default_message = "Entry count must be a positive integer"


class IncorrectPayment(RaffleError):
    code = "incorrect_payment"
    default_message = "Incorrect amount sent"


class NotStarted(RaffleError):
    code = "not_started"
    default_message = "Raffle has not started"


class StillRunning(RaffleError):
    code = "still_running"
    default_message = "Raffle is still running"


class NoPlayers(RaffleError):
    code = "no_players"
    default_message = "There are no players"


class NoBalance(RaffleError):
    code = "no_balance"
    default_message = "No balance to withdraw"


class InsufficientBalance(RaffleError):
    code = "insufficient_balance"
    default_message = "Insufficient balance"


class InvalidAmount(RaffleError):
    code = "invalid_amount"
    default_message = "Amount must be a positive integer"


class TransferFailed(RaffleError):
    """An external collaborator could not complete a transfer.

    The operation that requested the transfer has been rolled back.
    """

    code = "transfer_failed"
    default_message = "External transfer failed"


class RandomnessError(RaffleError):
    code = "randomness_error"
    default_message = "Random source returned a value out of range"


__all__ = [
    "RaffleError",
    "Unauthorized",
    "AlreadyConfigured",
    "NotOpen",
    "InvalidEntryCount",
    "IncorrectPayment",
    "NotStarted",
    "StillRunning",
    "NoPlayers",
    "NoBalance",
    "InsufficientBalance",
    "InvalidAmount",
    "TransferFailed",
    "RandomnessError",
]
