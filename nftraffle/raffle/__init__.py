"""Core raffle state machine and its supporting types."""

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
    RaffleError,
    RandomnessError,
    StillRunning,
    TransferFailed,
    Unauthorized,
)
from .machine import RaffleStateMachine
from .randomness import (
    DrawProof,
    ProvablyFairRandomSource,
    RandomSource,
    SeededRandomSource,
    SystemRandomSource,
    verify_proof,
)
from .selection import pick_weighted_winner
from .state import DrawRecord, Phase, PrizeReference, RaffleSnapshot

__all__ = [
    "AssetRegistry",
    "ValueTransfer",
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
    "RaffleStateMachine",
    "DrawProof",
    "ProvablyFairRandomSource",
    "RandomSource",
    "SeededRandomSource",
    "SystemRandomSource",
    "verify_proof",
    "pick_weighted_winner",
    "DrawRecord",
    "Phase",
    "PrizeReference",
    "RaffleSnapshot",
]
