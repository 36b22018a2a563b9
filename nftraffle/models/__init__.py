from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .raffle import Raffle, RaffleEntry, RefundBalance  # noqa: F401
from .draw import RaffleDraw  # noqa: F401
from .chain import BlockchainTransaction  # noqa: F401

__all__ = [
    "Base",
    "Raffle",
    "RaffleEntry",
    "RefundBalance",
    "RaffleDraw",
    "BlockchainTransaction",
]
