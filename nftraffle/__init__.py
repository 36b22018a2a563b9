"""Single-prize NFT raffle with pooled entry fees."""

__version__ = "0.1.0"
