from .api import ChainClient
from .collaborators import ChainAssetRegistry, ChainValueTransfer

__all__ = ["ChainClient", "ChainAssetRegistry", "ChainValueTransfer"]
