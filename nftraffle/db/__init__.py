from .engine import get_sessionmaker, make_engine
from .metadata import metadata_obj

__all__ = ["get_sessionmaker", "make_engine", "metadata_obj"]
