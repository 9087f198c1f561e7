from .fetcher import Fetcher
from .snapshot import Snapshot

__all__ = ["Fetcher", "Snapshot"]
