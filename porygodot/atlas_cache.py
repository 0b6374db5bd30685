"""
Per-run cache of rendered atlases, keyed by tileset pair.

Many maps share the same primary/secondary combination, so each pair is
rendered and written once per run.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple

from .logging_config import get_logger
from .tileset import TilesetPair

logger = get_logger('atlas_cache')


class TilesetPairKey(NamedTuple):
    """Cache key: the primary and secondary tileset labels."""
    primary: str
    secondary: str

    def __str__(self) -> str:
        return f"{self.primary}|{self.secondary}"


@dataclass(frozen=True)
class AtlasCacheEntry:
    """Where a pair's atlases were written and what the resources need to know."""
    ground_filename: str
    overlay_filename: str
    total_positions: int
    has_overlay: bool
    pair: TilesetPair


class AtlasCache:
    """
    Lock-guarded mapping of TilesetPairKey -> AtlasCacheEntry.

    Entries are built under the lock, so a reader never observes a partially
    built entry. A builder that raises leaves no entry behind and the next
    request for that key tries again.
    """

    def __init__(self):
        self._entries: Dict[TilesetPairKey, AtlasCacheEntry] = {}
        self._lock = threading.Lock()

    def get_or_build(
        self,
        key: TilesetPairKey,
        builder: Callable[[], AtlasCacheEntry],
    ) -> AtlasCacheEntry:
        """
        Return the cached entry for `key`, calling `builder` on a miss.

        Exceptions from `builder` propagate to the caller.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                logger.debug(f"Atlas cache hit for {key}")
                return entry

            logger.debug(f"Atlas cache miss for {key}, building")
            entry = builder()
            self._entries[key] = entry
            return entry

    def __contains__(self, key: TilesetPairKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
