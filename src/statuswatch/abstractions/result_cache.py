from abc import ABC, abstractmethod
from typing import Optional

from statuswatch.contracts.probe_result import CacheEntry, ProbeResult


class ResultCache(ABC):
    """
    Abstract base class for probe result caches.
    """

    @abstractmethod
    def get(self, target_id: str) -> Optional[CacheEntry]:
        """
        Return the last entry stored for a target, fresh or not.

        Args:
            target_id (str): The caller-supplied target id.

        Returns:
            Optional[CacheEntry]: The stored entry, or None if the id was never probed.
        """

    @abstractmethod
    def put(self, target_id: str, result: ProbeResult, ttl_ms: int) -> CacheEntry:
        """
        Store a result for a target, replacing any previous entry.

        Args:
            target_id (str): The caller-supplied target id.
            result (ProbeResult): The freshly probed result.
            ttl_ms (int): Lifetime of the entry, counted from result.checked_at_ms.

        Returns:
            CacheEntry: The stored entry.
        """

    @abstractmethod
    def __len__(self) -> int:
        """
        Return the number of target ids held by the cache.
        """
