import logging
from typing import Dict, Optional

from statuswatch.abstractions.result_cache import ResultCache
from statuswatch.contracts.probe_result import CacheEntry, ProbeResult

logger = logging.getLogger(__name__)


class InMemoryResultCache(ResultCache):
    """
    Process-local result cache. Entries are overwritten on every probe and never
    swept; stale entries stay until the next probe of the same id replaces them.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, target_id: str) -> Optional[CacheEntry]:
        return self._entries.get(target_id)

    def put(self, target_id: str, result: ProbeResult, ttl_ms: int) -> CacheEntry:
        entry = CacheEntry(result=result, expires_at_ms=result.checked_at_ms + ttl_ms)
        self._entries[target_id] = entry
        logger.debug(f"Cached {result.status.value} for {target_id} until {entry.expires_at_ms}")
        return entry

    def __len__(self) -> int:
        return len(self._entries)
