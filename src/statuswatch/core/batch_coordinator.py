import asyncio
import logging
from typing import Dict, List, Optional

from statuswatch.abstractions.result_cache import ResultCache
from statuswatch.config.config import Config
from statuswatch.contracts.probe_result import ProbeResult
from statuswatch.contracts.target import Target
from statuswatch.core.clock import Clock, epoch_millis
from statuswatch.core.metrics_manager import MetricsManager
from statuswatch.core.prober import Prober

logger = logging.getLogger(__name__)


class BatchCoordinator:
    """
    Resolves a batch of targets into a snapshot of results, serving fresh cache
    entries directly and probing everything else concurrently.
    """

    def __init__(
        self,
        prober: Prober,
        cache: ResultCache,
        ttl_ms: int = Config.CACHE_TTL_MS,
        clock: Clock = epoch_millis,
        metrics_manager: Optional[MetricsManager] = None,
    ):
        self.prober = prober
        self.cache = cache
        self.ttl_ms = ttl_ms
        self.clock = clock
        self.metrics_manager = metrics_manager

    async def resolve_batch(self, targets: List[Target]) -> Dict[str, ProbeResult]:
        """
        Resolve every target in the batch.

        Args:
            targets (List[Target]): Targets to resolve. A repeated id is resolved once,
                using its first occurrence.

        Returns:
            Dict[str, ProbeResult]: Result per target id, cached and fresh combined.
        """
        results: Dict[str, ProbeResult] = {}
        if not targets:
            return results

        now = self.clock()
        misses: Dict[str, Target] = {}
        for target in targets:
            if target.id in results or target.id in misses:
                logger.debug(f"Ignoring repeated target id {target.id}")
                continue
            entry = self.cache.get(target.id)
            if entry is not None and entry.is_fresh(now):
                results[target.id] = entry.result
                if self.metrics_manager:
                    self.metrics_manager.record_cache_hit()
            else:
                misses[target.id] = target
                if self.metrics_manager:
                    self.metrics_manager.record_cache_miss()

        if not misses:
            logger.debug(f"Served {len(results)} targets from cache")
            return results

        tasks = [
            asyncio.create_task(self._probe_and_store(target, results), name=f"probe:{target.id}")
            for target in misses.values()
        ]
        logger.info(f"Probing {len(tasks)} targets ({len(results)} served from cache)")
        await asyncio.wait(tasks)

        # The prober never raises, so anything here is a defect; siblings have already completed
        for task in tasks:
            exc = task.exception()
            if exc is not None:
                logger.error(f"Probe task {task.get_name()} failed unexpectedly", exc_info=exc)
                raise exc
        return results

    async def _probe_and_store(self, target: Target, results: Dict[str, ProbeResult]):
        result = await self.prober.probe(target.url)
        results[target.id] = result
        self.cache.put(target.id, result, self.ttl_ms)
        if self.metrics_manager:
            self.metrics_manager.record_probe(result)
        logger.debug(f"Resolved {target.id} ({target.url}): {result.status.value}")
