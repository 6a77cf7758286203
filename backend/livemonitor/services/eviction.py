"""
EvictionSweeper - periodic clean-up of idle clusters

Called regularly like a garbage collector: every cluster whose last edit is
older than the idle threshold is evicted together with its version mappings.
This is the only place cluster memory is freed, so every sweep visits every
cluster. Lookup caches handed to the sweeper lose their expired entries on
the same pass.
"""
import asyncio
import logging
import time
from typing import Callable, Iterable, List, Optional

from .cache import SimpleCache
from .cluster_registry import ClusterRegistry
from ..models.edit_event import VersionKey

logger = logging.getLogger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


class EvictionSweeper:

    def __init__(
        self,
        registry: ClusterRegistry,
        idle_seconds: float = 240,
        interval_seconds: float = 10,
        clock: Callable[[], int] = now_millis,
        caches: Iterable[SimpleCache] = (),
    ):
        self.registry = registry
        self.caches = list(caches)
        self.idle_millis = int(idle_seconds * 1000)
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.running = False
        self.sweeps = 0
        self.evicted_total = 0

    def sweep(self, now: Optional[int] = None) -> List[VersionKey]:
        """Evict every cluster idle for longer than the threshold"""
        now = self.clock() if now is None else now
        evicted = []
        for key in self.registry:
            cluster = self.registry.get(key)
            if cluster is not None and cluster.idle_millis(now) > self.idle_millis:
                self.registry.evict(key)
                evicted.append(key)

        for cache in self.caches:
            cache.cleanup_expired()

        self.sweeps += 1
        self.evicted_total += len(evicted)
        if evicted:
            logger.debug(
                f"🧹 Swept {len(evicted)} idle clusters. "
                f"Clusters left: {len(self.registry)}"
            )
        return evicted

    async def run(self):
        """Sweep every `interval_seconds` until stopped"""
        self.running = True
        logger.info(
            f"🧹 Eviction sweeper started (every {self.interval_seconds}s, "
            f"idle after {self.idle_millis / 1000:.0f}s)"
        )
        while self.running:
            try:
                await asyncio.sleep(self.interval_seconds)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Sweep failed: {e}", exc_info=True)

        logger.info(f"🧹 Eviction sweeper stopped after {self.sweeps} sweeps ({self.evicted_total} evicted)")

    def stop(self):
        self.running = False
