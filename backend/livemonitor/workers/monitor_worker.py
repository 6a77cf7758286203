"""
MonitorWorker - the single worker that owns the cluster registry

Every registry mutation happens inside this worker's loop, one message at a
time. Slow lookups run as background tasks and come back as messages:

    EditReceived          → apply event, start lookups
    LanguageLinksResolved → merge the reported versions
    EnrichmentReady       → classify, annotate the diff, emit records

Handlers that run after a lookup re-fetch the cluster by its canonical key;
the registry may have moved on (or evicted the cluster) in the meantime.
Lookups are never cancelled when their cluster is evicted: a late merge
is a no-op and a late enrichment is dropped.
"""
import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import Any, List, Optional, Set, Union

from ..models.edit_event import EditEvent, VersionKey
from ..services.breaking_news import BreakingNewsThresholds, classify
from ..services.cluster_registry import ClusterRegistry, ClusterUpdateResult
from ..services.diff_annotator import DiffAnnotator
from ..services.social_search import NullSocialSearch, SocialNetworkSearch
from ..services.version_resolver import VersionResolver
from ..services.wiki_api import WikiApiClient

logger = logging.getLogger(__name__)


@dataclass
class EditReceived:
    event: EditEvent


@dataclass
class LanguageLinksResolved:
    source_key: VersionKey
    versions: List[VersionKey]


@dataclass
class EnrichmentReady:
    key: VersionKey
    timestamp: int
    diff_html: Optional[str]
    social_results: Any


Message = Union[EditReceived, LanguageLinksResolved, EnrichmentReady]


class MonitorWorker:
    """
    Consumes edit events and lookup results from one queue.

    Collaborators:
    - registry: cluster state (mutated only here)
    - resolver: language versions of an article
    - api: diff bodies
    - social_search: freshness context attached to every record
    - sink: where records go (anything with write(record))
    """

    def __init__(
        self,
        registry: ClusterRegistry,
        resolver: VersionResolver,
        api: WikiApiClient,
        sink,
        thresholds: BreakingNewsThresholds = BreakingNewsThresholds(),
        social_search: Optional[SocialNetworkSearch] = None,
        annotator: Optional[DiffAnnotator] = None,
        discard_bots: bool = True,
        worker_name: str = "monitor",
    ):
        self.registry = registry
        self.resolver = resolver
        self.api = api
        self.sink = sink
        self.thresholds = thresholds
        self.social_search = social_search or NullSocialSearch()
        self.annotator = annotator or DiffAnnotator()
        self.discard_bots = discard_bots
        self.worker_name = worker_name

        self.queue: "asyncio.Queue[Message]" = asyncio.Queue()
        self.tasks: Set[asyncio.Task] = set()
        self.running = False

        self.events_processed = 0
        self.bots_discarded = 0
        self.messages_failed = 0
        self.candidates_seen = 0
        self.records_emitted = 0

    # =========================================================================
    # Inbox
    # =========================================================================

    def submit_event(self, event: EditEvent):
        """Feed callback: queue an edit event"""
        self.queue.put_nowait(EditReceived(event))

    async def start(self, install_signal_handlers: bool = False):
        """Main worker loop"""
        if install_signal_handlers:
            self._setup_signal_handlers()

        self.running = True
        logger.info(f"[{self.worker_name}] Started")

        while self.running:
            try:
                message = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                logger.info(f"[{self.worker_name}] Received cancellation signal")
                break

            await self.process(message)

        await self.stop()
        logger.info(
            f"[{self.worker_name}] Shutting down. Events: {self.events_processed}, "
            f"bots discarded: {self.bots_discarded}, failed: {self.messages_failed}, "
            f"candidates: {self.candidates_seen}, records: {self.records_emitted}"
        )

    async def process(self, message: Message):
        """Handle one message; failures are logged and counted, never raised"""
        try:
            if isinstance(message, EditReceived):
                self.handle_edit(message.event)
            elif isinstance(message, LanguageLinksResolved):
                self.handle_language_links(message)
            elif isinstance(message, EnrichmentReady):
                self.handle_enrichment(message)
            else:
                logger.warning(f"[{self.worker_name}] Unknown message: {message!r}")
        except Exception as e:
            self.messages_failed += 1
            logger.error(f"[{self.worker_name}] Message failed: {e}", exc_info=True)

    async def drain(self):
        """Process queued messages and wait for background lookups until idle"""
        while True:
            while not self.queue.empty():
                await self.process(self.queue.get_nowait())
            if not self.tasks:
                if self.queue.empty():
                    return
                continue
            await asyncio.gather(*list(self.tasks), return_exceptions=True)

    async def stop(self):
        """Stop the loop and cancel in-flight lookups"""
        self.running = False
        for task in list(self.tasks):
            task.cancel()
        if self.tasks:
            await asyncio.gather(*list(self.tasks), return_exceptions=True)
        self.tasks.clear()

    def _setup_signal_handlers(self):
        """Setup graceful shutdown on SIGTERM/SIGINT"""
        def shutdown_handler(signum, frame):
            logger.info(f"[{self.worker_name}] Received signal {signum}, shutting down...")
            self.running = False

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)

    # =========================================================================
    # Handlers
    # =========================================================================

    def handle_edit(self, event: EditEvent) -> Optional[ClusterUpdateResult]:
        if self.discard_bots and event.is_bot:
            self.bots_discarded += 1
            return None

        result = self.registry.apply_event(event)
        result.change.diff_url = self.api.compare_url(event.language, event.diff_ref)
        self.events_processed += 1

        self._spawn(self._lookup_language_links(result.version_key))

        if not result.is_new:
            cluster = result.cluster
            logger.debug(
                f"[ ! ] {cluster.occurrences} times seen: {result.key}. "
                f"Edit intervals: {' '.join(f'{i}ms' for i in cluster.intervals)}. "
                f"Parallel editors: {len(cluster.editors)}. "
                f"Languages: {cluster.language_counts}"
            )
            self._spawn(self._enrich(result.key, result.timestamp, event, cluster.search_terms))
        return result

    def handle_language_links(self, message: LanguageLinksResolved):
        merged = 0
        for version in message.versions:
            if self.registry.merge_version(version, message.source_key):
                merged += 1
        if merged:
            logger.debug(f"⚭ {message.source_key}: merged {merged} language versions")

    def handle_enrichment(self, message: EnrichmentReady) -> List[dict]:
        cluster = self.registry.get(message.key)
        if cluster is None:
            logger.debug(f"Cluster {message.key} evicted before enrichment completed")
            return []

        classification = classify(cluster, self.thresholds)
        if classification.is_candidate:
            self.candidates_seen += 1
            logger.info(
                f"[ ★ ] Breaking news candidate: {cluster.key}. "
                f"{cluster.occurrences} times seen. "
                f"Edit intervals: {' '.join(f'{i}ms' for i in cluster.intervals)}. "
                f"Number of editors: {len(cluster.editors)}. "
                f"Editors: {', '.join(e.label for e in cluster.editors)}. "
                f"Languages: {cluster.language_counts}"
            )

        records = self.annotator.annotate(
            cluster,
            message.timestamp,
            message.diff_html,
            classification,
            message.social_results,
        )
        for record in records:
            self.sink.write(record)
        self.records_emitted += len(records)
        return records

    # =========================================================================
    # Background lookups
    # =========================================================================

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

    async def _lookup_language_links(self, version_key: VersionKey):
        """Merging follows the looked-up key to whatever cluster it belongs to by then"""
        try:
            versions = await self.resolver.resolve(version_key)
        except Exception as e:
            logger.warning(f"Language links lookup failed for {version_key}: {e}")
            return
        if versions:
            self.queue.put_nowait(LanguageLinksResolved(source_key=version_key, versions=versions))

    async def _enrich(self, key: VersionKey, timestamp: int, event: EditEvent, terms: List[str]):
        """Social search and diff fetch run concurrently; emission waits for both"""
        social_results, diff_html = await asyncio.gather(
            self.social_search.search(terms),
            self.api.get_diff(event.language, event.diff_ref),
            return_exceptions=True,
        )
        if isinstance(social_results, Exception):
            logger.warning(f"Social search failed for {key}: {social_results}")
            social_results = {}
        if isinstance(diff_html, Exception):
            logger.warning(f"Diff fetch failed for {key}: {diff_html}")
            diff_html = None

        self.queue.put_nowait(EnrichmentReady(
            key=key,
            timestamp=timestamp,
            diff_html=diff_html,
            social_results=social_results,
        ))
