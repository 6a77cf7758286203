"""
ClusterRegistry - owns the article clusters and the version map

The registry:
- Applies edit events to clusters (creating them on first sight)
- Merges language versions reported by the version resolver
- Evicts clusters on request of the sweeper

State:
- clusters:    canonical key -> ArticleCluster
- version_map: VersionKey -> canonical key (absent until resolved; an
               unresolved VersionKey acts as its own canonical key)

Invariants:
- a VersionKey maps to at most one canonical key
- a cluster's known_versions and the version_map entries pointing at it
  stay consistent
- a username appears at most once in a cluster's editors

Known limitation: when edits for a subject arrive under an alias before
its language links are resolved, the alias gets its own cluster. A later
merge redirects future edits (to the older of the two clusters) but does
not combine the two histories.

No method performs I/O or suspends, so under the single-worker model each
call is atomic with respect to the others. Nothing here raises for an
inconsistent request (unknown keys, repeated merges); those are no-ops.
"""
import logging
from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass

from ..models.cluster import ArticleCluster, ChangeRecord
from ..models.edit_event import EditEvent, VersionKey

logger = logging.getLogger(__name__)


@dataclass
class ClusterUpdateResult:
    """Outcome of applying one edit event"""
    key: VersionKey
    version_key: VersionKey
    timestamp: int
    is_new: bool
    cluster: ArticleCluster

    @property
    def change(self) -> ChangeRecord:
        return self.cluster.changes[self.timestamp]


class ClusterRegistry:
    """
    In-memory registry of article clusters.

    Each cluster keeps a ring buffer of its most recent edit intervals; the
    classifier only reads a trailing window, so `interval_window` should be
    at least the breaking news threshold.
    """

    def __init__(self, interval_window: int = 5, max_changes: int = 100):
        self.interval_window = interval_window
        self.max_changes = max_changes

        self.clusters: Dict[VersionKey, ArticleCluster] = {}
        self.version_map: Dict[VersionKey, VersionKey] = {}

        logger.info(
            f"🗂️  ClusterRegistry initialized (interval_window={interval_window}, "
            f"max_changes={max_changes})"
        )

    # =========================================================================
    # Lookups
    # =========================================================================

    def resolve(self, version_key: VersionKey) -> VersionKey:
        """Canonical key for a VersionKey (the key itself when unresolved)"""
        return self.version_map.get(version_key, version_key)

    def get(self, key: VersionKey) -> Optional[ArticleCluster]:
        return self.clusters.get(key)

    def __contains__(self, key: VersionKey) -> bool:
        return key in self.clusters

    def __len__(self) -> int:
        return len(self.clusters)

    def __iter__(self) -> Iterator[VersionKey]:
        return iter(list(self.clusters.keys()))

    # =========================================================================
    # Mutations
    # =========================================================================

    def apply_event(self, event: EditEvent) -> ClusterUpdateResult:
        """
        Fold one edit into the statistics of its cluster.

        An edit for a key without a live cluster (never seen, or evicted
        in the meantime) starts a fresh cluster.
        """
        version_key = event.version_key
        key = self.resolve(version_key)
        now = event.observed_at_millis
        change = ChangeRecord(
            language=event.language,
            editor=event.editor,
            delta_bytes=event.delta_bytes,
            diff_ref=event.diff_ref,
        )

        cluster = self.clusters.get(key)
        if cluster is None:
            if key != version_key:
                # Alias of an evicted cluster: the stale mapping goes too
                self._drop_mapping(version_key, key)
                key = version_key
            cluster = ArticleCluster.bootstrap(key, event, change, self.interval_window)
            self.clusters[key] = cluster
            logger.debug(
                f"✨ First time seen: {key} (editor={event.editor}, language={event.language})"
            )
            return ClusterUpdateResult(
                key=key, version_key=version_key, timestamp=now, is_new=True, cluster=cluster
            )

        if key != version_key:
            logger.debug(f"⚭ Merging {version_key} with {key}")

        stamp = cluster.record_edit(event, change, self.max_changes)
        return ClusterUpdateResult(
            key=key, version_key=version_key, timestamp=stamp, is_new=False, cluster=cluster
        )

    def merge_version(self, new_key: VersionKey, existing_key: VersionKey) -> bool:
        """
        Register `new_key` as another language version of the subject
        tracked at `existing_key`.

        `existing_key` may itself be an alias; one level of indirection is
        followed to the canonical key. When `new_key` is the canonical key of
        an older live cluster, the direction flips and the younger cluster's
        versions are redirected to `new_key`. Returns True when the map changed.
        """
        canonical = self.resolve(existing_key)
        cluster = self.clusters.get(canonical)
        if cluster is None:
            logger.debug(f"Merge of {new_key} into unknown cluster {canonical} ignored")
            return False

        if new_key == canonical or self.version_map.get(new_key) == canonical:
            return False

        # The older of two live clusters stays canonical: the younger one's
        # versions are sent over to it instead
        older = self.clusters.get(new_key)
        if (
            older is not None
            and self.resolve(new_key) == new_key
            and older.created_at < cluster.created_at
        ):
            logger.debug(f"{new_key} predates {canonical}, redirecting {canonical} instead")
            for version in sorted(cluster.known_versions):
                if self.resolve(version) == canonical:
                    self._redirect(version, new_key, older)
            return True

        self._redirect(new_key, canonical, cluster)
        return True

    def _redirect(self, version_key: VersionKey, canonical: VersionKey, cluster: ArticleCluster):
        # The key may belong to another cluster already (as alias or as its
        # own canonical key); it leaves that cluster's versions
        previous = self.resolve(version_key)
        previous_cluster = self.clusters.get(previous)
        if previous_cluster is not None:
            previous_cluster.known_versions.discard(version_key)
            logger.debug(f"Redirecting {version_key} from {previous} to {canonical}")

        self.version_map[version_key] = canonical
        self.version_map.setdefault(canonical, canonical)
        cluster.known_versions.add(version_key)

    def evict(self, key: VersionKey) -> Optional[ArticleCluster]:
        """
        Remove a cluster together with every mapping that resolves to it.

        Mappings that were redirected elsewhere in the meantime are left
        untouched. Returns the removed cluster, or None if there was none.
        """
        cluster = self.clusters.pop(key, None)
        if cluster is None:
            return None

        for version in cluster.known_versions:
            self._drop_mapping(version, key)
        self._drop_mapping(key, key)

        logger.debug(
            f"† No more mentions: {key}. Clusters left: {len(self.clusters)}. "
            f"Mappings left: {len(self.version_map)}"
        )
        return cluster

    def _drop_mapping(self, version_key: VersionKey, key: VersionKey):
        if self.version_map.get(version_key) == key:
            del self.version_map[version_key]

    # =========================================================================
    # Monitoring
    # =========================================================================

    def get_status(self, now: Optional[int] = None) -> dict:
        """Current registry status for monitoring"""
        clusters: List[dict] = []
        for cluster in self.clusters.values():
            summary = {
                'key': cluster.key,
                'occurrences': cluster.occurrences,
                'editors': len(cluster.editors),
                'versions': len(cluster.known_versions),
                'last_edit_at': cluster.last_edit_at,
            }
            if now is not None:
                summary['idle_seconds'] = cluster.idle_millis(now) / 1000
            clusters.append(summary)
        clusters.sort(key=lambda c: c['occurrences'], reverse=True)
        return {
            'cluster_count': len(self.clusters),
            'mapping_count': len(self.version_map),
            'clusters': clusters,
        }

    def __repr__(self):
        return f"<ClusterRegistry: {len(self.clusters)} clusters, {len(self.version_map)} mappings>"
