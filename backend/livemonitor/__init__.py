"""
Wikipedia Live Monitor
======================

Detects breaking news candidates by clustering live Wikipedia edits across
language editions and scoring each cluster's activity.

ARCHITECTURE:
    IRC feed → feed_parser → MonitorWorker → ClusterRegistry.apply_event
             → VersionResolver (async) → ClusterRegistry.merge_version
             → social search + diff fetch (async) → classify → DiffAnnotator → sink
    EvictionSweeper runs on a timer against the same registry.

PUBLIC API:
- EditEvent, ArticleCluster: core data types
- ClusterRegistry: cluster state (apply_event, merge_version, evict)
- classify, BreakingNewsThresholds: breaking news heuristic
- EvictionSweeper: idle cluster clean-up
- MonitorWorker: single worker tying it together
"""

from .models import (
    VersionKey,
    DiffRef,
    EditEvent,
    ArticleCluster,
    ChangeRecord,
    EditorEntry,
    make_version_key,
)
from .services.cluster_registry import ClusterRegistry, ClusterUpdateResult
from .services.breaking_news import BreakingNewsThresholds, Classification, classify
from .services.eviction import EvictionSweeper
from .workers.monitor_worker import MonitorWorker

__version__ = "1.0.0"

__all__ = [
    'VersionKey',
    'DiffRef',
    'EditEvent',
    'ArticleCluster',
    'ChangeRecord',
    'EditorEntry',
    'make_version_key',
    'ClusterRegistry',
    'ClusterUpdateResult',
    'BreakingNewsThresholds',
    'Classification',
    'classify',
    'EvictionSweeper',
    'MonitorWorker',
]
