"""
Domain Models - in-memory data structures of the monitor

- EditEvent: one normalized feed notification (immutable)
- ArticleCluster: cross-language statistics for one subject
- ChangeRecord / EditorEntry: parts of a cluster
"""

from .edit_event import (
    VersionKey,
    DiffRef,
    EditEvent,
    normalize_title,
    make_version_key,
    split_version_key,
    display_title,
)
from .cluster import ArticleCluster, ChangeRecord, EditorEntry

__all__ = [
    'VersionKey',
    'DiffRef',
    'EditEvent',
    'normalize_title',
    'make_version_key',
    'split_version_key',
    'display_title',
    'ArticleCluster',
    'ChangeRecord',
    'EditorEntry',
]
