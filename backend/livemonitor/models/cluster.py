"""
ArticleCluster - all language versions of one subject, tracked as one unit

A cluster is indexed by its canonical key: the VersionKey first observed for
the subject. It keeps rolling edit statistics that the breaking news
classifier reads:

- occurrences / last_edit_at
- trailing edit intervals (ring buffer, see ClusterRegistry)
- editors, deduplicated by bare username across languages
- per-language edit counts
- the recent change records, keyed by observation timestamp
"""
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Set

from .edit_event import DiffRef, EditEvent, VersionKey, display_title


@dataclass
class EditorEntry:
    """
    One editor of a cluster.

    The same user editing in several languages is one entry whose language
    list widens, most recent language first.
    """
    username: str
    languages: List[str] = field(default_factory=list)

    def add_language(self, language: str):
        if language in self.languages:
            self.languages.remove(language)
        self.languages.insert(0, language)

    @property
    def label(self) -> str:
        """Editor in feed notation, e.g. "fr,en:Johanna-Hypatia" """
        return f"{','.join(self.languages)}:{self.username}"


@dataclass
class ChangeRecord:
    """A single edit as stored on its cluster"""
    language: str
    editor: str
    delta_bytes: int
    diff_ref: Optional[DiffRef] = None
    diff_url: str = ""
    diff_text: Optional[str] = None
    concepts: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'diffUrl': self.diff_url,
            'delta': self.delta_bytes,
            'language': self.language,
            'editor': f"{self.language}:{self.editor}",
        }
        if self.diff_text is not None:
            data['diffText'] = self.diff_text
        if self.concepts is not None:
            data['namedEntities'] = list(self.concepts)
        return data


@dataclass
class ArticleCluster:
    """Rolling edit statistics for one subject"""
    key: VersionKey
    created_at: int
    last_edit_at: int
    occurrences: int = 1
    intervals: Deque[int] = field(default_factory=deque)
    editors: List[EditorEntry] = field(default_factory=list)
    language_counts: Dict[str, int] = field(default_factory=dict)
    known_versions: Set[VersionKey] = field(default_factory=set)
    changes: "OrderedDict[int, ChangeRecord]" = field(default_factory=OrderedDict)

    @classmethod
    def bootstrap(
        cls,
        key: VersionKey,
        event: EditEvent,
        change: ChangeRecord,
        interval_window: int,
    ) -> "ArticleCluster":
        """Create a cluster from its first observed edit"""
        now = event.observed_at_millis
        cluster = cls(
            key=key,
            created_at=now,
            last_edit_at=now,
            intervals=deque(maxlen=interval_window),
            editors=[EditorEntry(username=event.editor, languages=[event.language])],
            language_counts={event.language: 1},
            known_versions={key},
        )
        cluster.changes[now] = change
        return cluster

    def record_edit(self, event: EditEvent, change: ChangeRecord, max_changes: int) -> int:
        """
        Fold a follow-up edit into the statistics.

        Returns the key the change is stored under: the observation time,
        moved forward a millisecond at a time past changes already stored.
        """
        now = event.observed_at_millis
        self.occurrences += 1
        self.known_versions.add(event.version_key)
        # Out-of-order timestamps never produce negative gaps
        self.intervals.append(max(0, now - self.last_edit_at))
        self.last_edit_at = max(self.last_edit_at, now)

        stamp = now
        while stamp in self.changes:
            stamp += 1
        self.changes[stamp] = change
        while len(self.changes) > max_changes:
            self.changes.popitem(last=False)

        self.language_counts[event.language] = self.language_counts.get(event.language, 0) + 1
        self.upsert_editor(event.editor, event.language)
        return stamp

    def upsert_editor(self, username: str, language: str) -> EditorEntry:
        for entry in self.editors:
            if entry.username == username:
                entry.add_language(language)
                return entry
        entry = EditorEntry(username=username, languages=[language])
        self.editors.append(entry)
        return entry

    def idle_millis(self, now: int) -> int:
        return now - self.last_edit_at

    @property
    def search_terms(self) -> List[str]:
        """Display titles of every known version, canonical first, deduplicated"""
        terms = [display_title(self.key)]
        for version in sorted(self.known_versions):
            title = display_title(version)
            if title not in terms:
                terms.append(title)
        return terms

    def to_snapshot(self) -> Dict[str, Any]:
        """JSON-ready view of the cluster, as written to the output sink"""
        return {
            'title': self.key,
            'timestamp': self.last_edit_at,
            'occurrences': self.occurrences,
            'intervals': list(self.intervals),
            'editors': [entry.label for entry in self.editors],
            'languages': dict(self.language_counts),
            'versions': sorted(self.known_versions),
            'changes': {str(ts): change.to_dict() for ts, change in self.changes.items()},
        }

    def __repr__(self):
        return (
            f"<ArticleCluster {self.key}: {self.occurrences} edits, "
            f"{len(self.editors)} editors, {len(self.known_versions)} versions>"
        )
