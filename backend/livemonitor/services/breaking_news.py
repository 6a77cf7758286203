"""
Breaking news classification

A cluster is a breaking news candidate when three conditions hold at once:

1. Volume:   it has been edited at least `edit_threshold` times
2. Velocity: none of the last `edit_threshold - 1` gaps between edits
             exceeds `max_gap_millis`
3. Breadth:  at least `min_concurrent_editors` distinct editors took part

Volume and breadth are computed over the whole cluster history, velocity
only over the trailing window of intervals.
"""
from dataclasses import dataclass, field
from typing import List

from ..models.cluster import ArticleCluster


@dataclass(frozen=True)
class BreakingNewsThresholds:
    edit_threshold: int = 5
    max_gap_millis: int = 60 * 1000
    min_concurrent_editors: int = 2

    @classmethod
    def from_settings(cls, settings) -> "BreakingNewsThresholds":
        return cls(
            edit_threshold=settings.breaking_news_threshold,
            max_gap_millis=settings.seconds_between_edits * 1000,
            min_concurrent_editors=settings.number_of_concurrent_editors,
        )


@dataclass
class Classification:
    """Verdict plus the facts it was derived from"""
    is_candidate: bool
    volume: bool
    velocity: bool
    breadth: bool
    occurrences: int
    editor_count: int
    window: List[int] = field(default_factory=list)

    def conditions(self) -> dict:
        return {
            'volume': self.volume,
            'velocity': self.velocity,
            'breadth': self.breadth,
        }


def trailing_window(intervals, edit_threshold: int) -> List[int]:
    """The last `edit_threshold - 1` intervals, or all of them if fewer exist"""
    size = max(edit_threshold - 1, 0)
    if size == 0:
        return []
    values = list(intervals)
    return values[-size:]


def edits_in_short_distances(window: List[int], max_gap_millis: int) -> bool:
    """
    True when every gap in the window is within the limit.

    Scans left to right and stops at the first gap over the limit. An empty
    window holds trivially.
    """
    for interval in window:
        if interval > max_gap_millis:
            return False
    return True


def classify(cluster: ArticleCluster, thresholds: BreakingNewsThresholds) -> Classification:
    """Evaluate the three breaking news conditions on a cluster"""
    window = trailing_window(cluster.intervals, thresholds.edit_threshold)

    volume = cluster.occurrences >= thresholds.edit_threshold
    velocity = edits_in_short_distances(window, thresholds.max_gap_millis)
    breadth = len(cluster.editors) >= thresholds.min_concurrent_editors

    return Classification(
        is_candidate=volume and velocity and breadth,
        volume=volume,
        velocity=velocity,
        breadth=breadth,
        occurrences=cluster.occurrences,
        editor_count=len(cluster.editors),
        window=window,
    )
