"""
DiffAnnotator - turns an edit's diff into output records

For each added line of the diff:
1. extract linked concepts (before cleaning, links are still intact)
2. remove structural noise, then residual markup
3. attach text and concepts to the edit's change record
4. emit one record: cluster snapshot + classification + social results

Lines that are empty before or after cleaning produce nothing.
"""
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from .breaking_news import Classification
from .wiki_markup import extract_wiki_concepts, remove_wiki_markup, remove_wiki_noise
from ..models.cluster import ArticleCluster

logger = logging.getLogger(__name__)


def added_lines(diff_html: str) -> List[str]:
    """Text of every added line in a MediaWiki diff table"""
    soup = BeautifulSoup(diff_html, 'html.parser')
    return [cell.get_text() for cell in soup.select('.diff-addedline')]


class DiffAnnotator:

    def annotate(
        self,
        cluster: ArticleCluster,
        timestamp: int,
        diff_html: Optional[str],
        classification: Classification,
        social_results: Any,
    ) -> List[Dict[str, Any]]:
        """
        Build the output records for the edit stored at `timestamp`.

        Returns an empty list when there is no diff or the change record is
        no longer on the cluster.
        """
        if not diff_html:
            return []
        change = cluster.changes.get(timestamp)
        if change is None:
            logger.debug(f"Change {timestamp} no longer tracked on {cluster.key}")
            return []

        records = []
        for raw in added_lines(diff_html):
            if not raw.strip():
                continue
            concepts = extract_wiki_concepts(raw, change.language)
            text = remove_wiki_markup(remove_wiki_noise(raw))
            if not text:
                continue

            change.diff_text = text
            change.concepts = concepts

            record = cluster.to_snapshot()
            record['isBreakingNewsCandidate'] = classification.is_candidate
            record['breakingNewsConditions'] = classification.conditions()
            record['socialNetworksResults'] = social_results
            records.append(record)

        return records
