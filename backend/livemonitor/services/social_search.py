"""
Social network search collaborator

Given the titles of all language versions of a cluster, returns whatever a
social platform search reports about them. The result is attached to every
emitted record unchanged; the monitor does not interpret it.
"""
import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class SocialNetworkSearch:
    """Base class for social network search backends"""

    async def search(self, terms: List[str]) -> Dict[str, Any]:
        """
        Search for the given article titles.

        Args:
            terms: Display titles (spaces, not underscores), deduplicated

        Returns:
            Results structure, passed through as-is
        """
        raise NotImplementedError(f"{self.__class__.__name__} must implement search()")

    async def close(self):
        pass


class NullSocialSearch(SocialNetworkSearch):
    """Backend used when no social platform is configured"""

    async def search(self, terms: List[str]) -> Dict[str, Any]:
        logger.debug(f"Social search skipped for {len(terms)} terms")
        return {}
