"""
VersionResolver - finds the other monitored language versions of an article

Wraps the language links lookup:
- keeps only languages that are monitored (high-volume, plus long tail
  when enabled)
- turns the links into VersionKeys
- caches results for a few minutes; every edit of a busy article would
  otherwise trigger the same lookup again

Failures surface as an empty list, the registry simply does not merge.
"""
import logging
from typing import Iterable, List

from .cache import SimpleCache
from .wiki_api import WikiApiClient
from ..models.edit_event import VersionKey, make_version_key, split_version_key

logger = logging.getLogger(__name__)


class VersionResolver:

    def __init__(
        self,
        api: WikiApiClient,
        monitored_languages: Iterable[str],
        cache: SimpleCache = None,
    ):
        self.api = api
        self.monitored_languages = set(monitored_languages)
        self.cache = cache if cache is not None else SimpleCache(default_ttl=300)
        self.lookups = 0

    async def resolve(self, version_key: VersionKey) -> List[VersionKey]:
        """
        Monitored language versions of the article behind `version_key`.

        The key itself is never part of the result.
        """
        cached = self.cache.get(version_key)
        if cached is not None:
            return list(cached)

        language, title = split_version_key(version_key)
        self.lookups += 1
        links = await self.api.get_language_links(language, title)

        versions = []
        for lang, linked_title in links:
            if lang not in self.monitored_languages:
                continue
            key = make_version_key(lang, linked_title)
            if key != version_key and key not in versions:
                versions.append(key)

        # Failed lookups look like "no links" and are not cached, so a
        # later edit of the same article can retry them
        if links:
            self.cache.set(version_key, versions)
        if versions:
            logger.debug(f"🌐 {version_key}: {len(versions)} language versions")
        return versions
