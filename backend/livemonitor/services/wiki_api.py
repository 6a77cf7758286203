"""
WikiApiClient - MediaWiki API lookups used by the monitor

Two calls, both per language edition:

- language links (action=query&prop=langlinks): the other language versions
  of an article, used to cluster versions of one subject
- revision compare (action=compare): the diff table of an edit, used to
  annotate emitted records

Every failure (network error, timeout, non-200, malformed JSON, missing
keys) is logged and mapped to "nothing found". There are no retries.

Usage:
    client = WikiApiClient(user_agent="...")
    links = await client.get_language_links("en", "Juniata_River")
    # Returns: [('de', 'Juniata River'), ('fr', 'Juniata'), ...]
    diff_html = await client.get_diff("en", DiffRef(514659029, 516269072))
    await client.close()
"""
import logging
from typing import List, Optional, Tuple

import httpx

from ..models.edit_event import DiffRef

logger = logging.getLogger(__name__)

DEFAULT_API_URL_TEMPLATE = "https://{language}.wikipedia.org/w/api.php"


class WikiApiClient:

    def __init__(
        self,
        user_agent: str,
        api_url_template: str = DEFAULT_API_URL_TEMPLATE,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url_template = api_url_template
        self.timeout = timeout
        self.headers = {'User-Agent': user_agent}
        self.client = client

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.AsyncClient] = None) -> "WikiApiClient":
        return cls(
            user_agent=settings.user_agent,
            api_url_template=settings.wiki_api_url_template,
            timeout=settings.http_timeout_seconds,
            client=client,
        )

    async def _ensure_client(self):
        """Ensure httpx client exists."""
        if self.client is None or self.client.is_closed:
            self.client = httpx.AsyncClient(headers=self.headers, timeout=self.timeout)

    async def close(self):
        """Close the client."""
        if self.client is not None and not self.client.is_closed:
            await self.client.aclose()

    def api_url(self, language: str) -> str:
        return self.api_url_template.format(language=language)

    def compare_url(self, language: str, diff_ref: Optional[DiffRef]) -> str:
        """Public URL of the compare call for a diff, '' when there is none"""
        if diff_ref is None:
            return ''
        return (
            f"{self.api_url(language)}?action=compare&torev={diff_ref.to_rev}"
            f"&fromrev={diff_ref.from_rev}&format=json"
        )

    async def _get_json(self, language: str, params: dict, what: str) -> Optional[dict]:
        await self._ensure_client()
        try:
            response = await self.client.get(
                self.api_url(language), params=params, headers=self.headers
            )
        except httpx.HTTPError as e:
            logger.warning(f"❌ Wikipedia API error ({what}, {language}): {e}")
            return None

        if response.status_code != 200:
            logger.warning(
                f"❌ Wikipedia API error ({what}, {language}) Status Code: {response.status_code}"
            )
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"❌ Malformed Wikipedia API response ({what}, {language}): {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"❌ Unexpected Wikipedia API payload ({what}, {language})")
            return None
        return data

    async def get_language_links(self, language: str, title: str) -> List[Tuple[str, str]]:
        """
        Other language versions of an article.

        Args:
            language: Language edition of the article (e.g. 'en')
            title: Article title, spaces or underscores

        Returns:
            List of (language, title) pairs, empty on any failure
        """
        data = await self._get_json(
            language,
            {
                'action': 'query',
                'prop': 'langlinks',
                'format': 'json',
                'lllimit': 500,
                'titles': title,
            },
            'langlinks',
        )
        if not data:
            return []

        pages = (data.get('query') or {}).get('pages') or {}
        if not isinstance(pages, dict):
            return []

        links = []
        for page in pages.values():
            for link in page.get('langlinks') or []:
                lang = link.get('lang')
                linked_title = link.get('*') or link.get('title')
                if lang and linked_title:
                    links.append((lang, linked_title))
        return links

    async def get_diff(self, language: str, diff_ref: Optional[DiffRef]) -> Optional[str]:
        """
        Diff table (HTML rows) between two revisions.

        Returns None when there is no diff reference or nothing usable came back.
        """
        if diff_ref is None:
            return None

        data = await self._get_json(
            language,
            {
                'action': 'compare',
                'torev': diff_ref.to_rev,
                'fromrev': diff_ref.from_rev,
                'format': 'json',
            },
            'compare',
        )
        if not data:
            return None

        compare = data.get('compare')
        if not isinstance(compare, dict):
            return None
        body = compare.get('*')
        if not isinstance(body, str) or not body:
            return None
        return body
