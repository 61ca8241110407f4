"""
Custom Search source adapter.

One SearchSource issues one query against one configured search index (cx)
and normalizes the items to SearchHit. A source with no credential or index
returns nothing rather than failing the run; provider-reported errors are
logged and also return nothing. A strict source (the baseline directory)
lets a 4xx rejection through instead, since it means the index or key is
misconfigured. Retry exhaustion always propagates so the orchestrator can
decide whether the source was mandatory.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from leadgen.config import Settings
from leadgen.errors import FatalUpstreamError
from leadgen.models.lead import SearchHit, SourceType
from leadgen.services.retry import with_backoff

logger = logging.getLogger('services.search')

MAX_RESULTS_PER_CALL = 10


class SearchSource:
    """
    Adapter for a single Custom Search index.

    Usage:
        source = SearchSource(api_key, cx, SourceType.DIRECTORY, tier=1)
        hits = source.search('SaaS AND 11-50 AND Austin', 5)
    """

    def __init__(
        self,
        api_key: Optional[str],
        index_id: Optional[str],
        source_type: SourceType,
        tier: int,
        timeout: float = 10.0,
        max_retries: int = 4,
        base_delay: float = 0.5,
        api_url: str = 'https://www.googleapis.com/customsearch/v1',
        session: Optional[requests.Session] = None,
        strict: bool = False,
    ):
        self.api_key = api_key
        self.index_id = index_id
        self.source_type = source_type
        self.tier = tier
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.api_url = api_url
        self.session = session
        self.strict = strict

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.index_id)

    def search(self, query: str, result_count: int = 3) -> List[SearchHit]:
        """Run one query; returns at most MAX_RESULTS_PER_CALL hits."""
        if not self.configured:
            logger.error("Missing search API key or index id for %s", self.source_type.value)
            return []

        num = max(1, min(int(result_count), MAX_RESULTS_PER_CALL))
        params = {
            'key': self.api_key,
            'cx': self.index_id,
            'q': query,
            'num': num,
        }

        http = self.session or requests
        try:
            response = with_backoff(
                lambda: http.get(self.api_url, params=params, timeout=self.timeout),
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                label=f'search[{self.source_type.value}]',
            )
        except FatalUpstreamError as e:
            logger.error("Search rejected (index %s): %s", self.index_id, e.body or e)
            if self.strict:
                raise
            return []

        try:
            data = response.json()
        except ValueError:
            logger.error("Search returned non-JSON body (index %s)", self.index_id)
            return []

        if not isinstance(data, dict):
            return []
        if data.get('error'):
            error = data['error']
            message = error.get('message') if isinstance(error, dict) else error
            logger.error("Search API error (index %s): %s", self.index_id, message)
            return []

        hits = [self._to_hit(item) for item in data.get('items') or []]
        hits = [h for h in hits if h is not None]
        logger.info("%s: %d hits for %r", self.source_type.value, len(hits), query)
        return hits

    def _to_hit(self, item: Dict[str, Any]) -> Optional[SearchHit]:
        if not isinstance(item, dict):
            return None
        title = (item.get('title') or '').strip()
        link = (item.get('link') or '').strip()
        if not title and not link:
            return None
        return SearchHit(
            title=title,
            snippet=(item.get('snippet') or '').strip(),
            link=link,
            tier=self.tier,
            source_type=self.source_type,
        )


# ── Source registry ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SourceSpec:
    """Static description of a specialised search source."""
    source_type: SourceType
    tier: int
    result_count: int
    description: str = ''


SOURCES: Dict[str, SourceSpec] = {
    'directory': SourceSpec(SourceType.DIRECTORY, tier=1, result_count=5,
                            description='Directory and listing sites (baseline)'),
    'pain': SourceSpec(SourceType.PAIN, tier=2, result_count=2,
                       description='Review sites and pain/switching signals'),
    'competitor': SourceSpec(SourceType.COMPETITOR, tier=2, result_count=2,
                             description='Competitor and alternatives pages'),
    'tech': SourceSpec(SourceType.TECH, tier=2, result_count=1,
                       description='Tech stack and investment news'),
}


def build_source(source_key: str, settings: Settings) -> SearchSource:
    """Construct the adapter for a registered source from settings."""
    source_spec = SOURCES.get(source_key)
    if not source_spec:
        raise ValueError(f"No search source registered as '{source_key}'")
    return SearchSource(
        api_key=settings.search_api_key,
        index_id=settings.index_id(source_key),
        source_type=source_spec.source_type,
        tier=source_spec.tier,
        timeout=settings.search_timeout,
        max_retries=settings.max_retries,
        base_delay=settings.base_delay,
        api_url=settings.search_api_url,
        strict=source_spec.tier == 1,
    )
