"""
CourtListener API client for citation research.
Wraps the v4 search and citation-lookup endpoints and the legacy v3
clusters/opinions endpoints behind one rate-limited HTTP client.
"""

import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from common.config import Config
from common.exceptions import CourtListenerAPIError
from common.http import Deadline, RateLimitedClient
from common.logging import logger
from common.models import CitationSearchQuery


def html_to_text(html: str) -> str:
    """Strip markup and collapse whitespace."""
    if not html:
        return ""
    text = html
    if '<' in text:
        text = BeautifulSoup(text, 'html.parser').get_text(' ')
    return re.sub(r'\s+', ' ', text).strip()


class CourtListenerClient:
    """Client for the CourtListener endpoints used by citation research"""

    def __init__(self, http: Optional[RateLimitedClient] = None,
                 base_url: str = Config.COURTLISTENER_BASE_URL,
                 legacy_base_url: str = Config.COURTLISTENER_LEGACY_BASE_URL):
        self.http = http or RateLimitedClient()
        self.base_url = base_url.rstrip('/')
        self.legacy_base_url = legacy_base_url.rstrip('/')

    async def search(self, query: str, result_type: str = "o", limit: int = 20,
                     status: Optional[str] = "Published",
                     deadline: Optional[Deadline] = None) -> Dict[str, Any]:
        """Full-text search (v4). Returns the raw page with `count` and `results`.

        RECAP searches (`result_type="r"`) pass `status=None` to drop the filter.
        """
        params = {
            'q': query,
            'type': result_type,
            'limit': limit,
            'format': 'json',
        }
        if status:
            params['status'] = status
        logger.info("Full-text search: %s", params)
        data = await self.http.get_json(f"{self.base_url}/search/", params=params, deadline=deadline)
        if not isinstance(data, dict):
            raise CourtListenerAPIError("Unexpected search response shape")
        data.setdefault('results', [])
        return data

    async def citation_lookup(self, text: str,
                              deadline: Optional[Deadline] = None) -> List[Dict[str, Any]]:
        """Resolve the citations found in `text` with the citation-lookup endpoint."""
        logger.info("Citation lookup: %s", text)
        data = await self.http.post_json(
            f"{self.base_url}/citation-lookup/", data={'text': text}, deadline=deadline)
        if isinstance(data, dict):
            # Single-object replies are treated as a one-element list
            data = [data]
        return data or []

    async def search_clusters(self, query: CitationSearchQuery, limit: int = 20,
                              deadline: Optional[Deadline] = None) -> List[Dict[str, Any]]:
        """Legacy structured-field search on the clusters endpoint."""
        params: Dict[str, Any] = {}

        if query.case_name:
            params['case_name'] = query.case_name
        if query.citation:
            params['citation'] = query.citation
        if query.federal_cite_one:
            params['federal_cite_one'] = query.federal_cite_one
        if query.court:
            params['court'] = query.court
        if query.year_start is not None and query.year_end is not None:
            params['date_filed__gte'] = f"{query.year_start}-01-01"
            params['date_filed__lte'] = f"{query.year_end}-12-31"

        params['limit'] = limit
        params['format'] = 'json'

        data = await self.http.get_json(
            f"{self.legacy_base_url}/clusters/", params=params, deadline=deadline)
        if not isinstance(data, dict):
            return []
        return data.get('results') or []

    async def get_cluster(self, cluster_id: Any,
                          deadline: Optional[Deadline] = None) -> Optional[Dict[str, Any]]:
        """Cluster detail, or None when it cannot be fetched."""
        try:
            return await self.http.get_json(
                f"{self.legacy_base_url}/clusters/{cluster_id}/",
                params={'format': 'json'}, deadline=deadline)
        except CourtListenerAPIError as e:
            logger.error("CourtListener cluster details error for %s: %s", cluster_id, e)
            return None

    async def get_opinion(self, opinion_id: Any,
                          deadline: Optional[Deadline] = None) -> Optional[Dict[str, Any]]:
        try:
            return await self.http.get_json(
                f"{self.legacy_base_url}/opinions/{opinion_id}/",
                params={'format': 'json'}, deadline=deadline)
        except CourtListenerAPIError as e:
            logger.error("CourtListener opinion error for %s: %s", opinion_id, e)
            return None

    async def get_opinion_text(self, opinion_id: Any,
                               deadline: Optional[Deadline] = None) -> str:
        """Opinion body as plain text, or "" when unavailable."""
        opinion = await self.get_opinion(opinion_id, deadline=deadline)
        if not opinion:
            return ""
        if opinion.get('plain_text'):
            return opinion['plain_text']
        return html_to_text(opinion.get('html_with_citations') or opinion.get('html') or '')


# Global client instance
courtlistener_client = CourtListenerClient()
