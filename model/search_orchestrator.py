"""
Multi-strategy case search for a parsed citation.

Stages run strictly in order and the first one that yields documents wins:
full-text search, citation lookup, legacy structured search, then a
broadened first-word search. Failures are collected in `errors`, never raised.
Keyword and docket searches share the same client and error handling.
"""

import re
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from common.config import Config
from common.exceptions import CourtListenerAPIError, DeadlineExceeded
from common.http import Deadline
from common.logging import logger
from common.models import (
    CaseDocument,
    CitationSearchQuery,
    DocketHit,
    DocketSearchResults,
    ParsedCitation,
    SearchMode,
    SearchHit,
    SearchResults,
)
from model.citation_parser import citation_components, generate_search_queries
from model.courtlistener_client import CourtListenerClient, courtlistener_client
from model.normalizer import (
    normalize_cluster,
    normalize_docket_hit,
    normalize_lookup_result,
    normalize_search_hit,
)

UPSTREAM_ERRORS = (CourtListenerAPIError, httpx.HTTPError, ValidationError)

PARTY_SEPARATOR = re.compile(r'\s+v(?:s)?\.?\s+', re.IGNORECASE)
DOCUMENT_ID_V4 = re.compile(r'^cl-v4-(\d+)(?:-.*)?$')
DOCUMENT_ID_OPINION = re.compile(r'^cl-(\d+)-(\d+)$')
DOCUMENT_ID_CLUSTER = re.compile(r'^cl-(\d+)-(?:cluster|unknown-\d+)$')
DOCKET_RESULT_LIMIT = 50

Stage = Tuple[List[CaseDocument], int]


def party_names(case_name: str) -> List[str]:
    if not case_name:
        return []
    parties = [p.strip(' ,') for p in PARTY_SEPARATOR.split(case_name)]
    if len(parties) < 2:
        return []
    return [p for p in parties if p]


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(v for v in values if v.strip('" ')))


def build_fulltext_queries(citation: ParsedCitation, mode: SearchMode = SearchMode.EXACT) -> List[str]:
    """Full-text query strings for a citation, strictest first.

    `exact` keeps to quoted variants, `related` adds party names and a
    same-court variant, `comprehensive` also adds unquoted variants.
    """
    mode = SearchMode(mode)
    components = citation_components(citation)
    case_name = citation.case_name

    queries = [f'"{citation.full_citation}"']
    if components:
        queries.append(f'"{components}"')
    if case_name:
        queries.append(f'"{case_name}"')

    if mode in (SearchMode.RELATED, SearchMode.COMPREHENSIVE):
        queries.extend(f'"{party}"' for party in party_names(case_name))
        if citation.court and case_name:
            queries.append(f'"{case_name}" {citation.court}')

    if mode == SearchMode.COMPREHENSIVE:
        if case_name:
            queries.append(case_name)
            queries.append(re.sub(r'\bv\.', 'v', case_name))
        if components:
            queries.append(components)

    return _unique(queries)


def build_legacy_queries(citation: ParsedCitation) -> List[CitationSearchQuery]:
    """Structured queries for the clusters endpoint.

    The generated query order is kept; the federal-cite and dotless
    reporter variants are tried right after the plain citation query.
    """
    queries = generate_search_queries(citation)
    components = citation_components(citation)
    if not components:
        return queries

    variants = [CitationSearchQuery(federal_cite_one=components)]
    dotless = f"{citation.volume} {citation.reporter.replace('.', '')} {citation.page}"
    if dotless != components:
        variants.append(CitationSearchQuery(citation=dotless))

    position = next(
        (i + 1 for i, q in enumerate(queries) if q.citation == components and not q.case_name),
        len(queries))
    return queries[:position] + variants + queries[position:]


def build_keyword_strategies(query: str, mode: SearchMode = SearchMode.COMPREHENSIVE) -> List[Tuple[str, str]]:
    """(name, query) pairs for a free-text keyword search."""
    mode = SearchMode(mode)
    strategies = [('exact_phrase', f'"{query}"')]
    if mode == SearchMode.EXACT:
        return strategies

    strategies.append(('all_terms', query))
    min_length = 3 if mode == SearchMode.RELATED else 2
    if ' ' in query:
        strategies.extend(
            (f"term_{word}", word) for word in query.split() if len(word) > min_length)

    if mode == SearchMode.COMPREHENSIVE and ('v.' in query or ' v ' in query):
        strategies.append(('case_name_variation', query.replace('v.', 'v')))
    return strategies


def build_docket_strategies(docket_number: str,
                            mode: SearchMode = SearchMode.EXACT) -> List[Tuple[str, str]]:
    """(name, query) pairs for a RECAP docket search.

    `exact_docket` targets the docketNumber field; every other strategy is a
    quoted full-text phrase. Strategies whose query repeats an earlier one
    are dropped.
    """
    mode = SearchMode(mode)
    docket = docket_number.strip()
    terms = [('exact_docket', None)]
    if mode != SearchMode.EXACT:
        terms.append(('docket_in_text', docket))
        if mode == SearchMode.COMPREHENSIVE:
            terms.append(('quoted_docket', docket))
        if '-' in docket:
            terms.append(('docket_spaced', docket.replace('-', ' ')))
            terms.append(('docket_no_dash', docket.replace('-', '')))
        if mode == SearchMode.COMPREHENSIVE and 'no.' in docket.lower():
            terms.append(('without_no_prefix', re.sub(r'no\.\s*', '', docket.lower())))
        number = re.search(r'\d+', docket)
        if number:
            terms.append(('case_number_only', number.group(0)))

    strategies = []
    seen = set()
    for name, term in terms:
        query = f'docketNumber:"{docket}"' if term is None else f'"{term.strip()}"'
        if query not in seen:
            seen.add(query)
            strategies.append((name, query))
    return strategies


def _count(data: Dict[str, Any], hits: List[Any]) -> int:
    count = data.get('count')
    return count if isinstance(count, int) else len(hits)


def _dedupe(documents: List[CaseDocument]) -> List[CaseDocument]:
    seen = set()
    unique = []
    for document in documents:
        if document.id not in seen:
            seen.add(document.id)
            unique.append(document)
    return unique


class CitationSearchOrchestrator:
    """Runs the citation search cascade against CourtListener."""

    def __init__(self, client: Optional[CourtListenerClient] = None,
                 max_documents: int = Config.MAX_DOCUMENTS,
                 search_timeout: float = Config.SEARCH_TIMEOUT,
                 clock: Callable[[], float] = time.monotonic):
        self.client = client or courtlistener_client
        self.max_documents = max_documents
        self.search_timeout = search_timeout
        self._clock = clock

    def _deadline(self, timeout: Optional[float]) -> Deadline:
        return Deadline(timeout or self.search_timeout, clock=self._clock)

    async def search(self, citation: ParsedCitation, mode: SearchMode = SearchMode.EXACT,
                     timeout: Optional[float] = None) -> SearchResults:
        mode = SearchMode(mode)
        deadline = self._deadline(timeout)
        errors: List[str] = []
        legacy_queries = build_legacy_queries(citation)

        logger.info("Searching CourtListener for: '%s' (mode: %s)", citation.full_citation, mode.value)

        stages = [
            ('full_text', lambda: self._full_text_stage(citation, mode, deadline, errors)),
            ('citation_lookup', lambda: self._lookup_stage(citation, deadline, errors)),
            ('legacy', lambda: self._legacy_stage(legacy_queries, deadline, errors)),
            ('broad', lambda: self._broad_stage(citation, deadline, errors)),
        ]

        documents: List[CaseDocument] = []
        total_found = 0
        strategy = None
        try:
            for name, stage in stages:
                documents, total_found = await stage()
                if documents:
                    strategy = name
                    logger.info("Stage '%s' returned %d documents", name, len(documents))
                    break
        except DeadlineExceeded as e:
            logger.warning("Search for '%s' stopped: %s", citation.full_citation, e)
            errors.append(f"Search stopped before completion: {e}")

        if not documents:
            errors.append(
                f'No results found for "{citation.full_citation}". '
                "This case may not be in CourtListener's database.")

        documents = _dedupe(documents)[:self.max_documents]
        logger.info("Final result: %d documents from %d results", len(documents), total_found)

        return SearchResults(
            documents=documents,
            total_found=total_found,
            search_queries=legacy_queries,
            errors=errors,
            strategy=strategy,
        )

    async def _full_text_stage(self, citation: ParsedCitation, mode: SearchMode,
                               deadline: Deadline, errors: List[str]) -> Stage:
        for query in build_fulltext_queries(citation, mode):
            try:
                data = await self.client.search(query, deadline=deadline)
                hits = data.get('results') or []
                documents = [normalize_search_hit(hit) for hit in hits]
            except UPSTREAM_ERRORS as e:
                logger.error("Full-text search failed for %s: %s", query, e)
                errors.append(f"Full-text search error ({query}): {e}")
                continue
            if documents:
                return documents, _count(data, hits)
        return [], 0

    async def _lookup_stage(self, citation: ParsedCitation, deadline: Deadline,
                            errors: List[str]) -> Stage:
        if not citation.full_citation:
            return [], 0
        try:
            results = await self.client.citation_lookup(citation.full_citation, deadline=deadline)
            documents = []
            total = 0
            for result in results:
                found = normalize_lookup_result(result)
                documents.extend(found)
                total += len(result.get('clusters') or []) if found else 0
        except UPSTREAM_ERRORS as e:
            logger.error("Citation lookup failed: %s", e)
            errors.append(f"Citation lookup error: {e}")
            return [], 0
        return documents, total

    async def _cluster_detail(self, cluster: Dict[str, Any], deadline: Deadline) -> Dict[str, Any]:
        if cluster.get('sub_opinions') or cluster.get('id') is None:
            return cluster
        logger.info("Fetching detailed cluster info for ID: %s", cluster['id'])
        try:
            detailed = await self.client.get_cluster(cluster['id'], deadline=deadline)
        except httpx.HTTPError as e:
            logger.error("Cluster detail fetch failed for %s: %s", cluster['id'], e)
            detailed = None
        return detailed or cluster

    async def _legacy_stage(self, queries: List[CitationSearchQuery], deadline: Deadline,
                            errors: List[str]) -> Stage:
        for query in queries:
            logger.info("Trying search strategy: %s", query.model_dump(exclude_none=True))
            try:
                clusters = await self.client.search_clusters(query, limit=20, deadline=deadline)
                documents = []
                for cluster in clusters:
                    detailed = await self._cluster_detail(cluster, deadline)
                    documents.extend(normalize_cluster(detailed))
            except UPSTREAM_ERRORS as e:
                logger.error("Search strategy failed: %s", e)
                errors.append(f"Search error: {e}")
                continue

            if clusters:
                logger.info("Found %d clusters with %s", len(clusters), query.model_dump(exclude_none=True))
                return documents, len(clusters)
        return [], 0

    async def _broad_stage(self, citation: ParsedCitation, deadline: Deadline,
                           errors: List[str]) -> Stage:
        if not citation.case_name:
            return [], 0
        first_word = citation.case_name.split()[0]
        logger.info("No results found, trying broad search for: %s", first_word)
        try:
            clusters = await self.client.search_clusters(
                CitationSearchQuery(case_name=first_word), limit=10, deadline=deadline)
            documents = []
            for cluster in clusters:
                documents.extend(normalize_cluster(cluster))
        except UPSTREAM_ERRORS as e:
            logger.error("Broad search failed: %s", e)
            errors.append(f"Broad search error: {e}")
            return [], 0

        if documents:
            errors.append(
                f'No exact matches found for "{citation.full_citation}". '
                f'Showing cases containing "{first_word}".')
        return documents, len(clusters)

    async def search_keywords(self, query: str, mode: SearchMode = SearchMode.COMPREHENSIVE,
                              timeout: Optional[float] = None) -> SearchResults:
        """Free-text search over case law, de-duplicated by cluster."""
        mode = SearchMode(mode)
        deadline = self._deadline(timeout)
        strategies = build_keyword_strategies(query, mode)
        documents: List[CaseDocument] = []
        seen_clusters = set()
        total_found = 0
        errors: List[str] = []

        try:
            for name, strategy_query in strategies[:3]:
                logger.info("Trying keyword strategy: %s - '%s'", name, strategy_query)
                try:
                    data = await self.client.search(strategy_query, limit=10, deadline=deadline)
                    hits = [SearchHit.model_validate(hit) for hit in data.get('results') or []]
                    # Hits with a substantial snippet first
                    hits.sort(key=lambda h: len(h.snippet or '') <= 100)
                    found = [normalize_search_hit(hit) for hit in hits]
                except UPSTREAM_ERRORS as e:
                    errors.append(f'Search strategy "{name}" error: {e}')
                    continue

                total_found += _count(data, hits)
                for document in found:
                    if document.cluster_id not in seen_clusters:
                        seen_clusters.add(document.cluster_id)
                        documents.append(document)

                if name == 'exact_phrase' and found:
                    break
        except DeadlineExceeded as e:
            errors.append(f"Search stopped before completion: {e}")

        if not documents:
            errors.append(f'No results found for "{query}".')

        return SearchResults(
            documents=documents[:self.max_documents],
            total_found=total_found,
            search_queries=[{'query': q, 'strategy': n} for n, q in strategies],
            errors=errors,
            strategy='keywords',
        )

    async def search_docket(self, docket_number: str, mode: SearchMode = SearchMode.EXACT,
                            timeout: Optional[float] = None) -> DocketSearchResults:
        """Every RECAP filing on a docket, limited to the court with the most of them."""
        mode = SearchMode(mode)
        deadline = self._deadline(timeout)
        docket = docket_number.strip()
        strategies = build_docket_strategies(docket, mode)
        documents: List[CaseDocument] = []
        details: List[Dict[str, Any]] = []
        errors: List[str] = []

        logger.info("Starting docket search for: '%s' with mode: %s", docket, mode.value)
        try:
            for name, query in strategies:
                logger.info("Trying %s strategy: %s", name, query)
                try:
                    data = await self.client.search(
                        query, result_type='r', limit=DOCKET_RESULT_LIMIT, status=None,
                        deadline=deadline)
                    hits = [DocketHit.model_validate(hit) for hit in data.get('results') or []]
                    found = [doc for hit in hits for doc in normalize_docket_hit(hit, docket)]
                except UPSTREAM_ERRORS as e:
                    logger.error("Docket strategy %s failed: %s", name, e)
                    errors.append(f"{name}: {e}")
                    continue

                if not hits:
                    continue
                details.append({
                    'strategy': name,
                    'query': query,
                    'results_found': len(hits),
                    'total_available': _count(data, hits),
                })
                documents.extend(found)

                if name == 'exact_docket' and found:
                    logger.info("Found exact docket matches, skipping looser strategies")
                    break
        except DeadlineExceeded as e:
            errors.append(f"Search stopped before completion: {e}")

        courts: Dict[str, List[CaseDocument]] = {}
        for document in _dedupe(documents):
            courts.setdefault(document.court, []).append(document)

        primary_court = None
        for court, court_documents in courts.items():
            if primary_court is None or len(court_documents) > len(courts[primary_court]):
                primary_court = court
        documents = courts[primary_court] if primary_court else []

        if not documents:
            errors.append(f'No documents found for docket "{docket}".')
        logger.info("Docket search completed: %d documents, primary court %s (%d courts)",
                    len(documents), primary_court, len(courts))

        return DocketSearchResults(
            documents=documents[:DOCKET_RESULT_LIMIT],
            total_found=sum(d['total_available'] for d in details),
            search_queries=details,
            errors=errors,
            strategy='docket',
            primary_court=primary_court,
            courts_found=len(courts),
        )

    async def get_related_documents(self, cluster_id: Any,
                                    timeout: Optional[float] = None) -> List[CaseDocument]:
        """Every opinion (majority, dissents, concurrences) of one cluster."""
        cluster = await self.client.get_cluster(cluster_id, deadline=self._deadline(timeout))
        if not cluster:
            return []
        return normalize_cluster(cluster)

    async def get_document_content(self, document_id: str,
                                   timeout: Optional[float] = None) -> str:
        """Full text for a document id produced by the normalizer."""
        deadline = self._deadline(timeout)

        match = DOCUMENT_ID_OPINION.match(document_id)
        if match:
            return await self.client.get_opinion_text(match.group(2), deadline=deadline)

        match = DOCUMENT_ID_V4.match(document_id) or DOCUMENT_ID_CLUSTER.match(document_id)
        if not match:
            raise ValueError(f"Invalid document ID format: {document_id}")

        cluster = await self.client.get_cluster(match.group(1), deadline=deadline)
        if not cluster:
            return ''

        for document in normalize_cluster(cluster):
            if document.plain_text:
                return document.plain_text
            if document.opinion_id and document.opinion_id.isdigit():
                text = await self.client.get_opinion_text(document.opinion_id, deadline=deadline)
                if text:
                    return text
        return ''
