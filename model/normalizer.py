"""
Maps CourtListener responses onto CaseDocument.

Four upstream shapes are accepted: cluster objects (v3 clusters endpoint
and citation-lookup matches), v4 opinion search hits, v4 RECAP docket hits
and citation-lookup results.
Each is validated into its own model first, then mapped. Incomplete
records still produce a document.
"""

import re
from typing import Any, Dict, List, Optional, Tuple, Union

from common.config import Config
from common.models import (
    CaseDocument,
    CitationLookupResult,
    DocketHit,
    DocumentType,
    SearchHit,
    TypeSource,
    UpstreamCitation,
    UpstreamCluster,
    UpstreamOpinion,
)
from model.courtlistener_client import html_to_text

OPINION_ID_IN_URL = re.compile(r'/opinions/(\d+)/')
UNKNOWN_ID = 'unknown'


def classify_opinion_type(opinion_type: Optional[str]) -> Tuple[DocumentType, TypeSource]:
    """Map an upstream opinion type ("dissenting", "040dissent", ...) to a DocumentType."""
    value = (opinion_type or '').lower()
    if 'dissent' in value:
        return DocumentType.DISSENT, TypeSource.METADATA
    if 'concurr' in value:
        return DocumentType.CONCURRENCE, TypeSource.METADATA
    if any(tag in value for tag in ('lead', 'combined', 'majority', 'plurality')):
        return DocumentType.DECISION, TypeSource.METADATA
    return DocumentType.DECISION, TypeSource.DEFAULT


def format_opinion_type(opinion_type: Optional[str]) -> str:
    value = (opinion_type or '').lower()
    if 'lead' in value or 'combined' in value:
        return 'Majority Opinion'
    if 'dissent' in value:
        return 'Dissenting Opinion'
    if 'concurr' in value:
        return 'Concurring Opinion'
    if 'addendum' in value:
        return 'Addendum'
    return 'Opinion'


def court_from_cites(federal_cite: str = '', state_cite: str = '') -> str:
    """Best-effort court name from reporter abbreviations."""
    cite = re.sub(r'\s+', '', federal_cite or '')
    if cite:
        if 'U.S.' in cite or 'S.Ct.' in cite or 'L.Ed.' in cite:
            return 'U.S. Supreme Court'
        if 'F.Supp' in cite:
            return 'U.S. District Court'
        if re.search(r'F\.(\d|$)', cite):
            return 'U.S. Court of Appeals'
        return 'Federal Court'
    if state_cite:
        return 'State Court'
    return 'Court'


def extract_court_name(cluster: UpstreamCluster) -> str:
    if cluster.court:
        return cluster.court

    federal_cite = cluster.federal_cite_one or ''
    if not federal_cite:
        for citation in cluster.citations:
            text = citation if isinstance(citation, str) else citation.as_text()
            if text and court_from_cites(text) != 'Federal Court':
                federal_cite = text
                break
    return court_from_cites(federal_cite, cluster.state_cite_one or '')


def absolute_url(url: Optional[str]) -> str:
    if not url:
        return ''
    if url.startswith('/'):
        return f"{Config.COURTLISTENER_SITE_URL}{url}"
    return url


def _opinion_id(ref: Union[UpstreamOpinion, str, int]) -> str:
    if isinstance(ref, UpstreamOpinion):
        return str(ref.id) if ref.id is not None else UNKNOWN_ID
    if isinstance(ref, int):
        return str(ref)
    match = OPINION_ID_IN_URL.search(ref)
    if match:
        return match.group(1)
    return ref if ref.isdigit() else UNKNOWN_ID


def _document_id(cluster_id: str, opinion_id: str, index: int) -> str:
    # Unresolvable references stay distinct by their position in the cluster
    if opinion_id == UNKNOWN_ID:
        return f"cl-{cluster_id}-{UNKNOWN_ID}-{index}"
    return f"cl-{cluster_id}-{opinion_id}"


def _cluster_base(cluster: UpstreamCluster) -> Dict[str, Any]:
    cluster_id = str(cluster.id) if cluster.id is not None else UNKNOWN_ID
    return {
        'cluster_id': cluster_id,
        'court': extract_court_name(cluster),
        'docket_number': cluster.docket_number or cluster.slug or f"cluster-{cluster_id}",
        'date': cluster.date_filed or '',
    }


def _case_title(cluster: UpstreamCluster) -> str:
    return cluster.case_name_short or cluster.case_name or cluster.case_name_full or 'Untitled Case'


def normalize_cluster(cluster: Union[UpstreamCluster, Dict[str, Any]]) -> List[CaseDocument]:
    """One document per opinion of the cluster, or one record document."""
    if not isinstance(cluster, UpstreamCluster):
        cluster = UpstreamCluster.model_validate(cluster)

    base = _cluster_base(cluster)
    title = _case_title(cluster)
    documents = []

    if cluster.sub_opinions:
        for index, ref in enumerate(cluster.sub_opinions):
            opinion_id = _opinion_id(ref)
            document = CaseDocument(
                id=_document_id(base['cluster_id'], opinion_id, index),
                title=f"{title} - Opinion",
                opinion_id=opinion_id,
                **base,
            )
            if isinstance(ref, UpstreamOpinion):
                doc_type, type_source = classify_opinion_type(ref.type)
                text = ref.plain_text or html_to_text(ref.html_with_citations or ref.html or '')
                document = document.model_copy(update={
                    'type': doc_type,
                    'type_source': type_source,
                    'title': f"{title} - {format_opinion_type(ref.type)}",
                    'page_count': ref.page_count or 0,
                    'download_url': ref.download_url or '',
                    'plain_text': text or None,
                    'authors': [ref.author_str] if ref.author_str else [],
                })
            documents.append(document)
    elif cluster.opinions:
        for index, ref in enumerate(cluster.opinions):
            opinion_id = _opinion_id(ref)
            documents.append(CaseDocument(
                id=_document_id(base['cluster_id'], opinion_id, index),
                title=f"{title} - Opinion",
                opinion_id=opinion_id,
                **base,
            ))
    else:
        summary = html_to_text(cluster.summary or cluster.syllabus or '')
        documents.append(CaseDocument(
            id=f"cl-{base['cluster_id']}-cluster",
            title=f"{title} - Case Record",
            plain_text=summary or None,
            **base,
        ))

    return documents


def normalize_search_hit(hit: Union[SearchHit, Dict[str, Any]]) -> CaseDocument:
    if not isinstance(hit, SearchHit):
        hit = SearchHit.model_validate(hit)

    cluster_id = str(hit.cluster_id) if hit.cluster_id is not None else UNKNOWN_ID
    case_name = hit.case_name or 'Untitled Case'
    court = hit.court or 'Unknown Court'
    snippet = hit.snippet or next((o.snippet for o in hit.opinions if o.snippet), '')

    return CaseDocument(
        id=f"cl-v4-{cluster_id}",
        title=f"{case_name} - {court}",
        court=court,
        docket_number=hit.docket_number or f"cluster-{cluster_id}",
        date=hit.date_filed or '',
        download_url=absolute_url(hit.absolute_url),
        plain_text=html_to_text(snippet) or None,
        authors=[hit.judge] if hit.judge else [],
        cluster_id=cluster_id,
    )


def normalize_docket_hit(hit: Union[DocketHit, Dict[str, Any]],
                         docket_number: str = '') -> List[CaseDocument]:
    """One document per RECAP filing on the docket."""
    if not isinstance(hit, DocketHit):
        hit = DocketHit.model_validate(hit)

    docket_id = str(hit.docket_id) if hit.docket_id is not None else UNKNOWN_ID
    documents = []
    for recap in hit.recap_documents:
        recap_id = str(recap.id) if recap.id is not None else UNKNOWN_ID
        documents.append(CaseDocument(
            id=f"recap-{recap_id}-{recap.document_number}",
            type=DocumentType.RECORD,
            title=f"Doc {recap.document_number}: {recap.description or 'Untitled Document'}",
            court=hit.court or 'Unknown Court',
            docket_number=hit.docket_number or docket_number,
            date=recap.entry_date_filed or '',
            page_count=recap.page_count or 0,
            download_url=absolute_url(recap.absolute_url),
            plain_text=html_to_text(recap.snippet or '') or None,
            cluster_id=docket_id,
        ))
    return documents


def normalize_lookup_result(result: Union[CitationLookupResult, Dict[str, Any]]) -> List[CaseDocument]:
    """Documents for every cluster matched by one looked-up citation."""
    if not isinstance(result, CitationLookupResult):
        result = CitationLookupResult.model_validate(result)

    # 200 is a single match, 300 is ambiguous with several candidate clusters
    if result.status not in (None, 200, 300):
        return []

    documents = []
    for cluster in result.clusters:
        documents.extend(normalize_cluster(cluster))
    return documents


def normalize(raw: Dict[str, Any]) -> List[CaseDocument]:
    """Normalize any of the four upstream shapes."""
    if 'clusters' in raw and 'cluster_id' not in raw:
        return normalize_lookup_result(raw)
    if 'recap_documents' in raw:
        return normalize_docket_hit(raw)
    if 'cluster_id' in raw or 'caseName' in raw:
        return [normalize_search_hit(raw)]
    return normalize_cluster(raw)
