from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from common.exceptions import DeadlineExceeded
from common.http import error_response
from common.logging import logger
from common.models import (
    CaseDocument,
    CitationResearchRequest,
    DocketResearchRequest,
    DocumentContentRequest,
    KeywordResearchRequest,
    SearchResults,
)
from model.citation_parser import parse_citation, validate_citation
from model.search_orchestrator import CitationSearchOrchestrator

router = APIRouter()


def get_orchestrator() -> CitationSearchOrchestrator:
    """Dependency returning the search orchestrator (overridden in tests)."""
    return CitationSearchOrchestrator()


def serialize_document(document: CaseDocument) -> Dict[str, Any]:
    data = document.model_dump(mode="json", exclude={"plain_text"})
    data["has_plain_text"] = document.has_plain_text
    return data


def serialize_summary(results: SearchResults) -> Dict[str, Any]:
    return {
        "total_found": results.total_found,
        "documents_returned": len(results.documents),
        "search_queries": [
            q.model_dump(exclude_none=True) if hasattr(q, "model_dump") else q
            for q in results.search_queries
        ],
        "errors": results.errors,
        "strategy": results.strategy,
    }


@router.post("/legal/research-citation")
async def research_citation(payload: CitationResearchRequest,
                            orchestrator: CitationSearchOrchestrator = Depends(get_orchestrator)):
    """Search case documents for a legal citation."""
    search_query = (payload.citation or payload.query or "").strip()
    if not search_query:
        return JSONResponse(
            status_code=400,
            content=error_response("missing_citation", "Citation or query is required"))

    logger.info("Starting citation research for: '%s' with mode: %s",
                search_query, payload.search_mode.value)
    try:
        parsed = parse_citation(search_query)
        validation = validate_citation(search_query)
        results = await orchestrator.search(
            parsed, payload.search_mode, timeout=payload.timeout_seconds)
    except Exception as e:
        logger.error("Citation research error: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info("Found %d documents from %d total results",
                len(results.documents), results.total_found)
    return {
        "citation": {"original": search_query, "parsed": parsed.model_dump()},
        "validation": validation.model_dump(),
        "documents": [serialize_document(d) for d in results.documents],
        "summary": serialize_summary(results),
    }


@router.post("/legal/research-keywords")
async def research_keywords(payload: KeywordResearchRequest,
                            orchestrator: CitationSearchOrchestrator = Depends(get_orchestrator)):
    """Keyword search over case law opinions."""
    query = payload.query.strip()
    if not query:
        return JSONResponse(
            status_code=400,
            content=error_response("missing_query", "Search query is required"))

    try:
        results = await orchestrator.search_keywords(query, payload.search_mode)
    except Exception as e:
        logger.error("Keyword search error: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e

    summary = serialize_summary(results)
    summary["search_mode"] = payload.search_mode.value
    return {
        "query": query,
        "documents": [serialize_document(d) for d in results.documents],
        "summary": summary,
    }


@router.post("/legal/research-docket")
async def research_docket(payload: DocketResearchRequest,
                          orchestrator: CitationSearchOrchestrator = Depends(get_orchestrator)):
    """Every filing on a docket, grouped by docket number."""
    docket_number = payload.docket_number.strip()
    if not docket_number:
        return JSONResponse(
            status_code=400,
            content=error_response("missing_docket", "Docket number is required"))

    try:
        results = await orchestrator.search_docket(docket_number, payload.search_mode)
    except Exception as e:
        logger.error("Docket search error: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e

    documents = [serialize_document(d) for d in results.documents]
    docket_groups: Dict[str, List[Dict[str, Any]]] = {}
    for document in documents:
        docket_groups.setdefault(document["docket_number"] or "Unknown", []).append(document)

    summary = serialize_summary(results)
    summary.update({
        "search_mode": payload.search_mode.value,
        "primary_court": results.primary_court,
        "courts_found": results.courts_found,
        "unique_dockets": len(docket_groups),
        "has_exact_matches": any(
            d["strategy"] == "exact_docket" and d["results_found"] > 0
            for d in results.search_queries),
    })
    return {
        "docket_number": docket_number,
        "documents": documents,
        "docket_groups": docket_groups,
        "summary": summary,
    }


@router.post("/legal/document-content")
async def document_content(payload: DocumentContentRequest,
                           orchestrator: CitationSearchOrchestrator = Depends(get_orchestrator)):
    """Full text of one search result."""
    try:
        full_text = await orchestrator.get_document_content(payload.document_id)
    except ValueError as e:
        return JSONResponse(status_code=400, content=error_response("invalid_document_id", str(e)))
    except DeadlineExceeded as e:
        raise HTTPException(status_code=504, detail=str(e)) from e
    except Exception as e:
        logger.error("Document content fetch error: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {
        "document_id": payload.document_id,
        "full_text": full_text or "Document content not available",
        "has_plain_text": bool(full_text),
    }


@router.get("/legal/related-documents/{cluster_id}")
async def related_documents(cluster_id: int,
                            orchestrator: CitationSearchOrchestrator = Depends(get_orchestrator)):
    """Majority, dissenting and concurring opinions of one case."""
    try:
        documents = await orchestrator.get_related_documents(cluster_id)
    except Exception as e:
        logger.error("Related documents error for %s: %s", cluster_id, e)
        raise HTTPException(status_code=500, detail=str(e)) from e

    if not documents:
        raise HTTPException(status_code=404, detail="Case not found")
    return {"cluster_id": cluster_id, "documents": [serialize_document(d) for d in documents]}
