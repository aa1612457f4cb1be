from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------

class ParsedCitation(BaseModel):
    """A free-text citation broken into its components."""
    model_config = ConfigDict(frozen=True)

    case_name: str
    reporter: str = ""
    volume: str = ""
    page: str = ""
    year: Optional[str] = None
    court: Optional[str] = None
    full_citation: str
    is_valid: bool = False


class CitationSearchQuery(BaseModel):
    """One set of structured filters tried against the clusters endpoint."""
    case_name: Optional[str] = None
    citation: Optional[str] = None
    federal_cite_one: Optional[str] = None
    court: Optional[str] = None
    year_start: Optional[int] = None
    year_end: Optional[int] = None


class CitationValidation(BaseModel):
    is_valid: bool
    errors: List[str] = []
    suggestions: List[str] = []


class SearchMode(str, Enum):
    EXACT = "exact"
    RELATED = "related"
    COMPREHENSIVE = "comprehensive"


class DocumentType(str, Enum):
    DECISION = "decision"
    DISSENT = "dissent"
    CONCURRENCE = "concurrence"
    RECORD = "record"
    BRIEF_PETITIONER = "brief_petitioner"
    BRIEF_RESPONDENT = "brief_respondent"
    BRIEF_AMICUS = "brief_amicus"


class TypeSource(str, Enum):
    """How a document's type was decided."""
    METADATA = "metadata"
    DEFAULT = "default"


class CaseDocument(BaseModel):
    id: str
    type: DocumentType = DocumentType.DECISION
    type_source: TypeSource = TypeSource.DEFAULT
    title: str
    court: str = ""
    docket_number: str = ""
    date: str = ""
    page_count: int = 0
    source: str = "courtlistener"
    download_url: str = ""
    plain_text: Optional[str] = None
    authors: List[str] = []
    is_selected: bool = False
    cluster_id: str
    opinion_id: Optional[str] = None

    @property
    def has_plain_text(self) -> bool:
        return bool(self.plain_text)


class SearchResults(BaseModel):
    documents: List[CaseDocument] = []
    total_found: int = 0
    search_queries: List[Any] = []
    errors: List[str] = []
    strategy: Optional[str] = None


class DocketSearchResults(SearchResults):
    """Docket search results, narrowed to the court holding most of them."""
    primary_court: Optional[str] = None
    courts_found: int = 0


# ---------------------------------------------------------------------------
# Upstream shapes (CourtListener JSON), validated at the boundary
# ---------------------------------------------------------------------------

class UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UpstreamOpinion(UpstreamModel):
    id: Optional[int] = None
    type: Optional[str] = None
    author_str: Optional[str] = None
    page_count: Optional[int] = None
    download_url: Optional[str] = None
    plain_text: Optional[str] = None
    html: Optional[str] = None
    html_with_citations: Optional[str] = None
    snippet: Optional[str] = None


class UpstreamCitation(UpstreamModel):
    volume: Optional[Union[int, str]] = None
    reporter: Optional[str] = None
    page: Optional[Union[int, str]] = None

    def as_text(self) -> str:
        parts = [str(self.volume or ""), self.reporter or "", str(self.page or "")]
        return " ".join(p for p in parts if p)


class UpstreamCluster(UpstreamModel):
    id: Optional[int] = None
    case_name: Optional[str] = None
    case_name_short: Optional[str] = None
    case_name_full: Optional[str] = None
    slug: Optional[str] = None
    date_filed: Optional[str] = None
    federal_cite_one: Optional[str] = None
    state_cite_one: Optional[str] = None
    court: Optional[str] = None
    docket_number: Optional[str] = None
    absolute_url: Optional[str] = None
    summary: Optional[str] = None
    syllabus: Optional[str] = None
    precedential_status: Optional[str] = None
    docket: Optional[Union[int, str]] = None
    sub_opinions: List[Union[UpstreamOpinion, str]] = []
    opinions: List[Union[int, str]] = []
    citations: List[Union[UpstreamCitation, str]] = []

    @field_validator("sub_opinions", "opinions", "citations", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        if value is None:
            return []
        return [item for item in value if item is not None]


class SearchHit(UpstreamModel):
    """One hit from the v4 full-text search endpoint."""
    cluster_id: Optional[int] = None
    case_name: Optional[str] = Field(None, alias="caseName")
    court: Optional[str] = None
    docket_number: Optional[str] = Field(None, alias="docketNumber")
    date_filed: Optional[str] = Field(None, alias="dateFiled")
    snippet: Optional[str] = None
    absolute_url: Optional[str] = None
    judge: Optional[str] = None
    opinions: List[UpstreamOpinion] = []

    @field_validator("opinions", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


class RecapDocument(UpstreamModel):
    id: Optional[int] = None
    document_number: Optional[Union[int, str]] = None
    description: Optional[str] = None
    document_type: Optional[str] = None
    entry_date_filed: Optional[str] = None
    absolute_url: Optional[str] = None
    is_available: Optional[bool] = None
    page_count: Optional[int] = None
    snippet: Optional[str] = None


class DocketHit(UpstreamModel):
    """One docket from the v4 search endpoint with RECAP results (type=r)."""
    docket_id: Optional[int] = None
    case_name: Optional[str] = Field(None, alias="caseName")
    court: Optional[str] = None
    court_id: Optional[str] = None
    docket_number: Optional[str] = Field(None, alias="docketNumber")
    recap_documents: List[RecapDocument] = []

    @field_validator("recap_documents", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


class CitationLookupResult(UpstreamModel):
    """One entry from the citation-lookup endpoint."""
    citation: Optional[str] = None
    status: Optional[int] = None
    error_message: Optional[str] = None
    clusters: List[UpstreamCluster] = []

    @field_validator("clusters", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class CitationResearchRequest(BaseModel):
    citation: Optional[str] = None
    query: Optional[str] = None
    search_mode: SearchMode = SearchMode.EXACT
    timeout_seconds: Optional[float] = Field(None, gt=0)


class KeywordResearchRequest(BaseModel):
    query: str
    search_mode: SearchMode = SearchMode.COMPREHENSIVE


class DocketResearchRequest(BaseModel):
    docket_number: str
    search_mode: SearchMode = SearchMode.EXACT


class DocumentContentRequest(BaseModel):
    document_id: str
