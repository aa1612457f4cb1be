"""
Citation parsing for legal case citations.
Supports common formats like "Miller v. McDonald, 944 F.3d 1050 (9th Cir. 2020)"
"""

import re
from typing import List

from common.models import CitationSearchQuery, CitationValidation, ParsedCitation

# Common legal reporters and the courts that publish in them
REPORTER_COURTS = {
    'F.4th': ['Federal Circuit Courts'],
    'F.3d': ['Federal Circuit Courts'],
    'F.2d': ['Federal Circuit Courts'],
    'F.': ['Federal Circuit Courts'],
    'F.Supp.3d': ['Federal District Courts'],
    'F.Supp.2d': ['Federal District Courts'],
    'F.Supp.': ['Federal District Courts'],
    'U.S.': ['Supreme Court'],
    'S.Ct.': ['Supreme Court'],
    'L.Ed.2d': ['Supreme Court'],
    'L.Ed.': ['Supreme Court'],
}

COMMON_REPORTERS = ['F.3d', 'F.Supp.3d', 'U.S.', 'S.Ct.']

# Tried in order, each looser than the one before
CITATION_PATTERNS = [
    # Full citation with court and year: "Name, 1 F.3d 2 (9th Cir. 2020)"
    re.compile(r'^(.+?),\s*(\d+)\s+([A-Za-z0-9.]+)\s+(\d+)\s*\(([^)]+)\s+(\d{4})\)$'),
    # Year only in parentheses: "Name, 1 F.3d 2 (2020)"
    re.compile(r'^(.+?),\s*(\d+)\s+([A-Za-z0-9.]+)\s+(\d+)\s*\((\d{4})\)$'),
    # Basic: "Name, 1 F.3d 2"
    re.compile(r'^(.+?),\s*(\d+)\s+([A-Za-z0-9.]+)\s+(\d+)$'),
    # No comma after the case name: "Name 1 F.3d 2"
    re.compile(r'^(.+?)\s+(\d+)\s+([A-Za-z0-9.]+)\s+(\d+)$'),
]

CASE_NAME_FALLBACK = re.compile(r'^(.+?)(?:,|\s+\d)')
YEAR = re.compile(r'^\d{4}$')


def parse_citation(citation: str) -> ParsedCitation:
    """Parse a legal citation into its components.

    Never raises. When no structured pattern matches, only `case_name`
    and `full_citation` are meaningful and `is_valid` is False.
    """
    trimmed = citation.strip()

    for pattern in CITATION_PATTERNS:
        match = pattern.match(trimmed)
        if not match:
            continue

        groups = match.groups()
        case_name, volume, reporter, page = (g.strip() for g in groups[:4])
        court_or_year = groups[4] if len(groups) > 4 else None
        year = groups[5] if len(groups) > 5 else None

        if year is None and court_or_year and YEAR.match(court_or_year):
            year, court = court_or_year, None
        else:
            court = court_or_year.strip() if year and court_or_year else None

        return ParsedCitation(
            case_name=case_name,
            reporter=reporter,
            volume=volume,
            page=page,
            year=year,
            court=court,
            full_citation=trimmed,
            is_valid=True,
        )

    case_name_match = CASE_NAME_FALLBACK.match(trimmed)
    return ParsedCitation(
        case_name=case_name_match.group(1).strip() if case_name_match else trimmed,
        full_citation=trimmed,
        is_valid=False,
    )


def citation_components(citation: ParsedCitation) -> str:
    """"Volume Reporter Page", or "" for an unstructured citation."""
    if not (citation.is_valid and citation.volume and citation.reporter and citation.page):
        return ""
    return f"{citation.volume} {citation.reporter} {citation.page}"


def generate_search_queries(citation: ParsedCitation) -> List[CitationSearchQuery]:
    """Generate the structured queries for a citation, highest priority first."""
    queries = []

    if citation.case_name:
        queries.append(CitationSearchQuery(
            case_name=citation.case_name,
            citation=citation.full_citation,
        ))

    components = citation_components(citation)
    if components:
        queries.append(CitationSearchQuery(citation=components))

    if citation.court:
        queries.append(CitationSearchQuery(
            case_name=citation.case_name,
            court=citation.court,
        ))

    if citation.year:
        try:
            year = int(citation.year)
        except ValueError:
            year = None
        if year is not None:
            queries.append(CitationSearchQuery(
                case_name=citation.case_name,
                year_start=year - 1,
                year_end=year + 1,
            ))

    return queries


def get_court_from_reporter(reporter: str) -> List[str]:
    return REPORTER_COURTS.get(reporter.replace(' ', ''), [])


def suggest_citation_corrections(citation: str) -> List[str]:
    suggestions = []

    if ',' not in citation:
        suggestions.append(
            'Try adding a comma after the case name: "Case Name, Volume Reporter Page"')

    if not re.search(r'\d+\s+[A-Za-z0-9.]+\s+\d+', citation):
        suggestions.append(
            'Citation should include volume, reporter, and page: "Volume Reporter Page"')

    suggestions.append(f"Common reporters: {', '.join(COMMON_REPORTERS)}")
    return suggestions


def validate_citation(citation: str) -> CitationValidation:
    """Check a citation's format; the result is advisory."""
    errors = []
    parsed = parse_citation(citation)

    if not parsed.case_name:
        errors.append('Case name is required')

    if not parsed.is_valid:
        errors.append(
            'Citation format not recognized. Try: "Case Name, Volume Reporter Page (Year)"')

    if parsed.reporter and not get_court_from_reporter(parsed.reporter):
        errors.append(f'Reporter "{parsed.reporter}" not recognized')

    return CitationValidation(
        is_valid=not errors,
        errors=errors,
        suggestions=suggest_citation_corrections(citation) if errors else [],
    )
