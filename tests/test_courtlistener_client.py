"""Tests for CourtListenerClient against a mocked transport."""

import asyncio

import httpx
import pytest

from common.exceptions import CourtListenerAPIError
from common.http import RateLimitedClient, RequestThrottle
from common.models import CitationSearchQuery
from model.courtlistener_client import CourtListenerClient, html_to_text

BASE = "https://cl.test/api/rest/v4"
LEGACY = "https://cl.test/api/rest/v3"


@pytest.fixture
def routes():
    """Path -> response factory; unknown paths answer 404."""
    return {}


@pytest.fixture
def sent():
    return []


@pytest.fixture
def client(clock, routes, sent):
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        factory = routes.get(request.url.path)
        if factory is None:
            return httpx.Response(404, json={"detail": "Not found."})
        return factory(request)

    http = RateLimitedClient(
        api_token=None,
        throttle=RequestThrottle(min_interval=0.0, clock=clock, sleep=clock.sleep),
        transport=httpx.MockTransport(handler),
        sleep=clock.sleep,
    )
    return CourtListenerClient(http=http, base_url=BASE + "/", legacy_base_url=LEGACY)


class TestSearch:
    """search shall query the v4 full-text endpoint for published opinions."""

    def test_sends_search_parameters(self, client, routes, sent) -> None:
        routes["/api/rest/v4/search/"] = lambda r: httpx.Response(
            200, json={"count": 1, "results": [{"cluster_id": 1}]})

        data = asyncio.run(client.search('"Miller v. McDonald"', limit=5))

        params = sent[0].url.params
        assert params["q"] == '"Miller v. McDonald"'
        assert params["type"] == "o"
        assert params["limit"] == "5"
        assert params["status"] == "Published"
        assert params["format"] == "json"
        assert data["count"] == 1

    def test_recap_search_without_status_filter(self, client, routes, sent) -> None:
        routes["/api/rest/v4/search/"] = lambda r: httpx.Response(200, json={"count": 0, "results": []})

        asyncio.run(client.search('docketNumber:"18-35100"', result_type="r", limit=50, status=None))

        params = sent[0].url.params
        assert params["type"] == "r"
        assert params["limit"] == "50"
        assert "status" not in params

    def test_missing_results_become_empty_list(self, client, routes) -> None:
        routes["/api/rest/v4/search/"] = lambda r: httpx.Response(200, json={"count": 0})

        assert asyncio.run(client.search("x"))["results"] == []

    def test_non_object_reply_is_an_error(self, client, routes) -> None:
        routes["/api/rest/v4/search/"] = lambda r: httpx.Response(200, json=[1, 2])

        with pytest.raises(CourtListenerAPIError):
            asyncio.run(client.search("x"))


class TestCitationLookup:
    """citation_lookup shall POST the text and always return a list."""

    def test_posts_text(self, client, routes, sent) -> None:
        routes["/api/rest/v4/citation-lookup/"] = lambda r: httpx.Response(
            200, json=[{"citation": "944 F.3d 1050", "status": 200, "clusters": []}])

        results = asyncio.run(client.citation_lookup("944 F.3d 1050"))

        assert sent[0].method == "POST"
        assert results[0]["status"] == 200

    def test_single_object_is_wrapped(self, client, routes) -> None:
        routes["/api/rest/v4/citation-lookup/"] = lambda r: httpx.Response(
            200, json={"citation": "x", "status": 404})

        assert asyncio.run(client.citation_lookup("x")) == [{"citation": "x", "status": 404}]


class TestClusters:
    """search_clusters shall translate query fields into legacy filters."""

    def test_all_fields_become_filters(self, client, routes, sent) -> None:
        routes["/api/rest/v3/clusters/"] = lambda r: httpx.Response(
            200, json={"count": 1, "results": [{"id": 7}]})
        query = CitationSearchQuery(
            case_name="Miller v. McDonald", citation="944 F.3d 1050",
            court="9th Cir.", year_start=2019, year_end=2021)

        results = asyncio.run(client.search_clusters(query, limit=3))

        params = sent[0].url.params
        assert params["case_name"] == "Miller v. McDonald"
        assert params["citation"] == "944 F.3d 1050"
        assert params["court"] == "9th Cir."
        assert params["date_filed__gte"] == "2019-01-01"
        assert params["date_filed__lte"] == "2021-12-31"
        assert params["limit"] == "3"
        assert "federal_cite_one" not in params
        assert results == [{"id": 7}]

    def test_empty_fields_are_omitted(self, client, routes, sent) -> None:
        routes["/api/rest/v3/clusters/"] = lambda r: httpx.Response(200, json={"results": None})

        results = asyncio.run(client.search_clusters(CitationSearchQuery(federal_cite_one="944 F.3d 1050")))

        assert set(sent[0].url.params.keys()) == {"federal_cite_one", "limit", "format"}
        assert results == []

    def test_missing_cluster_returns_none(self, client) -> None:
        assert asyncio.run(client.get_cluster(99)) is None

    def test_opinion_text_prefers_plain_text(self, client, routes) -> None:
        routes["/api/rest/v3/opinions/5/"] = lambda r: httpx.Response(
            200, json={"plain_text": "Plain body", "html": "<p>Html body</p>"})

        assert asyncio.run(client.get_opinion_text(5)) == "Plain body"

    def test_opinion_text_falls_back_to_html(self, client, routes) -> None:
        routes["/api/rest/v3/opinions/5/"] = lambda r: httpx.Response(
            200, json={"plain_text": "", "html_with_citations": "<p>Held:</p>\n<p>affirmed.</p>"})

        assert asyncio.run(client.get_opinion_text(5)) == "Held: affirmed."

    def test_missing_opinion_text_is_empty(self, client) -> None:
        assert asyncio.run(client.get_opinion_text(5)) == ""


class TestHtmlToText:

    def test_strips_tags_and_collapses_whitespace(self) -> None:
        assert html_to_text("<div><b>Miller</b>\n\n v.  McDonald</div>") == "Miller v. McDonald"

    def test_plain_text_passes_through(self) -> None:
        assert html_to_text("  already   plain ") == "already plain"

    def test_empty(self) -> None:
        assert html_to_text("") == ""
