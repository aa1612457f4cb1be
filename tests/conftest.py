"""Shared fixtures: a controllable clock and an in-memory CourtListener."""

from typing import Any, Callable, Dict, List, Optional

import pytest

from common.exceptions import CourtListenerAPIError
from common.http import Deadline
from common.models import CitationSearchQuery


class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeCourtListener:
    """Stands in for CourtListenerClient, recording every call.

    Each handler receives the call's main argument and returns the
    response body; handlers may raise to simulate upstream failures.
    """

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.search_handler: Callable[[str], Dict[str, Any]] = lambda q: {"count": 0, "results": []}
        self.lookup_handler: Callable[[str], List[Dict[str, Any]]] = lambda text: []
        self.clusters_handler: Callable[[CitationSearchQuery], List[Dict[str, Any]]] = lambda q: []
        self.cluster_details: Dict[str, Dict[str, Any]] = {}
        self.opinion_texts: Dict[str, str] = {}

    def calls_to(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def search(self, query: str, result_type: str = "o", limit: int = 20,
                     status: str = "Published", deadline: Optional[Deadline] = None):
        if deadline is not None:
            deadline.check()
        self.calls.append(("search", query, limit, result_type, status))
        return self.search_handler(query)

    async def citation_lookup(self, text: str, deadline: Optional[Deadline] = None):
        if deadline is not None:
            deadline.check()
        self.calls.append(("citation_lookup", text))
        return self.lookup_handler(text)

    async def search_clusters(self, query: CitationSearchQuery, limit: int = 20,
                              deadline: Optional[Deadline] = None):
        if deadline is not None:
            deadline.check()
        self.calls.append(("search_clusters", query, limit))
        return self.clusters_handler(query)

    async def get_cluster(self, cluster_id: Any, deadline: Optional[Deadline] = None):
        self.calls.append(("get_cluster", str(cluster_id)))
        return self.cluster_details.get(str(cluster_id))

    async def get_opinion_text(self, opinion_id: Any, deadline: Optional[Deadline] = None):
        self.calls.append(("get_opinion_text", str(opinion_id)))
        return self.opinion_texts.get(str(opinion_id), "")


def upstream_error(status: int = 500) -> Callable[..., Any]:
    def handler(*args: Any) -> Any:
        raise CourtListenerAPIError(f"CourtListener API error: {status}", status_code=status)
    return handler


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_courtlistener() -> FakeCourtListener:
    return FakeCourtListener()


@pytest.fixture
def failing_handler() -> Callable[[int], Callable[..., Any]]:
    return upstream_error
