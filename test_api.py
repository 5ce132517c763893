"""
HTTP contract tests for POST /api/search, GET / and GET /health.

The pipeline is swapped out through app.dependency_overrides so no test
touches a fetcher.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from biowatch.api.dependencies import get_news_pipeline
from biowatch.exceptions import ValidationFailure
from biowatch.main import GENERIC_ERROR, app
from biowatch.news.pipeline import NewsPipeline
from biowatch.schemas import ConsolidatedNewsItem, QueryKind


class StubPipeline:
    def __init__(self, items=None, error=None):
        self.items = items or []
        self.error = error
        self.requests = []

    async def gather_news(self, request, now=None):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.items


@pytest.fixture
def client():
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def use(pipeline):
    app.dependency_overrides[get_news_pipeline] = lambda: pipeline
    return pipeline


BODY = {
    "keywords": [
        {"keyword": "biosimilar approval", "sopCategory": "Regulatory", "companies": ["Amgen"]},
        {"keyword": "  "},
    ],
    "companyTargets": [{"id": "amgen", "label": "Amgen", "url": "https://amgen.com"}, {"label": "Empty"}],
    "timeRange": {"preset": "7d"},
    "maxItems": 5,
}


def test_search_returns_results_in_wire_format(client):
    item = ConsolidatedNewsItem(
        id="abc123", title="FDA approves Amgen biosimilar", source="Reuters",
        url="https://www.reuters.com/x", published_at=datetime(2025, 10, 13, 12, tzinfo=timezone.utc),
        authentic_score=80, market_impact_score=70,
        keyword_matches={"biosimilar approval"}, company_matches={"Amgen"}, sop_category="Regulatory",
    )
    stub = use(StubPipeline(items=[item]))

    resp = client.post("/api/search", json=BODY)

    assert resp.status_code == 200
    result = resp.json()["results"][0]
    assert result["publishedAt"] == "2025-10-13T12:00:00Z"
    assert result["authenticScore"] == 80
    assert result["marketImpactScore"] == 70
    assert result["keywordMatches"] == ["biosimilar approval"]
    assert result["companyMatches"] == ["Amgen"]
    assert result["businessCategory"] is None

    # unusable rows/targets never reach the pipeline
    request = stub.requests[0]
    assert [r.keyword for r in request.keywords] == ["biosimilar approval"]
    assert [t.id for t in request.company_targets] == ["amgen"]


@pytest.mark.parametrize("kwargs", [
    {"content": "{not json", "headers": {"content-type": "application/json"}},
    {"json": {"keywords": [{"sopCategory": "missing keyword"}]}},
    {"json": {"keywords": [{"keyword": "x"}], "timeRange": {"from": "2025-10-05T00:00:00Z",
                                                          "to": "2025-10-01T00:00:00Z"}}},
    {"json": {"keywords": [{"keyword": "x"}], "timeRange": {"preset": "1y"}}},
])
def test_bad_requests_are_400(client, kwargs):
    stub = use(StubPipeline())
    resp = client.post("/api/search", **kwargs)
    assert resp.status_code == 400
    assert set(resp.json()) == {"error"}
    assert stub.requests == []


def test_validation_failure_from_pipeline_is_400(client):
    use(StubPipeline(error=ValidationFailure("At least one keyword or company target is required.")))
    resp = client.post("/api/search", json={"keywords": [], "companyTargets": []})
    assert resp.status_code == 400
    assert resp.json() == {"error": "At least one keyword or company target is required."}


def test_unexpected_fault_is_generic_500(client):
    use(StubPipeline(error=RuntimeError("secret connection string leaked")))
    resp = client.post("/api/search", json=BODY)
    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR}
    assert "secret" not in resp.text


def test_internal_model_fault_is_generic_500(client):
    with pytest.raises(ValidationError) as info:
        ConsolidatedNewsItem.model_validate({"id": "broken"})
    use(StubPipeline(error=info.value))

    resp = client.post("/api/search", json=BODY)

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR}
    assert "broken" not in resp.text


def test_root_and_health(client, fake_fetcher, fake_expander):
    fetcher = fake_fetcher("web", [QueryKind.KEYWORD], lambda q, w: [])
    use(NewsPipeline(fetchers=[fetcher], expander=fake_expander()))

    assert client.get("/").json()["service"] == "Biosimilar News Monitor API"

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["fetchers"] == {"web": True}
    assert health["ai_expansion"] is True
    assert health["config"]["search_deadline_seconds"] == 55
