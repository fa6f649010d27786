"""Unit tests for the AutoMatch service client and local fallback."""
import pytest
import requests

from automatch.backend import client as client_module
from automatch.backend.client import (
    AutoMatchBackendClient,
    BackendAuthError,
    BackendError,
    BackendUnavailable,
)
from automatch.jobs.run_automatch import automatch_for_deal, cde_match_from_backend

YEAR = 2025


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def fake_request(monkeypatch):
    """Patch requests.request; returns the list of recorded calls."""
    calls = []
    responses = []

    def _request(method, url, headers=None, json=None, timeout=None):
        calls.append({"method": method, "url": url, "headers": headers, "json": json})
        result = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(client_module.requests, "request", _request)
    return calls, responses


class TestClient:
    """Test request handling of the service client."""

    def test_requires_base_url(self, monkeypatch):
        monkeypatch.setattr(client_module.settings, "api_base", "")
        with pytest.raises(BackendUnavailable):
            AutoMatchBackendClient()

    def test_headers(self):
        client = AutoMatchBackendClient(base_url="https://api.example.test/", access_token="tok")
        assert client.base_url == "https://api.example.test"
        assert client.headers["Authorization"] == "Bearer tok"

    def test_run_unwraps_envelope(self, fake_request):
        calls, responses = fake_request
        responses.append(FakeResponse(200, {"success": True, "data": {"matches": [{"cdeId": "c1"}]}}))
        client = AutoMatchBackendClient(base_url="https://api.example.test")

        payload = client.run_automatch("deal-1", min_score=40, max_results=10)

        assert payload == {"matches": [{"cdeId": "c1"}]}
        assert calls[0]["method"] == "POST"
        assert calls[0]["url"] == "https://api.example.test/automatch/run/deal-1"
        assert calls[0]["json"] == {"minScore": 40, "maxResults": 10, "notifyMatches": False}

    def test_get_matches(self, fake_request):
        calls, responses = fake_request
        responses.append(FakeResponse(200, {"matches": []}))
        client = AutoMatchBackendClient(base_url="https://api.example.test")
        assert client.get_matches("deal-1") == {"matches": []}
        assert calls[0]["method"] == "GET"

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_error(self, fake_request, status):
        _, responses = fake_request
        responses.append(FakeResponse(status, {"error": "Unauthorized"}))
        client = AutoMatchBackendClient(base_url="https://api.example.test")
        with pytest.raises(BackendAuthError) as exc:
            client.get_matches("deal-1")
        assert exc.value.status_code == status

    def test_server_error(self, fake_request):
        _, responses = fake_request
        responses.append(FakeResponse(500, {"error": "boom"}))
        client = AutoMatchBackendClient(base_url="https://api.example.test")
        with pytest.raises(BackendError) as exc:
            client.get_matches("deal-1")
        assert not isinstance(exc.value, (BackendAuthError, BackendUnavailable))
        assert str(exc.value) == "boom"
        assert exc.value.status_code == 500

    def test_connection_error_retried(self, fake_request):
        """Test that connection errors are retried three times before giving up."""
        calls, responses = fake_request
        responses.append(requests.ConnectionError("refused"))
        client = AutoMatchBackendClient(base_url="https://api.example.test")
        with pytest.raises(BackendUnavailable):
            client.get_matches("deal-1")
        assert len(calls) == 3

    def test_recovers_after_transient_error(self, fake_request):
        calls, responses = fake_request
        responses.extend([requests.ConnectionError("reset"), FakeResponse(200, {"data": {"ok": True}})])
        client = AutoMatchBackendClient(base_url="https://api.example.test")
        assert client.get_matches("deal-1") == {"ok": True}
        assert len(calls) == 2


class TestFallback:
    """Test service-first matching with local fallback."""

    def test_backend_matches_used(self, fake_request, make_deal, make_cde):
        _, responses = fake_request
        responses.append(FakeResponse(200, {"data": {"matches": [
            {"cdeId": "remote", "cdeName": "Remote CDE", "totalScore": 87, "breakdown": {"geographic": 1}},
        ]}}))
        client = AutoMatchBackendClient(base_url="https://api.example.test")

        matches, source = automatch_for_deal(make_deal(), [make_cde()], YEAR, client=client)

        assert source == "backend"
        assert [m.cde_id for m in matches] == ["remote"]
        assert matches[0].strength == "excellent"

    def test_falls_back_when_unreachable(self, fake_request, make_deal, make_cde):
        _, responses = fake_request
        responses.append(requests.ConnectionError("down"))
        client = AutoMatchBackendClient(base_url="https://api.example.test")

        matches, source = automatch_for_deal(make_deal(), [make_cde()], YEAR, client=client)

        assert source == "local"
        assert matches[0].cde_id == "cde-1"
        assert matches[0].score == 100

    def test_falls_back_on_auth_error(self, fake_request, make_deal, make_cde):
        _, responses = fake_request
        responses.append(FakeResponse(401, {"error": "Unauthorized"}))
        client = AutoMatchBackendClient(base_url="https://api.example.test")
        _, source = automatch_for_deal(make_deal(), [make_cde()], YEAR, client=client)
        assert source == "local"

    def test_server_error_propagates(self, fake_request, make_deal, make_cde):
        _, responses = fake_request
        responses.append(FakeResponse(500, {"error": "boom"}))
        client = AutoMatchBackendClient(base_url="https://api.example.test")
        with pytest.raises(BackendError):
            automatch_for_deal(make_deal(), [make_cde()], YEAR, client=client)

    def test_no_client_scores_locally(self, make_deal, make_cde):
        _, source = automatch_for_deal(make_deal(), [make_cde()], YEAR)
        assert source == "local"

    def test_backend_item_conversion(self):
        match = cde_match_from_backend({"cdeId": "c1", "matchScore": "64.6", "reasons": ["Serves CA"]})
        assert match.score == 65
        assert match.strength == "good"
        assert match.cde_name == "Unknown CDE"
        assert match.reasons == ["Serves CA"]
