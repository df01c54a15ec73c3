from __future__ import annotations

from geocsv.common.http import HttpRequestError, RetryableHttpError
from geocsv.geocode.client import GeocodeClient, classify_payload
from geocsv.geocode.outcomes import OutcomeKind

API_KEY = "test-key-0123456789"


class FakeHttp:
    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls: list[dict] = []

    def get_json(self, url: str, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.payload

    def close(self):
        return None


def _client(http: FakeHttp, api_key: str | None = API_KEY) -> GeocodeClient:
    return GeocodeClient(api_key, endpoint="https://geo.example/json", http_client=http)


def test_empty_address_skips_network():
    http = FakeHttp({"results": []})
    client = _client(http)

    assert client.lookup("").kind is OutcomeKind.EMPTY_ADDRESS
    assert client.lookup("   ").kind is OutcomeKind.EMPTY_ADDRESS
    assert client.lookup(None).kind is OutcomeKind.EMPTY_ADDRESS
    assert http.calls == []


def test_missing_or_placeholder_key_fails_fast():
    http = FakeHttp({"results": []})

    for key in (None, "", "YOUR_GOOGLE_MAPS_API_KEY", "short"):
        outcome = _client(http, api_key=key).lookup("10 Downing St")
        assert outcome.kind is OutcomeKind.KEY_MISSING
        assert outcome.coordinates() == ("API_KEY_MISSING", "API_KEY_MISSING")
    assert http.calls == []


def test_success_uses_first_candidate():
    http = FakeHttp(
        {
            "status": "OK",
            "results": [
                {"geometry": {"location": {"lat": 51.5237, "lng": -0.1585}}},
                {"geometry": {"location": {"lat": 1.0, "lng": 2.0}}},
            ],
        }
    )
    outcome = _client(http).lookup("221B Baker St")

    assert outcome.kind is OutcomeKind.SUCCESS
    assert (outcome.lat, outcome.lon) == (51.5237, -0.1585)
    assert http.calls[0]["params"] == {"address": "221B Baker St", "key": API_KEY}
    assert http.calls[0]["url"] == "https://geo.example/json"


def test_status_classification():
    zero = classify_payload({"status": "ZERO_RESULTS", "results": []})
    limited = classify_payload({"status": "OVER_QUERY_LIMIT", "results": [], "error_message": "slow down"})
    denied = classify_payload({"status": "REQUEST_DENIED", "error_message": "key rejected"})

    assert zero.kind is OutcomeKind.NOT_FOUND
    assert zero.detail == "API Status: ZERO_RESULTS. Details: No additional error message."
    assert limited.kind is OutcomeKind.RATE_LIMITED
    assert limited.coordinates() == ("Rate Limit Error", "Rate Limit Error")
    assert denied.kind is OutcomeKind.API_ERROR
    assert denied.detail == "API Status: REQUEST_DENIED. Details: key rejected"


def test_transport_failure_is_redacted():
    http = FakeHttp(error=RetryableHttpError(f"timed out calling https://geo.example/json?key={API_KEY}"))
    outcome = _client(http).lookup("1 Main St")

    assert outcome.kind is OutcomeKind.TRANSPORT_ERROR
    assert outcome.detail.startswith("Request failed: ")
    assert API_KEY not in outcome.detail
    assert outcome.coordinates() == ("Request Error", "Request Error")


def test_error_status_with_provider_body_is_classified_from_body():
    error = HttpRequestError("HTTP status: 400", status_code=400, payload={"status": "INVALID_REQUEST"})
    outcome = _client(FakeHttp(error=error)).lookup("1 Main St")

    assert outcome.kind is OutcomeKind.API_ERROR
    assert "INVALID_REQUEST" in outcome.detail


def test_error_status_without_body_is_transport_error():
    error = HttpRequestError("HTTP status: 502", status_code=502, payload=None)
    outcome = _client(FakeHttp(error=error)).lookup("1 Main St")

    assert outcome.kind is OutcomeKind.TRANSPORT_ERROR
    assert outcome.detail == "Request failed: HTTP status: 502"
