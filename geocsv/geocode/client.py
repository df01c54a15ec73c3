"""Google Geocoding API client."""

from __future__ import annotations

from typing import Any

from geocsv.common.config_loader import GeocoderSettings, is_usable_api_key
from geocsv.common.constants import GOOGLE_GEOCODE_URL
from geocsv.common.http import HttpClient, HttpRequestError, RetryConfig, TimeoutConfig
from geocsv.geocode.outcomes import GeocodeOutcome

STATUS_ZERO_RESULTS = "ZERO_RESULTS"
STATUS_OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"


def _first_location(payload: dict[str, Any]) -> tuple[float, float] | None:
    results = payload.get("results") or []
    if not results:
        return None
    location = (results[0].get("geometry") or {}).get("location") or {}
    if location.get("lat") is None or location.get("lng") is None:
        return None
    return float(location["lat"]), float(location["lng"])


def classify_payload(payload: dict[str, Any]) -> GeocodeOutcome:
    """Map a decoded geocode response onto an outcome."""
    location = _first_location(payload)
    if location is not None:
        return GeocodeOutcome.success(*location)

    status = payload.get("status")
    error_message = payload.get("error_message") or "No additional error message."
    detail = f"API Status: {status}. Details: {error_message}"
    if status == STATUS_ZERO_RESULTS:
        return GeocodeOutcome.not_found(detail)
    if status == STATUS_OVER_QUERY_LIMIT:
        return GeocodeOutcome.rate_limited(detail)
    return GeocodeOutcome.api_error(detail)


class GeocodeClient:
    """Performs one lookup per call and never retries on its own."""

    def __init__(
        self,
        api_key: str | None,
        *,
        endpoint: str = GOOGLE_GEOCODE_URL,
        http_client: HttpClient | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self._owns_http = http_client is None
        self.http = http_client or HttpClient(timeout=timeout)

    @classmethod
    def from_settings(cls, api_key: str | None, settings: GeocoderSettings) -> "GeocodeClient":
        timeout = TimeoutConfig(connect=settings.connect_timeout, read=settings.read_timeout)
        http_client = HttpClient(timeout=timeout, retry=RetryConfig(max_attempts=settings.max_attempts))
        client = cls(api_key, endpoint=settings.endpoint, http_client=http_client, timeout=timeout)
        client._owns_http = True
        return client

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "GeocodeClient":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    def _redact(self, text: str) -> str:
        if self.api_key:
            return text.replace(self.api_key, "***")
        return text

    def lookup(self, address: str | None) -> GeocodeOutcome:
        if address is None or not str(address).strip():
            return GeocodeOutcome.empty_address()
        if not is_usable_api_key(self.api_key):
            return GeocodeOutcome.key_missing()

        try:
            payload = self.http.get_json(
                self.endpoint,
                params={"address": str(address), "key": self.api_key},
                timeout=self.timeout,
            )
        except HttpRequestError as exc:
            # Error statuses that still carry a provider body are classified from it.
            if isinstance(exc.payload, dict) and exc.payload.get("status"):
                return classify_payload(exc.payload)
            return GeocodeOutcome.transport_error(self._redact(f"Request failed: {exc}"))

        if not isinstance(payload, dict):
            return GeocodeOutcome.transport_error("Request failed: unexpected response body")
        return classify_payload(payload)
