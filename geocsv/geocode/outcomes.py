"""Tagged geocoding outcomes and how each one is reported."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    EMPTY_ADDRESS = "empty_address"
    KEY_MISSING = "key_missing"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    API_ERROR = "api_error"
    TRANSPORT_ERROR = "transport_error"
    CEILING_SKIPPED = "ceiling_skipped"


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FAIL = "FAIL"
    FATAL = "FATAL"


PLACEHOLDERS: dict[OutcomeKind, str] = {
    OutcomeKind.EMPTY_ADDRESS: "",
    OutcomeKind.CEILING_SKIPPED: "",
    OutcomeKind.KEY_MISSING: "API_KEY_MISSING",
    OutcomeKind.NOT_FOUND: "Not Found",
    OutcomeKind.RATE_LIMITED: "Rate Limit Error",
    OutcomeKind.API_ERROR: "API Error",
    OutcomeKind.TRANSPORT_ERROR: "Request Error",
}

KEY_MISSING_MESSAGE = (
    "Google API Key is not set or is invalid. Please ensure it is correctly set "
    "in your .env file (GOOGLE_API_KEY=YOUR_ACTUAL_KEY)."
)
EMPTY_ADDRESS_MESSAGE = "Skipped - Address field is empty or invalid."


@dataclass(frozen=True)
class GeocodeOutcome:
    kind: OutcomeKind
    lat: float | None = None
    lon: float | None = None
    detail: str = ""

    @classmethod
    def success(cls, lat: float, lon: float) -> "GeocodeOutcome":
        return cls(OutcomeKind.SUCCESS, lat=lat, lon=lon, detail="Success")

    @classmethod
    def empty_address(cls) -> "GeocodeOutcome":
        return cls(OutcomeKind.EMPTY_ADDRESS, detail=EMPTY_ADDRESS_MESSAGE)

    @classmethod
    def key_missing(cls) -> "GeocodeOutcome":
        return cls(OutcomeKind.KEY_MISSING, detail=KEY_MISSING_MESSAGE)

    @classmethod
    def not_found(cls, detail: str) -> "GeocodeOutcome":
        return cls(OutcomeKind.NOT_FOUND, detail=detail)

    @classmethod
    def rate_limited(cls, detail: str) -> "GeocodeOutcome":
        return cls(OutcomeKind.RATE_LIMITED, detail=detail)

    @classmethod
    def api_error(cls, detail: str) -> "GeocodeOutcome":
        return cls(OutcomeKind.API_ERROR, detail=detail)

    @classmethod
    def transport_error(cls, detail: str) -> "GeocodeOutcome":
        return cls(OutcomeKind.TRANSPORT_ERROR, detail=detail)

    @classmethod
    def ceiling_skipped(cls, ceiling: int) -> "GeocodeOutcome":
        return cls(
            OutcomeKind.CEILING_SKIPPED,
            detail=f"Skipped: record ceiling ({ceiling}) reached for this run.",
        )

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def coordinates(self) -> tuple[str, str]:
        """Values for the Latitude and Longitude output columns."""
        if self.kind is OutcomeKind.SUCCESS:
            return str(self.lat), str(self.lon)
        placeholder = PLACEHOLDERS[self.kind]
        return placeholder, placeholder


def severity_for(outcome: GeocodeOutcome) -> Severity | None:
    """Diagnostics severity for an outcome, or None when nothing is logged."""
    if outcome.kind in (OutcomeKind.SUCCESS, OutcomeKind.CEILING_SKIPPED):
        return None
    if outcome.kind is OutcomeKind.EMPTY_ADDRESS:
        return Severity.INFO
    if outcome.kind is OutcomeKind.KEY_MISSING:
        return Severity.ERROR
    return Severity.FAIL
