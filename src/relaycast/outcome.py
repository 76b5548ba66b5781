"""
Broadcast outcome model.

One outcome is produced per dispatched endpoint request and returned to
the caller once every request of a fan-out has completed.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from relaycast.errors import EndpointError


@dataclass
class BroadcastOutcome:
    """
    Result of a single endpoint request.

    Attributes:
        endpoint: URL the request was sent to
        succeeded: True when the endpoint accepted the request
        status_code: HTTP status, None on transport failure
        result: Bundle hash or transaction hash reported by the endpoint
        response: Parsed JSON response body, if any
        error: Failure classification when ``succeeded`` is False
        elapsed_ms: Wall-clock duration of the request
    """
    endpoint: str
    succeeded: bool
    status_code: Optional[int] = None
    result: Optional[str] = None
    response: Optional[Any] = None
    error: Optional[EndpointError] = None
    elapsed_ms: float = 0.0

    @property
    def error_kind(self) -> Optional[str]:
        """Name of the error class, e.g. ``EndpointRequestFailed``."""
        return type(self.error).__name__ if self.error else None

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return {
            "endpoint": self.endpoint,
            "succeeded": self.succeeded,
            "status_code": self.status_code,
            "result": self.result,
            "error_kind": self.error_kind,
            "error": self.error.reason if self.error else None,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }


def any_succeeded(outcomes: Iterable[BroadcastOutcome]) -> bool:
    """True when at least one endpoint accepted the request."""
    return any(outcome.succeeded for outcome in outcomes)
