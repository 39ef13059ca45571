"""Health and error response bodies."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness body; never inspects the database or Stripe."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=utc_now)


class CheckResult(BaseModel):
    """Outcome of one readiness check (``database`` or ``payment_gateway``)."""

    name: str
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None


class ReadinessResponse(BaseModel):
    status: HealthStatus
    timestamp: datetime = Field(default_factory=utc_now)
    checks: list[CheckResult] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Body of every non-2xx response.

    ``error`` is the machine-readable kind (``not_found``, ``conflict``,
    ``dependency_error`` ...) and ``message`` is safe to show a shopper.
    Request validation failures list each offending field in ``details``
    as ``{"loc", "msg", "type"}``.
    """

    error: str = Field(description="Error kind")
    message: str = Field(description="Human-readable error description")
    details: list[dict[str, Any]] | None = Field(default=None, description="Per-field or per-item problems")
    request_id: str | None = Field(default=None, description="X-Request-ID of the failed request")
    timestamp: datetime = Field(default_factory=utc_now)
