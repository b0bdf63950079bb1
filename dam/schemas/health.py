"""Health check schemas for monitoring application status."""
from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ComponentHealth(BaseModel):
    """Health status of a single component."""
    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        description="Component health status"
    )
    message: Optional[str] = Field(
        default=None,
        description="Additional information about the component status"
    )
    latency_ms: Optional[float] = Field(
        default=None,
        description="Component response latency in milliseconds"
    )
    details: Optional[Dict] = Field(
        default=None,
        description="Additional component-specific details"
    )


class HealthCheckResponse(BaseModel):
    """Comprehensive health check response."""
    status: Literal["healthy", "unhealthy", "degraded"]
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str
    uptime_seconds: float
    components: Dict[str, ComponentHealth]
