"""Health check service for the database and the refresh-token cache."""
import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from dam.core.cache import CacheManager
from dam.schemas.health import ComponentHealth, HealthCheckResponse


class HealthCheckService:
    """Reports component status. A down cache is degraded service, a down database is not service at all."""

    def __init__(
        self,
        database_check: Callable[[], Awaitable[bool]],
        database_type: str,
        cache: CacheManager,
        version: str = "1.0.0",
    ):
        self._database_check = database_check
        self._database_type = database_type
        self._cache = cache
        self.version = version
        self._started_at = time.time()

    async def check_database(self) -> ComponentHealth:
        start_time = time.time()
        try:
            is_connected = await self._database_check()
        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000
            return ComponentHealth(
                status="unhealthy",
                message=f"Database check failed: {str(e)}",
                latency_ms=round(latency_ms, 2)
            )

        latency_ms = (time.time() - start_time) * 1000
        return ComponentHealth(
            status="healthy" if is_connected else "unhealthy",
            message="Database connection successful" if is_connected else "Database connection failed",
            latency_ms=round(latency_ms, 2),
            details={"type": self._database_type, "connected": is_connected}
        )

    async def check_cache(self) -> ComponentHealth:
        start_time = time.time()
        available = await self._cache.is_available()
        latency_ms = (time.time() - start_time) * 1000

        if available:
            return ComponentHealth(
                status="healthy",
                message="Cache connection successful",
                latency_ms=round(latency_ms, 2),
                details={"connected": True}
            )
        return ComponentHealth(
            status="degraded",
            message="Cache unavailable; refresh tokens cannot be confirmed",
            latency_ms=round(latency_ms, 2),
            details={"connected": False}
        )

    def get_uptime(self) -> float:
        return time.time() - self._started_at

    async def get_comprehensive_health(self) -> HealthCheckResponse:
        database_health, cache_health = await asyncio.gather(
            self.check_database(),
            self.check_cache()
        )
        components = {"database": database_health, "cache": cache_health}

        statuses = [comp.status for comp in components.values()]
        if "unhealthy" in statuses:
            overall_status = "unhealthy"
        elif "degraded" in statuses:
            overall_status = "degraded"
        else:
            overall_status = "healthy"

        return HealthCheckResponse(
            status=overall_status,
            timestamp=datetime.now(timezone.utc),
            version=self.version,
            uptime_seconds=round(self.get_uptime(), 2),
            components=components
        )
