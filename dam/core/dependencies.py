"""Dependencies for FastAPI endpoints."""
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from limits import parse_many
from slowapi.util import get_remote_address

from dam.core.config import Settings
from dam.core.constants import AuthErrorDetails, GeneralErrorDetails
from dam.core.container import Container
from dam.core.exceptions import RateLimitedError
from dam.services.asset import AssetService
from dam.services.auth import AuthService
from dam.services.health import HealthCheckService
from dam.services.storage import LocalFileStorage

# HTTP Bearer token scheme; a missing header is reported by AuthService, not FastAPI.
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_auth_service(container: Container = Depends(get_container)) -> AuthService:
    return container.auth_service


def get_asset_service(container: Container = Depends(get_container)) -> AssetService:
    return container.asset_service


def get_file_storage(container: Container = Depends(get_container)) -> LocalFileStorage:
    return container.storage


def get_health_service(container: Container = Depends(get_container)) -> HealthCheckService:
    return container.health_service


def create_rate_limit_dependency(
    limit_setting: str,
    endpoint_name: str,
    error_message: str
) -> Callable:
    """
    Factory function to create a rate limiting dependency using slowapi.

    Args:
        limit_setting: Name of the Settings field holding the limit string (e.g. "5/10 minutes")
        endpoint_name: Bucket name, so each limited endpoint counts separately
        error_message: Error message to return when rate limit exceeded

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    async def rate_limit_check(request: Request) -> None:
        settings: Settings = request.app.state.settings
        if not settings.RATE_LIMIT_ENABLED:
            return None

        app_limiter = request.app.state.limiter
        key = get_remote_address(request)
        rate_limit = parse_many(getattr(settings, limit_setting))[0]

        if not app_limiter._limiter.hit(rate_limit, endpoint_name, key):
            raise RateLimitedError(message=error_message)

        return None

    return rate_limit_check


check_login_rate_limit = create_rate_limit_dependency(
    "LOGIN_RATE_LIMIT", "login", AuthErrorDetails.RATE_LIMIT_EXCEEDED_LOGIN
)
check_refresh_rate_limit = create_rate_limit_dependency(
    "REFRESH_RATE_LIMIT", "refresh", AuthErrorDetails.RATE_LIMIT_EXCEEDED_REFRESH
)
check_api_rate_limit = create_rate_limit_dependency(
    "API_RATE_LIMIT", "api", GeneralErrorDetails.RATE_LIMIT_EXCEEDED
)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """
    Authenticate a request by its ``Authorization: Bearer`` access token.

    Raises:
        UnauthorizedError: missing or expired token, or the user no longer exists
        ForbiddenError: bad signature or malformed token
    """
    token = credentials.credentials if credentials else None
    return await auth_service.authenticate(token)
