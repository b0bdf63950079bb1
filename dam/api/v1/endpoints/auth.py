from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from dam.core.config import Settings
from dam.core.dependencies import (
    check_api_rate_limit,
    check_login_rate_limit,
    check_refresh_rate_limit,
    get_app_settings,
    get_auth_service,
    get_current_user,
)
from dam.core.exceptions import UnauthorizedError
from dam.core.handler import create_error_response
from dam.schemas.response import ApiResponse
from dam.schemas.user import AccessTokenResponse, UserCredentialsRequest, UserData
from dam.services.auth import AuthService

router = APIRouter()


def _set_refresh_cookie(response: Response, settings: Settings, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=settings.COOKIE_HTTP_ONLY,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAME_SITE,
        max_age=settings.refresh_token_ttl_seconds
    )


def _clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        httponly=settings.COOKIE_HTTP_ONLY,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAME_SITE
    )


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user: UserCredentialsRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Create an account and sign it in."""
    result = await auth_service.register(email=user.email, password=user.password)
    _set_refresh_cookie(response, settings, result["refresh_token"])

    return ApiResponse(
        success=True,
        message="User registered successfully",
        data=AccessTokenResponse(access_token=result["access_token"])
    )


@router.post("/login", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def login(
    user: UserCredentialsRequest,
    response: Response,
    _: None = Depends(check_login_rate_limit),
    settings: Settings = Depends(get_app_settings),
    auth_service: AuthService = Depends(get_auth_service)
):
    result = await auth_service.login(email=user.email, password=user.password)
    _set_refresh_cookie(response, settings, result["refresh_token"])

    return ApiResponse(
        success=True,
        message="Login successful",
        data=AccessTokenResponse(access_token=result["access_token"])
    )


@router.post("/logout", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def logout(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Revoke the refresh token. The cookie is cleared even when the request is rejected."""
    try:
        await auth_service.logout(request.cookies.get(settings.REFRESH_COOKIE_NAME))
    except UnauthorizedError as exc:
        error_response: JSONResponse = create_error_response(
            exc.status_code, exc.message, {"error": exc.kind.value}
        )
        _clear_refresh_cookie(error_response, settings)
        return error_response

    _clear_refresh_cookie(response, settings)
    return ApiResponse(success=True, message="Logged out successfully")


@router.post("/refresh", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def refresh(
    request: Request,
    response: Response,
    _: None = Depends(check_refresh_rate_limit),
    settings: Settings = Depends(get_app_settings),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Rotate the refresh token from the cookie and return a new access token."""
    tokens = await auth_service.refresh(request.cookies.get(settings.REFRESH_COOKIE_NAME))
    _set_refresh_cookie(response, settings, tokens["refresh_token"])

    return ApiResponse(
        success=True,
        message="Token refreshed successfully",
        data=AccessTokenResponse(access_token=tokens["access_token"])
    )


@router.get("/me", response_model=ApiResponse, dependencies=[Depends(check_api_rate_limit)])
async def me(current_user: dict = Depends(get_current_user)):
    return ApiResponse(
        success=True,
        message="User retrieved successfully",
        data=UserData(**current_user)
    )
