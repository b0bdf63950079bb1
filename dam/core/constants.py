from enum import StrEnum


class UserRole(StrEnum):
    """Stored role of a credential."""
    ADMIN = "admin"
    USER = "user"


class AssetStatus(StrEnum):
    """Lifecycle status of an asset record."""
    ACTIVE = "active"
    DELETED = "deleted"


class TokenType(StrEnum):
    ACCESS = "access"
    REFRESH = "refresh"


class AuthErrorDetails(StrEnum):
    """Authentication and authorization related error messages."""

    EMAIL_AND_PASSWORD_REQUIRED = "Email and password are required"
    USER_ALREADY_EXISTS = "User already exists"
    USER_NOT_FOUND = "User not found"
    INVALID_PASSWORD = "Incorrect password"

    RATE_LIMIT_EXCEEDED_LOGIN = "Too many login attempts from this IP, please try again after 10 minutes"
    RATE_LIMIT_EXCEEDED_REFRESH = "Too many token refresh attempts, slow down!"

    ACCESS_TOKEN_MISSING = "Access token is missing"
    ACCESS_TOKEN_EXPIRED = "Access token expired"
    ACCESS_TOKEN_INVALID = "Invalid access token"
    REFRESH_TOKEN_MISSING = "Refresh token is missing"
    REFRESH_TOKEN_MALFORMED = "Refresh token is malformed"
    REFRESH_TOKEN_INVALID = "Invalid or expired refresh token"


class AssetErrorDetails(StrEnum):
    """Asset related error messages."""

    FILE_REQUIRED = "A file upload is required"
    FILE_TOO_LARGE = "Uploaded file exceeds the maximum allowed size"
    INVALID_ASSET_ID = "Valid asset id is required"
    INVALID_OWNER_ID = "Valid owner id is required"
    ASSET_NOT_FOUND = "Asset not found"
    ASSET_ALREADY_DELETED = "Asset not found or already deleted"


class GeneralErrorDetails(StrEnum):
    """General application error messages."""

    INTERNAL_SERVER_ERROR = "Internal server error! Try again later."
    BAD_REQUEST = "Invalid request"
    UNAUTHORIZED = "Authentication required"
    FORBIDDEN = "Access forbidden"
    RATE_LIMIT_EXCEEDED = "Too many requests, try again later."
