from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
import re

_EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class UserCredentialsRequest(BaseModel):
    """Body of both the register and the login request."""
    model_config = ConfigDict(extra='forbid')
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class UserData(BaseModel):
    model_config = ConfigDict(extra='ignore')
    id: str
    email: str
    role: str
    created_at: datetime | None = None


class AccessTokenResponse(BaseModel):
    model_config = ConfigDict(extra='ignore')
    access_token: str
    token_type: str = "bearer"
