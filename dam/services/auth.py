import logging
from typing import Any, Optional

from dam.core.constants import AuthErrorDetails, UserRole
from dam.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from dam.core.security import TokenCodec, TokenStatus, hash_password, verify_password
from dam.core.transaction import TransactionCoordinator
from dam.interfaces.user_repository import IUserRepository
from dam.repositories.revocation_store import RevocationStore

logger = logging.getLogger(__name__)


def public_user(user: dict) -> dict[str, Any]:
    """The user fields that may leave the service. Never includes the password hash."""
    return {
        "id": user["id"],
        "email": user["email"],
        "role": user.get("role", UserRole.USER.value),
        "created_at": user.get("created_at"),
    }


class AuthService:
    def __init__(
        self,
        user_repository: IUserRepository,
        token_codec: TokenCodec,
        revocation_store: RevocationStore,
        transactions: TransactionCoordinator,
        bcrypt_rounds: int = 12,
    ):
        self.user_repository = user_repository
        self.token_codec = token_codec
        self.revocation_store = revocation_store
        self.transactions = transactions
        self.bcrypt_rounds = bcrypt_rounds

    def _generate_tokens(self, identity: str) -> dict[str, str]:
        """Generate access and refresh tokens for an identity."""
        token_data = {"sub": identity}
        return {
            "access_token": self.token_codec.issue_access_token(token_data),
            "refresh_token": self.token_codec.issue_refresh_token(token_data),
        }

    async def _store_refresh_token(self, identity: str, refresh_token: str) -> None:
        # Best effort: the credential is already committed, so a cache outage
        # only means this refresh token will be refused later.
        result = await self.revocation_store.put(identity, refresh_token)
        if not result.ok:
            logger.warning(f"Issued tokens for {identity} without a stored refresh token ({result.status})")

    async def register(self, email: str, password: str) -> dict[str, Any]:
        """Create a credential and sign the new user in.

        The existence check and the insert share one transaction. Tokens are
        minted and the refresh token cached only after the commit.

        Raises:
            ValidationError: if email or password is missing
            ConflictError: if the email is already registered
        """
        if not email or not password:
            raise ValidationError(AuthErrorDetails.EMAIL_AND_PASSWORD_REQUIRED)

        async with self.transactions.transaction() as session:
            existing = await self.user_repository.get_by_email(email, session=session)
            if existing:
                raise ConflictError(AuthErrorDetails.USER_ALREADY_EXISTS, data={"email": existing["email"]})

            password_hash = hash_password(password, rounds=self.bcrypt_rounds)
            user = await self.user_repository.create(
                {"email": email, "password_hash": password_hash, "role": UserRole.USER},
                session=session,
            )

        tokens = self._generate_tokens(user["id"])
        await self._store_refresh_token(user["id"], tokens["refresh_token"])
        logger.info(f"Registered user {user['id']}")
        return {"user": public_user(user), **tokens}

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Check a credential and issue a fresh token pair.

        Both failure modes are reported with HTTP 400, matching the public API.
        """
        if not email or not password:
            raise ValidationError(AuthErrorDetails.EMAIL_AND_PASSWORD_REQUIRED)

        user = await self.user_repository.get_by_email(email)
        if not user:
            raise NotFoundError(AuthErrorDetails.USER_NOT_FOUND, status_code=400)

        if not verify_password(password, user["password_hash"]):
            raise UnauthorizedError(AuthErrorDetails.INVALID_PASSWORD, status_code=400)

        tokens = self._generate_tokens(user["id"])
        await self._store_refresh_token(user["id"], tokens["refresh_token"])
        return {"user": public_user(user), **tokens}

    async def refresh(self, refresh_token: Optional[str]) -> dict[str, str]:
        """Exchange a live refresh token for a new pair, retiring the old one.

        Fails closed: a token the store cannot confirm, or one that loses the
        rotation race to a concurrent refresh, is refused.
        """
        if not refresh_token:
            raise UnauthorizedError(AuthErrorDetails.REFRESH_TOKEN_MISSING)

        claims = self.token_codec.verify_refresh(refresh_token)
        if claims is None:
            raise ForbiddenError(AuthErrorDetails.REFRESH_TOKEN_INVALID)
        identity = claims["sub"]

        validated = await self.revocation_store.validate(identity, refresh_token)
        if not validated.ok or not validated.value:
            logger.info(f"Refresh refused for {identity} (store status {validated.status})")
            raise ForbiddenError(AuthErrorDetails.REFRESH_TOKEN_INVALID)

        tokens = self._generate_tokens(identity)
        rotated = await self.revocation_store.rotate(identity, refresh_token, tokens["refresh_token"])
        if not rotated.ok or not rotated.value:
            logger.info(f"Refresh token rotation lost for {identity} (store status {rotated.status})")
            raise ForbiddenError(AuthErrorDetails.REFRESH_TOKEN_INVALID)

        return tokens

    async def logout(self, refresh_token: Optional[str]) -> bool:
        """Revoke the identity's refresh token. Returns whether an entry was removed."""
        if not refresh_token:
            raise UnauthorizedError(AuthErrorDetails.REFRESH_TOKEN_MISSING)

        claims = self.token_codec.decode_unsafe(refresh_token)
        if not claims or not claims.get("sub"):
            raise UnauthorizedError(AuthErrorDetails.REFRESH_TOKEN_MALFORMED)

        result = await self.revocation_store.invalidate(claims["sub"])
        return result.ok and result.value

    async def authenticate(self, access_token: Optional[str]) -> dict[str, Any]:
        """Resolve a bearer access token to the public view of its user."""
        if not access_token:
            raise UnauthorizedError(AuthErrorDetails.ACCESS_TOKEN_MISSING)

        status, claims = self.token_codec.inspect_access(access_token)
        if status is TokenStatus.EXPIRED:
            raise UnauthorizedError(AuthErrorDetails.ACCESS_TOKEN_EXPIRED)
        if status is not TokenStatus.VALID:
            raise ForbiddenError(AuthErrorDetails.ACCESS_TOKEN_INVALID)

        user = await self.user_repository.get_by_id(claims["sub"])
        if not user:
            raise UnauthorizedError(AuthErrorDetails.USER_NOT_FOUND)
        return public_user(user)
