"""
Accounts and access tokens.

Passwords are stored as bcrypt hashes (passlib). Access tokens are HS-signed
JWTs (python-jose) carrying ``sub``, ``email``, ``role``, ``iat`` and
``exp``; only ``sub`` is trusted on the way back in, the role is re-read
from the stored user on every request.
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from bookstore_api.config import get_settings
from bookstore_api.models.auth import (
    CurrentUser, LoginRequest, SignupRequest, TokenPayload, TokenResponse, UserDB
)
from bookstore_api.repositories.user_repo import UserRepository

logger = structlog.get_logger(__name__)


@lru_cache()
def password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


class AuthService:
    """Sign-up, sign-in and token resolution over the users collection."""

    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo
        self.settings = get_settings()
        self.pwd_context = password_context(self.settings.password_bcrypt_rounds)

    # -- passwords ---------------------------------------------------------

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Check a password; an empty or unparseable stored hash never matches."""
        if not hashed_password:
            return False
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            logger.warning("stored_password_hash_unreadable")
            return False

    # -- tokens ------------------------------------------------------------

    def create_access_token(
        self,
        user_id: str,
        email: str,
        role: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Sign an access token.

        Args:
            user_id: Becomes the ``sub`` claim
            email: Email claim
            role: Role at issue time, informational only
            expires_delta: Lifetime; the configured one when omitted

        Returns:
            Encoded JWT
        """
        lifetime = expires_delta or timedelta(minutes=self.settings.jwt_access_token_expire_minutes)
        issued = datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "email": email,
            "role": role,
            "iat": int(issued.timestamp()),
            "exp": int((issued + lifetime).timestamp()),
        }
        return jwt.encode(claims, self.settings.jwt_secret_key, algorithm=self.settings.jwt_algorithm)

    def decode_token(self, token: str) -> Optional[TokenPayload]:
        """Verified claims, or None for a bad signature, expiry or missing claim."""
        try:
            claims = jwt.decode(token, self.settings.jwt_secret_key, algorithms=[self.settings.jwt_algorithm])
            return TokenPayload.model_validate(claims)
        except JWTError as e:
            logger.info("token_rejected", reason=str(e))
        except ValidationError as e:
            logger.warning("token_claims_incomplete", errors=e.error_count())
        return None

    # -- flows -------------------------------------------------------------

    async def register(self, request: SignupRequest) -> UserDB:
        """
        Create an account with the role the sign-up form is allowed to ask for.

        Raises:
            ValueError: If the email is already registered
        """
        user = await self.user_repo.create_user(
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            password_hash=self.hash_password(request.password),
            role=request.effective_role(),
        )
        logger.info("account_created", user_id=user.id, role=user.role)
        return user

    async def authenticate_user(self, email: str, password: str) -> Optional[UserDB]:
        user = await self.user_repo.get_user_by_email(email)
        if user is None or not self.verify_password(password, user.password_hash):
            logger.warning("signin_rejected", email=email, known_email=user is not None)
            return None
        return user

    async def login(self, login_request: LoginRequest) -> Optional[TokenResponse]:
        """Token for valid credentials, None otherwise."""
        user = await self.authenticate_user(login_request.email, login_request.password)
        if user is None:
            return None

        logger.info("signin_succeeded", user_id=user.id, role=user.role)
        return TokenResponse(
            access_token=self.create_access_token(user.id, user.email, user.role),
            token_type="bearer",
            expires_in=self.settings.access_token_expire_seconds,
        )

    async def get_current_user(self, token: str) -> Optional[CurrentUser]:
        """
        Resolve the caller behind a token.

        Returns:
            The stored user's identity and current role, or None when the
            token is invalid or the account no longer exists
        """
        payload = self.decode_token(token)
        if payload is None:
            return None

        user = await self.user_repo.get_user_by_id(payload.sub)
        if user is None:
            logger.warning("token_subject_missing", user_id=payload.sub)
            return None

        return CurrentUser(
            id=user.id,
            email=user.email,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
        )
