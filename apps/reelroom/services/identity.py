"""Identity tokens: issue and verify signed JWTs and resolve the caller."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

import jwt

from reelroom.core.exceptions import AuthError, ConfigurationError, NotFoundError
from reelroom.core.settings import Settings, get_settings
from reelroom.core.utils import utcnow
from reelroom.schemas.users import Identity
from reelroom.services.users import UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class IdentityProvider:
    users: UserDirectory
    secret_key: str
    algorithm: str = "HS256"
    ttl_minutes: int = 60 * 24 * 7

    def __post_init__(self) -> None:
        if not (self.secret_key or "").strip():
            raise ConfigurationError("SECRET_KEY must be set to sign identity tokens")

    @classmethod
    def from_settings(cls, users: UserDirectory, cfg: Settings | None = None) -> "IdentityProvider":
        """Build a provider from settings; refuses to start without SECRET_KEY."""

        cfg = cfg or get_settings()
        secret = cfg.secret_key.get_secret_value() if cfg.secret_key is not None else ""
        return cls(
            users=users,
            secret_key=secret,
            algorithm=cfg.jwt_algorithm,
            ttl_minutes=cfg.access_token_ttl_minutes,
        )

    def issue_token(self, user_id: str) -> str:
        now = utcnow()
        claims = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(minutes=self.ttl_minutes),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str | None) -> Identity:
        """Return the identity behind `token` or raise AuthError."""

        if not token or not token.strip():
            raise AuthError("Authentication token is required")
        try:
            claims = jwt.decode(
                token.strip(),
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Token has expired", code="token_expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("Invalid token", code="invalid_token") from exc

        user_id = str(claims.get("sub") or "")
        try:
            user = self.users.get_user(user_id)
        except NotFoundError as exc:
            raise AuthError("Token subject not found", code="invalid_token") from exc

        if user.get("is_blocked"):
            logger.info("Blocked user %s refused", user_id)
            raise AuthError("User is blocked", code="user_blocked")

        return Identity(
            user_id=user["id"],
            name=user.get("name") or "",
            is_admin=bool(user.get("is_admin")),
        )


__all__ = ["IdentityProvider"]
