"""Shared API dependencies: bearer-token identity and admin gate."""

from typing import Optional

from fastapi import Depends, Header
from fastapi.concurrency import run_in_threadpool

from reelroom.core.dependencies import get_identity_provider
from reelroom.core.exceptions import AuthError, ForbiddenError
from reelroom.schemas.users import Identity
from reelroom.services.identity import IdentityProvider


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError("Not authorized, no token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Not authorized, malformed Authorization header")
    return token.strip()


async def get_current_identity(
    authorization: Optional[str] = Header(default=None),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    token = _bearer_token(authorization)
    return await run_in_threadpool(identity.verify, token)


def require_admin(current: Identity = Depends(get_current_identity)) -> Identity:
    if not current.is_admin:
        raise ForbiddenError("Admin access required")
    return current


__all__ = ["get_current_identity", "require_admin"]
