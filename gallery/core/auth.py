from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, get_settings
from .logging import get_logger


bearer_scheme = HTTPBearer(auto_error=False)
logger = get_logger(component="auth")

ADMIN_SCOPE = "admin"


@dataclass(frozen=True)
class AuthContext:
    """Caller identity taken from a verified bearer token."""

    user_id: Optional[str] = None
    scopes: frozenset[str] = frozenset()

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "AuthContext":
        raw_scopes = claims.get("scopes") or claims.get("scope") or []
        if isinstance(raw_scopes, str):
            raw_scopes = raw_scopes.split()
        return cls(user_id=claims.get("sub") or claims.get("user_id"), scopes=frozenset(raw_scopes))


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            settings.secrets.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt.PyJWTError as exc:
        logger.info("token_rejected", reason=exc.__class__.__name__)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from exc


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_authorization")
    context = AuthContext.from_claims(decode_token(credentials.credentials, settings))
    request.state.auth = context
    return context


def require_scope(scope: str) -> Callable[..., Awaitable[AuthContext]]:
    """Dependency factory: 403 unless the token carries ``scope``."""

    async def _check(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not context.has_scope(scope):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{scope}_scope_required")
        return context

    return _check


require_admin = require_scope(ADMIN_SCOPE)


__all__ = ["ADMIN_SCOPE", "AuthContext", "decode_token", "get_auth_context", "require_admin", "require_scope"]
