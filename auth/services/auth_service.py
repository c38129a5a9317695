from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from auth.principal import Principal
from core.config_loader import settings
from core.errors import UnauthenticatedError

logger = logging.getLogger("orgdirectory.auth")

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    *,
    roles: Iterable[str] = (),
    attributes: Optional[dict[str, Any]] = None,
    expires_minutes: int = 60,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "roles": sorted(set(roles)),
        "attributes": attributes or {},
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def principal_from_claims(claims: dict[str, Any]) -> Principal:
    subject = claims.get("sub")
    if not subject:
        raise UnauthenticatedError("Token has no subject.")

    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]

    attributes: dict[str, list[str]] = {}
    for name, value in (claims.get("attributes") or {}).items():
        if value is None:
            continue
        attributes[name] = [str(v) for v in value] if isinstance(value, (list, tuple)) else [str(value)]

    return Principal(user_id=str(subject), roles=frozenset(str(r) for r in roles), attributes=attributes)


def decode_access_token(token: str) -> Principal:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        logger.info("invalid_token")
        raise UnauthenticatedError("Invalid or expired token.")
    return principal_from_claims(claims)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()
    return decode_access_token(credentials.credentials)
