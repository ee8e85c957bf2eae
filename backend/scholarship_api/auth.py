"""Authentication helpers and FastAPI security dependencies.

`get_current_claims` validates the bearer token and returns its decoded
payload. Role checks are plain functions over the store handle and the
claims (`check_role`) that return an `AccessDecision`; the
`require_admin` / `require_moderator` dependencies turn a denial into a
403. Every check performs a fresh user lookup.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database

from . import models, repositories
from .config import settings
from .database import get_database

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str = ""


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_current_claims(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> Dict[str, Any]:
    """FastAPI dependency returning the verified token claims.

    Missing or non-Bearer headers, bad signatures, expired tokens and
    tokens without an email all yield 401.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized access")
    claims = decode_token(credentials.credentials)
    if not claims.get("email"):
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return claims


def check_role(db: Database, claims: Dict[str, Any], allowed_roles: Iterable[str]) -> AccessDecision:
    """Decide whether the caller's stored role is one of `allowed_roles`."""
    user = repositories.UserRepository(db).get_by_email(claims.get("email"))
    if not user:
        return AccessDecision(False, "User not found")
    if user.get("role") not in set(allowed_roles):
        return AccessDecision(False, "Forbidden access")
    return AccessDecision(True)


def enforce(decision: AccessDecision) -> None:
    if not decision.allowed:
        raise HTTPException(status_code=403, detail=decision.reason)


def require_admin(claims: Dict[str, Any] = Depends(get_current_claims), db: Database = Depends(get_database)) -> Dict[str, Any]:
    enforce(check_role(db, claims, (models.ROLE_ADMIN,)))
    return claims


def require_moderator(claims: Dict[str, Any] = Depends(get_current_claims), db: Database = Depends(get_database)) -> Dict[str, Any]:
    """Admins pass the moderator check too."""
    enforce(check_role(db, claims, (models.ROLE_ADMIN, models.ROLE_MODERATOR)))
    return claims
