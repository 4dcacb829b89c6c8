"""
Caller identity from the Cognito authorizer.

Claims arrive in `requestContext.authorizer.claims` (REST API) or
`requestContext.authorizer.jwt.claims` (HTTP API). The portal reads:
  sub                         → user id
  email
  custom:role                 → admin | specialist | user (default user)
  custom:assignedIndustries   → JSON list of industry ids, specialists only
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field

from portal_shared.errors import ForbiddenError, UnauthorizedError
from portal_shared.logger import get_logger

logger = get_logger(__name__)

ROLES = ("admin", "specialist", "user")


@dataclass
class AuthUser:
    user_id: str
    email: str | None
    role: str = "user"
    assigned_industries: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_user_from_event(event: dict) -> AuthUser | None:
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    claims = authorizer.get("claims") or (authorizer.get("jwt") or {}).get("claims")
    if not claims or not claims.get("sub"):
        return None

    assigned: list[str] = []
    raw = claims.get("custom:assignedIndustries")
    if raw:
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Malformed custom:assignedIndustries claim", extra={"user_id": claims["sub"]})
            parsed = []
        if isinstance(parsed, list):
            assigned = [str(i) for i in parsed]

    return AuthUser(
        user_id=claims["sub"],
        email=claims.get("email"),
        role=claims.get("custom:role") or "user",
        assigned_industries=assigned,
    )


def has_role(user: AuthUser | None, *roles: str) -> bool:
    return user is not None and user.role in roles


def has_industry_access(user: AuthUser | None, industry_id: str) -> bool:
    if user is None:
        return False
    if user.role == "admin":
        return True
    if user.role == "specialist":
        return industry_id in user.assigned_industries
    return False


def require_role(event: dict, *roles: str) -> AuthUser:
    """Return the caller if they hold one of `roles`; 401 when anonymous, 403 otherwise."""
    user = get_user_from_event(event)
    if user is None:
        raise UnauthorizedError()
    if not has_role(user, *roles):
        raise ForbiddenError()
    return user


def require_industry_access(user: AuthUser, industry_id: str) -> None:
    if not has_industry_access(user, industry_id):
        raise ForbiddenError("No access to this industry")
