"""
Access gate: session credential handling and role checks.

The session credential is an HS256 JWT kept in an http-only cookie. Protected
routes first authenticate the credential, then (for Seller/Admin routes) load
the caller's user record and compare roles.
"""
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from pydantic import BaseModel, EmailStr

from errors import Forbidden, Unauthorized
from users import UserDirectory

logger = logging.getLogger(__name__)

ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "plantnet-dev-secret")
ACCESS_TOKEN_TTL_DAYS = int(os.getenv("ACCESS_TOKEN_TTL_DAYS", 365))
TOKEN_COOKIE = "token"
ALGORITHM = "HS256"
PRODUCTION = os.getenv("ENV", "development") == "production"


class Identity(BaseModel):
    email: EmailStr


def issue_token(email: str, ttl: Optional[timedelta] = None) -> str:
    expires = datetime.now(timezone.utc) + (ttl if ttl is not None else timedelta(days=ACCESS_TOKEN_TTL_DAYS))
    return jwt.encode({"email": email, "exp": expires}, ACCESS_TOKEN_SECRET, algorithm=ALGORITHM)


def cookie_options() -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": PRODUCTION,
        "samesite": "none" if PRODUCTION else "strict",
    }


def authenticate(token: Optional[str]) -> Identity:
    """Verify the session credential; needs no storage"""
    if not token:
        raise Unauthorized("unauthorized access")
    try:
        claims = jwt.decode(token, ACCESS_TOKEN_SECRET, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.warning("Rejected session credential: %s", e)
        raise Unauthorized("unauthorized access")
    email = claims.get("email")
    if not email:
        logger.warning("Session credential without email claim")
        raise Unauthorized("unauthorized access")
    return Identity(email=email)


class AccessGate:
    def __init__(self, users: UserDirectory):
        self.users = users

    def authenticate(self, token: Optional[str]) -> Identity:
        return authenticate(token)

    def authorize(self, identity: Identity, required_role: str) -> Dict[str, Any]:
        user = self.users.get(identity.email)
        if not user or user.get("role") != required_role:
            logger.warning("%s denied: %s role required", identity.email, required_role)
            raise Forbidden(f"Forbidden access! Only {required_role} can perform this action")
        return user
