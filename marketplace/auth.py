import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .errors import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class Role(str, Enum):
    CLIENT = "CLIENT"
    AGENT = "AGENT"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"


@dataclass(frozen=True)
class Caller:
    """Already-authenticated identity every facade call receives"""

    id: int
    role: Role


class Authenticator(Protocol):
    def identify(self, token: str) -> Caller: ...


class JWTAuthenticator:
    """Verifies access tokens issued by the auth service (HS256 shared secret)"""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def identify(self, token: str) -> Caller:
        try:
            payload = jose_jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"⚠️ Token verification failed: {e}")
            raise UnauthorizedError("Invalid or expired token") from e

        raw_id = payload.get("id", payload.get("sub"))
        raw_role = str(payload.get("role", "")).upper()
        try:
            return Caller(id=int(raw_id), role=Role(raw_role))
        except (TypeError, ValueError):
            logger.warning(f"⚠️ Token payload missing id or role: role={raw_role!r}")
            raise UnauthorizedError("Invalid token payload") from None


def get_current_caller(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Caller:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authenticated. Please provide a valid Bearer token in the Authorization header.")
    return request.app.state.authenticator.identify(credentials.credentials)


def require_role(role: Role):
    """Dependency factory restricting a route to one caller role"""

    def dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role != role:
            logger.warning(f"⚠️ {caller.role.value} {caller.id} attempted a {role.value}-only operation")
            raise ForbiddenError(f"This action requires the {role.value} role")
        return caller

    return dependency
