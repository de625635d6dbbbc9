# doughmain/core/security.py
import hmac
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import Request

from doughmain.core.errors import AuthenticationError, CallableError
from doughmain.core.identity import IdentityProvider

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    uid: str
    token: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.token.get("admin") is True


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_auth_context(request: Request) -> Optional[AuthContext]:
    """
    Resolve the caller from the bearer id token.

    No token, or a token that fails verification, yields None: callers
    without a context can still use the open operations.
    """
    token = _bearer_token(request)
    if token is None:
        return None

    identity: IdentityProvider = request.app.state.identity
    try:
        claims = await identity.verify_id_token(token)
    except AuthenticationError as error:
        logger.info(f"Ignoring unverifiable id token: {error}")
        return None
    return AuthContext(uid=claims["uid"], token=claims)


def require_admin(context: Optional[AuthContext], message: str) -> AuthContext:
    if context is None or not context.is_admin:
        raise CallableError("permission-denied", message)
    return context


def admin_key_matches(supplied: Optional[str], expected: str) -> bool:
    if not isinstance(supplied, str):
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
