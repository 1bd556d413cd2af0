# equiprent/security/auth.py
import os
import logging
from typing import NamedTuple, Optional
from fastapi import Header
import jwt  # PyJWT

from ..errors import Unauthenticated

logger = logging.getLogger(__name__)

JWT_ALG         = os.getenv("JWT_ALG", "HS256")
JWT_SIGNING_KEY = os.getenv("JWT_SIGNING_KEY", "")
JWT_AUDIENCE    = os.getenv("JWT_AUDIENCE", "authenticated")
ISSUER          = os.getenv("ISSUER", "")

class IdentityResult(NamedTuple):
    """Exactly one of principal_id / error is set."""
    principal_id: Optional[str]
    error: Optional[Unauthenticated]

def _unauth(detail: str) -> IdentityResult:
    # Every failure looks the same to the caller; only the log says why.
    logger.warning("Auth failed: %s", detail)
    return IdentityResult(None, Unauthenticated())

def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from a 'Bearer <token>' header, else None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Auth failed: Malformed Authorization header")
        return None
    return parts[1]

def resolve_identity(token: str | None) -> IdentityResult:
    """Verify a bearer JWT from the identity provider and return its subject."""
    if not token:
        return _unauth("Missing bearer token")
    if not JWT_SIGNING_KEY:
        return _unauth("JWT_SIGNING_KEY not configured")

    try:
        payload = jwt.decode(
            token,
            JWT_SIGNING_KEY,
            algorithms=[JWT_ALG],
            audience=JWT_AUDIENCE or None,
            issuer=ISSUER or None,
            leeway=30,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        return _unauth("Token expired")
    except jwt.InvalidAudienceError:
        return _unauth("Bad audience")
    except jwt.InvalidIssuerError:
        return _unauth("Bad issuer")
    except jwt.InvalidSignatureError:
        return _unauth("Bad signature")
    except jwt.PyJWTError as e:
        return _unauth(f"JWT error: {e}")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return _unauth("Token has no subject")
    return IdentityResult(subject, None)

def require_principal(authorization: str | None = Header(default=None)) -> str:
    """FastAPI dependency: the calling principal's id, or 401."""
    principal_id, error = resolve_identity(extract_bearer_token(authorization))
    if error is not None:
        raise error
    return principal_id

__all__ = ["IdentityResult", "extract_bearer_token", "resolve_identity", "require_principal"]
