import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from datamanager.config import settings
from datamanager.exceptions import InvalidTokenError
from datamanager.services.authorization_service import AuthorizationContext

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(subject: str, roles: list[str] | None = None, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": subject, "roles": roles or [], "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.warning("Token expired")
        raise InvalidTokenError("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {e}")
        raise InvalidTokenError()

    if not payload.get("sub"):
        logger.warning("Token is missing 'sub' claim")
        raise InvalidTokenError("Token does not contain 'sub' field")
    return payload


def context_from_claims(claims: dict) -> AuthorizationContext:
    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return AuthorizationContext(identity_id=str(claims["sub"]), is_root=settings.root_role in roles)


async def get_authorization_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthorizationContext:
    """Caller identity from the bearer token; no token means anonymous (public data sets only)."""
    if credentials is None:
        return AuthorizationContext.anonymous()
    return context_from_claims(decode_access_token(credentials.credentials))
