"""
Authenticated principal.

Identity itself is managed by an external provider; this backend only
needs to know *who* is calling. The caller is represented by an explicit
`PrincipalContext` that is passed into every service operation instead of
being read from a global.

Over HTTP the principal comes from a bearer JWT whose `sub` claim is the
principal id. A request without a token is anonymous: listing and mutation
operations then do nothing and return empty results.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY
from app.core.exceptions import AuthorizationError

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class PrincipalContext:
    """The principal on whose behalf an operation runs (None when anonymous)."""

    principal_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.principal_id)


ANONYMOUS = PrincipalContext()


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed token for `subject`.

    Args:
        subject (str): Principal id stored in the `sub` claim.
        expires_delta (timedelta, optional): Lifetime. Defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        str: Encoded JWT.
    """

    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": subject, "exp": expire}, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_principal(token: str) -> str:
    """
    Return the principal id carried by `token`.

    Raises:
        AuthorizationError: If the token is invalid, expired or has no subject.
    """

    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise AuthorizationError(f"Invalid token: {e}")
    subject = payload.get("sub")
    if not subject:
        raise AuthorizationError("Token has no subject")
    return subject


async def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> PrincipalContext:
    """
    FastAPI dependency resolving the calling principal.

    Returns:
        PrincipalContext: Anonymous when no bearer token was sent.

    Raises:
        HTTPException: 401 when a token was sent but is not valid.
    """

    if credentials is None:
        return ANONYMOUS
    try:
        return PrincipalContext(decode_principal(credentials.credentials))
    except AuthorizationError as e:
        raise HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"})
