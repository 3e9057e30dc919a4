"""
Dependances communes aux routers : utilisateur courant, limiteur de debit
des appels Garmin, localisateur de fichiers FIT.
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from slowapi import Limiter
from slowapi.util import get_remote_address

from redcap.auth.jwt import get_current_user_id
from redcap.core.settings import get_settings
from redcap.core.storage import BlobStorage, get_storage
from redcap.domain.services.fit_locator import FitFileLocator

_bearer_scheme = HTTPBearer(auto_error=False)

ACCESS_TOKEN_COOKIE = "access_token"


def _token_from(request: Request, creds: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if creds:
        return creds.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def current_user_id(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> UUID:
    """Claim 'sub' du JWT (header Bearer, sinon cookie), qui doit etre un UUID."""
    token = _token_from(request, creds)
    if not token:
        raise _unauthorized("Not authenticated")

    sub = get_current_user_id(token)
    try:
        return UUID(sub)
    except ValueError:
        raise _unauthorized("Invalid token payload")


def _garmin_quota_key(request: Request) -> str:
    # Quota par utilisateur authentifie ; IP pour les appels sans token valide
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:] if auth_header.startswith("Bearer ") else request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        try:
            return f"user:{get_current_user_id(token)}"
        except HTTPException:
            pass
    return get_remote_address(request)


limiter = Limiter(key_func=_garmin_quota_key, headers_enabled=True)


def get_fit_locator(storage: BlobStorage = Depends(get_storage)) -> FitFileLocator:
    return FitFileLocator(storage, get_settings().STORAGE_BUCKET)
