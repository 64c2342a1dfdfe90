"""
Request dependencies: caller identity.

Tokens are resolved through Supabase Auth; authorization rules live outside
this service.
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from supabase import Client
from typing import Any, Dict, Optional, Tuple
import hashlib
import logging
import threading
import time

logger = logging.getLogger(__name__)

security = HTTPBearer()

IDENTITY_TTL_SEC = 60
IDENTITY_CACHE_LIMIT = 500

# sha256(token) -> (identity, expires_at); bounded so a token flood cannot grow it
_AUTH_USER_CACHE: Dict[str, Tuple[Dict[str, Any], float]] = {}
_cache_lock = threading.Lock()


def _cached_identity(digest: str) -> Optional[Dict[str, Any]]:
    with _cache_lock:
        entry = _AUTH_USER_CACHE.get(digest)
        if entry is None:
            return None
        identity, expires_at = entry
        if time.monotonic() >= expires_at:
            _AUTH_USER_CACHE.pop(digest, None)
            return None
        return identity


def _remember_identity(digest: str, identity: Dict[str, Any]) -> None:
    with _cache_lock:
        if len(_AUTH_USER_CACHE) < IDENTITY_CACHE_LIMIT:
            _AUTH_USER_CACHE[digest] = (identity, time.monotonic() + IDENTITY_TTL_SEC)


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    supabase: Client = Depends(get_supabase),
) -> Dict[str, Any]:
    """Identity of the bearer token's owner: id, email and app_metadata."""
    digest = hashlib.sha256(credentials.credentials.encode()).hexdigest()
    identity = _cached_identity(digest)
    if identity is not None:
        return identity

    try:
        response = supabase.auth.get_user(jwt=credentials.credentials)
    except Exception as e:
        logger.info(f"Token verification failed: {e}")
        raise _unauthorized()
    if not response or not response.user:
        raise _unauthorized()

    identity = {
        "id": response.user.id,
        "email": response.user.email,
        "app_metadata": response.user.app_metadata or {},
    }
    _remember_identity(digest, identity)
    return identity
