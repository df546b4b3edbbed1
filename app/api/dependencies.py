from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import SETTINGS
from app.db.engine import async_session_factory
from app.models.principal import Principal
from app.repos.store import RecordStore, in_memory_store, pg_store, seed_sample_catalog
from app.services import token_service
from app.services.authorization import Authorization, authorization
from app.services.cache import CacheService, cache_service

logger = logging.getLogger(__name__)

# Tokens are issued by the platform auth service; the URL is informational.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# Used whenever DATABASE_URL is not configured.
memory_store = in_memory_store()
if SETTINGS.is_dev:
    seed_sample_catalog(memory_store.catalog)  # type: ignore[arg-type]


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s", principal.user_id, principal.roles
    )
    return principal


async def get_record_store() -> AsyncGenerator[RecordStore, None]:
    """Yield the Record Store for one request.

    PostgreSQL: one session per request, committed when the handler
    returns and rolled back when it raises.  Callbacks deferred with
    RecordStore.after_commit run only after a successful commit.
    """
    if async_session_factory is None:
        yield memory_store
        return

    async with async_session_factory() as session:
        store = pg_store(session)
        try:
            yield store
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        await store.committed()


def get_authorization() -> Authorization:
    return authorization


def get_cache() -> CacheService:
    return cache_service
