"""FastAPI dependencies.

Service objects are created once by ``create_app`` and kept on
``app.state``; handlers receive them through these dependencies instead of
importing process-wide globals.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Query, Request, status

from towerofsong.core.catalog import CatalogStore
from towerofsong.core.config import LibraryConfig
from towerofsong.core.token_store import TokenStore
from towerofsong.worker.scheduler import ScanScheduler


def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


def get_scheduler(request: Request) -> ScanScheduler:
    return request.app.state.scheduler


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store


def get_library_config(request: Request) -> LibraryConfig:
    return request.app.state.library_config


def _extract_token(request: Request, token: Optional[str]) -> Optional[str]:
    header = request.headers.get("Authorization", "").strip()
    if header:
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
        return header
    return token


async def require_auth(
    request: Request,
    token: Optional[str] = Query(default=None, include_in_schema=False),
    token_store: TokenStore = Depends(get_token_store),
) -> str:
    """Accept a token from the Authorization header or the ``token`` query.

    The query form exists for audio elements, which cannot set headers.
    """
    candidate = _extract_token(request, token)
    if not token_store.is_valid(candidate):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
    return candidate
