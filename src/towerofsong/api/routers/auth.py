import secrets

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from towerofsong.api.deps import get_library_config, get_token_store
from towerofsong.api.schemas import Credentials, TokenResponse
from towerofsong.core.config import LibraryConfig
from towerofsong.core.token_store import TokenStore

router = APIRouter()


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


@router.post("/login", response_model=TokenResponse)
async def login(
    creds: Credentials,
    config: LibraryConfig = Depends(get_library_config),
    token_store: TokenStore = Depends(get_token_store),
):
    """Exchange the shared credential pair for a session token."""
    # Both comparisons always run so timing does not reveal which one failed.
    user_ok = _matches(creds.username, config.username)
    pass_ok = _matches(creds.password, config.password)
    if not (config.username and user_ok and pass_ok):
        logger.warning(f"Failed login attempt for user {creds.username!r}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    logger.info(f"User {creds.username!r} logged in")
    return TokenResponse(token=token_store.issue())
