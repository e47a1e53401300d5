"""FastAPI dependency injection for database sessions, auth, and the result cache.

Officials authenticate with access tokens from ``/auth/login``; voters with
voting session tokens issued at the polling-station desk.  A voter's scope
is always looked up from the registry, never taken from the request.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer, OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.core.cache import ResultCache, get_result_cache
from election_api.core.config import Settings, get_settings
from election_api.core.database import get_session_factory
from election_api.core.security import ADMIN_TOKEN_TYPE, VOTER_TOKEN_TYPE, decode_token
from election_api.lib.results import VoterScope
from election_api.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")
voter_scheme = HTTPBearer(scheme_name="VoterSession", auto_error=False)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_cache() -> ResultCache:
    """Result cache shared by the read endpoints and the materializer."""
    return get_result_cache()


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _subject(token: str, expected_type: str, settings: Settings) -> str:
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    except Exception as exc:
        raise _credentials_exception() from exc
    subject = payload.get("sub")
    if subject is None or payload.get("type") != expected_type:
        raise _credentials_exception()
    return subject


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Decode an official's access token and return the user.

    Raises:
        HTTPException: If the token is invalid or the user is unknown or inactive.
    """
    username = _subject(token, ADMIN_TOKEN_TYPE, settings)
    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise _credentials_exception()
    return user


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring specific user roles.

    Args:
        *roles: Allowed role names (e.g., "admin", "observer").

    Returns:
        A FastAPI dependency function that validates the user's role.
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role}' does not have access to this resource",
            )
        return current_user

    return role_checker


async def get_current_voter(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(voter_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> VoterScope:
    """Resolve the voter behind a voting session token to their registered scope.

    Raises:
        HTTPException: If the token is missing or invalid, or the voter is not registered.
    """
    from election_api.services.registry_service import VoterNotFoundError, get_voter_scope

    if credentials is None:
        raise _credentials_exception()
    voter_id = _subject(credentials.credentials, VOTER_TOKEN_TYPE, settings)
    try:
        return await get_voter_scope(session, voter_id)
    except VoterNotFoundError as e:
        raise _credentials_exception() from e
