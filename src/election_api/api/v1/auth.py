"""Authentication API endpoints: POST /auth/login and GET /health."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from election_api import __version__
from election_api.core.config import Settings, get_settings
from election_api.core.dependencies import get_async_session
from election_api.schemas.auth import TokenResponse
from election_api.services import auth_service

router = APIRouter(tags=["auth"])


@router.get("/health", status_code=200)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Liveness check (no authentication required)."""
    return {"status": "healthy", "version": __version__, "environment": settings.environment}


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Authenticate an election official and return an access token."""
    user = await auth_service.authenticate_user(session, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.generate_tokens(user, settings)
