"""Official accounts and token issuance for officials and voters."""

from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from election_api.core.config import Settings
from election_api.core.security import create_access_token, create_voter_token, hash_password, verify_password
from election_api.models.user import User
from election_api.schemas.auth import TokenResponse, UserCreateRequest
from election_api.services.registry_service import get_voter_scope


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    """Return the active official matching the credentials, stamping ``last_login_at``.

    Unknown usernames, inactive accounts and wrong passwords all return None
    so the caller cannot tell them apart.
    """
    user = (await session.execute(select(User).where(User.username == username))).scalar_one_or_none()
    if user is None or not user.is_active or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login for {username!r}")
        return None
    user.last_login_at = datetime.now(UTC)
    await session.commit()
    return user


async def create_user(session: AsyncSession, request: UserCreateRequest) -> User:
    """Register a returning officer or observer.

    Raises:
        ValueError: If the username or email is taken.
    """
    clash = await session.execute(
        select(User.id).where(or_(User.username == request.username, User.email == request.email))
    )
    if clash.first() is not None:
        msg = f"Username {request.username!r} or email already exists"
        raise ValueError(msg)

    user = User(
        username=request.username,
        email=request.email,
        hashed_password=hash_password(request.password),
        role=request.role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Created {user.role} account {user.username!r}")
    return user


async def list_users(session: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[User], int]:
    total = (await session.execute(select(func.count(User.id)))).scalar_one()
    page_query = select(User).order_by(User.created_at).offset((page - 1) * page_size).limit(page_size)
    return list((await session.execute(page_query)).scalars().all()), total


def generate_tokens(user: User, settings: Settings) -> TokenResponse:
    minutes = settings.jwt_access_token_expire_minutes
    token = create_access_token(
        subject=user.username,
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=minutes,
    )
    return TokenResponse(access_token=token, expires_in=minutes * 60)


async def issue_voter_token(session: AsyncSession, voter_id: str, settings: Settings) -> TokenResponse:
    """Open a voting session for a voter the desk has already identified.

    Raises:
        VoterNotFoundError: If the voter is not registered or has no resolvable scope.
    """
    await get_voter_scope(session, voter_id)
    minutes = settings.voter_token_expire_minutes
    token = create_voter_token(
        voter_id=voter_id,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=minutes,
    )
    logger.info(f"Issued voting session for voter {voter_id} ({minutes} min)")
    return TokenResponse(access_token=token, expires_in=minutes * 60)
