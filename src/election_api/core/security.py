"""Tokens and password hashing.

Returning officers and observers log in with a password (bcrypt via
passlib) and receive an ``access`` token carrying their role.  Voters never
log in: the polling-station desk verifies them in person and issues a
``voter`` token whose only claim is the voter id.  Scope is always looked
up from the registry, so a forged scope claim has nothing to override.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ADMIN_TOKEN_TYPE = "access"
VOTER_TOKEN_TYPE = "voter"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _sign(claims: dict[str, Any], token_type: str, secret_key: str, algorithm: str, expires_minutes: int) -> str:
    claims = {**claims, "type": token_type, "exp": datetime.now(UTC) + timedelta(minutes=expires_minutes)}
    return jwt.encode(claims, secret_key, algorithm=algorithm)


def create_access_token(
    subject: str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 30,
) -> str:
    """Sign an official's token; ``subject`` is the username."""
    return _sign({"sub": subject, "role": role}, ADMIN_TOKEN_TYPE, secret_key, algorithm, expires_minutes)


def create_voter_token(
    voter_id: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 15,
) -> str:
    """Sign a voting session token bound to ``voter_id`` and nothing else."""
    return _sign({"sub": voter_id}, VOTER_TOKEN_TYPE, secret_key, algorithm, expires_minutes)


def decode_token(token: str, secret_key: str, algorithm: str = "HS256") -> dict:
    """Verify signature and expiry and return the claims.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: For any other signature or format problem.
    """
    return jwt.decode(token, secret_key, algorithms=[algorithm])
