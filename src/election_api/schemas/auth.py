"""Authentication and admin user Pydantic v2 schemas."""

from pydantic import BaseModel, EmailStr, Field


class TokenResponse(BaseModel):
    """JWT access token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token expiration in seconds")


class UserCreateRequest(BaseModel):
    """Request to create an election official account."""

    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    role: str = Field(default="admin", pattern="^(admin|observer)$")

