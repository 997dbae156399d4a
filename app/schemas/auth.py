"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    # Optional so a missing field is reported as MissingCredentials, not a schema error
    email: str | None = None
    password: str | None = None


class UserResponse(BaseModel):
    id: int
    email: str
    name: str | None

    model_config = {"from_attributes": True}


class LoginData(BaseModel):
    token: str
    user: UserResponse


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    data: LoginData


class TokenIdentity(BaseModel):
    valid: bool
    user_id: int
    email: str


class VerifyResponse(BaseModel):
    success: bool = True
    message: str = "Token is valid"
    data: TokenIdentity
