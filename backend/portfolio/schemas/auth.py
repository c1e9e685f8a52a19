"""Auth Schemas — admin login and session view."""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    password: str = Field(min_length=1, max_length=1024)


class SessionUser(BaseModel):
    id: str
    name: str


class SessionInfo(BaseModel):
    authenticated: bool
    user: SessionUser | None = None
    expires_at: int | None = None  # epoch seconds
