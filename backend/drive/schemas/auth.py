"""Auth request/response schemas. Field names match the login token contract (snake_case)."""
from pydantic import BaseModel
from typing import Optional


class Credentials(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterResponse(BaseModel):
    id: Optional[str] = None
    email: Optional[str] = None
    message: str


class LoginResponse(BaseModel):
    success: bool = True
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class CurrentUser(BaseModel):
    id: str
