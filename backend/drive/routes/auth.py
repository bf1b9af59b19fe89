"""Auth API routes. Sign-up, sign-in and token checks are delegated to the identity provider."""
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from drive.dependencies import get_current_user_id, get_identity_client
from drive.exceptions import (
    AuthenticationError, ErrorCode, UnexpectedError, ValidationError,
)
from drive.schemas.auth import Credentials, CurrentUser, LoginResponse, RegisterResponse
from drive.services.identity import IdentityClient, IdentityError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: Credentials,
    identity: IdentityClient = Depends(get_identity_client),
):
    """Register a user. Returns 200 instead of 201 while email confirmation is pending."""
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    try:
        result = await identity.sign_up(body.email, body.password)
    except IdentityError as e:
        raise ValidationError(e.message)

    if not result.has_session:
        pending = RegisterResponse(
            id=result.user_id,
            email=result.email,
            message="Confirmation email sent. Please check your inbox.",
        )
        return JSONResponse(status_code=200, content=pending.model_dump())

    return RegisterResponse(
        id=result.user_id,
        email=result.email,
        message="User registered successfully",
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: Credentials,
    identity: IdentityClient = Depends(get_identity_client),
):
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    try:
        result = await identity.sign_in(body.email, body.password)
    except IdentityError as e:
        logger.info("Login failed for %s: %s", body.email, e)
        if e.status and e.status < 500:
            raise AuthenticationError(e.message or "Invalid email or password")
        raise UnexpectedError(e.message)

    if not result.user_id:
        raise UnexpectedError(
            "User login failed, no user data returned",
            error_code=ErrorCode.USER_NOT_FOUND,
        )

    return LoginResponse(
        id=result.user_id,
        email=result.email,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.get("/me", response_model=CurrentUser)
async def me(user_id: str = Depends(get_current_user_id)):
    """Return the id of the user the bearer token belongs to."""
    return CurrentUser(id=user_id)
