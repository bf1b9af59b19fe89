"""FastAPI dependency providers.

Collaborator handles (blob storage, identity client) are created once in the
application lifespan and stored on ``app.state``; these providers hand them
to routes.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from drive.config import Settings, get_settings
from drive.database import get_db
from drive.exceptions import AuthenticationError, AuthorizationError
from drive.services.blob_storage import BlobStorage
from drive.services.identity import IdentityClient
from drive.services.tree_manager import TreeManager

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_blob_storage(request: Request) -> BlobStorage:
    return request.app.state.blob_storage


def get_identity_client(request: Request) -> IdentityClient:
    return request.app.state.identity


def get_tree_manager(
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_blob_storage),
    settings: Settings = Depends(get_settings),
) -> TreeManager:
    return TreeManager(db, storage, max_upload_bytes=settings.MAX_UPLOAD_BYTES)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IdentityClient = Depends(get_identity_client),
) -> str:
    """Verify the bearer token with the identity provider and attach the user id to the request."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")
    user_id = await identity.verify_token(credentials.credentials)
    if not user_id:
        raise AuthenticationError("Invalid token")
    request.state.user_id = user_id
    return user_id


async def get_token_owner(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IdentityClient = Depends(get_identity_client),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Token-derived owner when ENFORCE_TOKEN_OWNER is on, otherwise None."""
    if not settings.ENFORCE_TOKEN_OWNER:
        return None
    return await get_current_user_id(request, credentials, identity)


def bind_owner(supplied: Optional[str], token_owner: Optional[str]) -> Optional[str]:
    """Reconcile a request's ownerId with the token owner, if one is enforced."""
    if token_owner is None:
        return supplied
    if supplied and supplied != token_owner:
        logger.warning("ownerId %s does not match token user %s", supplied, token_owner)
        raise AuthorizationError("ownerId does not match the authenticated user")
    return token_owner
