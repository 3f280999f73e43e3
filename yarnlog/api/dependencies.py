"""FastAPI dependencies for authentication and collaborators."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..clients.assets import AssetStore, CloudinaryAssetStore
from ..config import Settings, get_settings
from ..core.access import Principal
from ..errors import Unauthorized
from ..models import User
from .database import get_async_session

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> Principal:
    """Resolve the caller from the bearer token.

    Raises 401 if the token is missing, malformed, expired, or names a user
    that does not exist.
    """
    if credentials is None:
        raise Unauthorized("token missing")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as e:
        raise Unauthorized("token expired") from e
    except jwt.InvalidTokenError as e:
        logger.info("token_rejected", error_type=type(e).__name__)
        raise Unauthorized("token invalid") from e

    try:
        user_id = int(payload["id"])
    except (KeyError, TypeError, ValueError) as e:
        raise Unauthorized("token invalid") from e

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("token_user_missing", user_id=user_id)
        raise Unauthorized("token invalid")

    structlog.contextvars.bind_contextvars(user_id=user_id)
    return Principal(user_id=user.id, username=user.username)


def get_asset_store(settings: Settings = Depends(get_settings)) -> AssetStore:
    """Asset storage collaborator used for image deletion."""
    return CloudinaryAssetStore(settings)
