"""Asset storage client.

Images are uploaded straight from the browser; the server only ever has to
delete them again. The collaborator contract is a single call:
``destroy(public_id) -> {"result": "ok"}``, anything else being a failure.
"""

import hashlib
import time
from typing import Protocol

import httpx

from ..config import Settings, get_settings
from ..errors import StorageCollaboratorFailure
from ..logging_config import get_logger

logger = get_logger(__name__)


class AssetStore(Protocol):
    """Remote storage for pattern and project images."""

    async def destroy(self, public_id: str) -> dict: ...


class CloudinaryAssetStore:
    """Deletes images through the Cloudinary upload API."""

    def __init__(self, settings: Settings | None = None):
        """Initialize the client.

        Args:
            settings: Application settings. Defaults to the cached settings.
        """
        settings = settings or get_settings()
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.timeout = settings.asset_timeout_seconds
        self.base_url = f"https://api.cloudinary.com/v1_1/{self.cloud_name}"

        if not settings.assets_configured:
            logger.warning(
                "cloudinary_credentials_missing",
                cloud_name_set=bool(self.cloud_name),
                api_key_set=bool(self.api_key),
                api_secret_set=bool(self.api_secret),
            )

    def _sign(self, params: dict[str, str]) -> str:
        """SHA-1 signature over the sorted parameters followed by the secret.

        Follows Cloudinary's "Generating authentication signatures" scheme for
        signed upload API calls: ``key=value`` pairs joined by ``&`` in key
        order, excluding ``api_key`` and ``signature``.
        """
        payload = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1((payload + self.api_secret).encode()).hexdigest()  # noqa: S324

    async def destroy(self, public_id: str) -> dict:
        """Delete one asset.

        Returns:
            The provider response, ``{"result": "ok"}`` on success.

        Raises:
            StorageCollaboratorFailure: Transport error, non-2xx status, missing
                credentials or a result other than "ok".
        """
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise StorageCollaboratorFailure(public_id, "asset storage is not configured")

        params = {"public_id": public_id, "timestamp": str(int(time.time()))}
        data = {**params, "api_key": self.api_key, "signature": self._sign(params)}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(f"{self.base_url}/image/destroy", data=data)
                resp.raise_for_status()
                result = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "asset_destroy_request_failed",
                public_id=public_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageCollaboratorFailure(public_id, "asset storage request failed") from e

        if result.get("result") != "ok":
            logger.warning("asset_destroy_rejected", public_id=public_id, result=result)
            raise StorageCollaboratorFailure(
                public_id, f"asset storage returned {result.get('result')!r}"
            )

        logger.info("asset_destroyed", public_id=public_id)
        return result
