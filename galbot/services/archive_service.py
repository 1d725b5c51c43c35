"""Archival of generated images to Backblaze B2.

Generated image URLs expire quickly, so each image is copied into a B2
bucket and served from there. The B2 native API is used directly over
aiohttp: authorize, fetch the source bytes, get an upload URL, upload.
"""

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from galbot.config import AppConfig
from galbot.exceptions import StorageError
from galbot.utils import sanitize_file_stem

logger = logging.getLogger(__name__)

B2_AUTHORIZE_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"
UPLOAD_MIME_TYPE = "image/png"
OBJECT_PREFIX = "images"


@dataclass(frozen=True)
class B2Authorization:
    """Account authorization returned by b2_authorize_account."""

    api_url: str
    authorization_token: str


@dataclass(frozen=True)
class UploadTarget:
    """Upload URL and token returned by b2_get_upload_url."""

    upload_url: str
    authorization_token: str


class ArchivalClient:
    """Stateless adapter that re-uploads assets to B2 and returns durable URLs."""

    def __init__(self, config: AppConfig):
        self.config = config
        self._timeout = aiohttp.ClientTimeout(total=config.api_request_timeout)

    def build_object_key(self, name_hint: str, now_ms: Optional[int] = None) -> str:
        """Derive a collision-resistant object key from ``name_hint``."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return f"{OBJECT_PREFIX}/{sanitize_file_stem(name_hint)}_{now_ms}.png"

    def public_url(self, object_key: str) -> str:
        """Return the public download URL for ``object_key``."""
        return (
            f"{self.config.b2_download_base_url}/file/"
            f"{self.config.b2_bucket_name}/{quote(object_key, safe='/')}"
        )

    async def archive(self, ephemeral_url: str, name_hint: str) -> str:
        """Copy the asset at ``ephemeral_url`` into B2.

        Args:
            ephemeral_url: Short-lived URL returned by the generation API.
            name_hint: Free text (usually the prompt) used to name the object.

        Returns:
            Durable public URL of the archived copy.

        Raises:
            StorageError: If authorization, fetching or uploading fails.
        """
        object_key = self.build_object_key(name_hint)

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                logger.info("Starting authorization with Backblaze B2")
                authorization = await self._authorize(session)

                logger.info("Fetching image data for %s", object_key)
                image_bytes = await self._fetch_asset(session, ephemeral_url)

                upload_target = await self._get_upload_url(session, authorization)

                logger.info("Starting image upload to Backblaze B2 (%s)", object_key)
                await self._upload(session, upload_target, object_key, image_bytes)
        except StorageError as e:
            logger.error("Error during backup to Backblaze (%s): %s", object_key, e)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, KeyError, TypeError, ValueError) as e:
            logger.error(
                "Error during backup to Backblaze (%s): %s", object_key, e, exc_info=True
            )
            raise StorageError("Failed to back up image", {"object_key": object_key}) from e

        durable_url = self.public_url(object_key)
        logger.info("Backup successful for %s", object_key)
        return durable_url

    @staticmethod
    async def _read_json(response: aiohttp.ClientResponse, step: str) -> dict[str, Any]:
        if response.status != 200:
            body = await response.text()
            raise StorageError(
                f"B2 {step} failed",
                {"status": response.status, "body": body[:200]},
            )
        return await response.json()

    async def _authorize(self, session: aiohttp.ClientSession) -> B2Authorization:
        auth = aiohttp.BasicAuth(self.config.b2_application_key_id, self.config.b2_application_key)
        async with session.get(B2_AUTHORIZE_URL, auth=auth) as response:
            payload = await self._read_json(response, "authorization")
        return B2Authorization(
            api_url=payload["apiUrl"],
            authorization_token=payload["authorizationToken"],
        )

    async def _fetch_asset(self, session: aiohttp.ClientSession, url: str) -> bytes:
        async with session.get(url) as response:
            if response.status != 200:
                raise StorageError("Failed to fetch generated image", {"status": response.status})
            data = await response.read()
        if not data:
            raise StorageError("Generated image was empty")
        return data

    async def _get_upload_url(
        self, session: aiohttp.ClientSession, authorization: B2Authorization
    ) -> UploadTarget:
        async with session.post(
            f"{authorization.api_url}/b2api/v2/b2_get_upload_url",
            headers={"Authorization": authorization.authorization_token},
            json={"bucketId": self.config.b2_bucket_id},
        ) as response:
            payload = await self._read_json(response, "get_upload_url")
        return UploadTarget(
            upload_url=payload["uploadUrl"],
            authorization_token=payload["authorizationToken"],
        )

    async def _upload(
        self,
        session: aiohttp.ClientSession,
        target: UploadTarget,
        object_key: str,
        data: bytes,
    ) -> None:
        headers = {
            "Authorization": target.authorization_token,
            "X-Bz-File-Name": quote(object_key, safe="/"),
            "Content-Type": UPLOAD_MIME_TYPE,
            "Content-Length": str(len(data)),
            "X-Bz-Content-Sha1": hashlib.sha1(data).hexdigest(),
        }
        async with session.post(target.upload_url, headers=headers, data=data) as response:
            await self._read_json(response, "upload")
