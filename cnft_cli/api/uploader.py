"""Image and metadata upload to an nft.storage-compatible endpoint."""

import json
import logging
import mimetypes
from pathlib import Path
from typing import Optional

import aiohttp

from ..program.errors import ConfigurationError
from .error import (
    ApiError,
    BadRequestError,
    DeserializeError,
    ForbiddenError,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
    UnexpectedStatusError,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_URL = "https://api.nft.storage"
DEFAULT_GATEWAY_URL = "https://nftstorage.link/ipfs"
DEFAULT_TIMEOUT_SECS = 120


class NftStorageUploader:
    """Uploads files to IPFS through nft.storage and returns gateway URIs.

    Example:
        ```python
        async with NftStorageUploader(token) as uploader:
            image_uri = await uploader.upload_file("art.png")
            json_uri = await uploader.upload_json({"name": "Art", "image": image_uri})
        ```
    """

    def __init__(
        self,
        token: Optional[str],
        base_url: str = DEFAULT_UPLOAD_URL,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        timeout: int = DEFAULT_TIMEOUT_SECS,
    ):
        """Create an uploader.

        Raises:
            ConfigurationError: If no API token was supplied
        """
        if not token:
            raise ConfigurationError("NFT_STORAGE_API_KEY")
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._gateway_url = gateway_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "NftStorageUploader":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def gateway_uri(self, cid: str) -> str:
        return f"{self._gateway_url}/{cid}"

    def _map_status_error(self, status: int, message: str) -> ApiError:
        if status == 401:
            return UnauthorizedError(message)
        elif status == 400:
            return BadRequestError(message)
        elif status == 403:
            return ForbiddenError(message)
        elif status == 429:
            return RateLimitedError(message)
        elif status >= 500:
            return ServerError(message)
        else:
            return UnexpectedStatusError(status, message)

    async def _handle_response(self, response: aiohttp.ClientResponse) -> str:
        """Return the CID of a successful upload."""
        if response.status >= 200 and response.status < 300:
            try:
                data = await response.json()
                return data["value"]["cid"]
            except (ValueError, KeyError, TypeError, aiohttp.ContentTypeError) as e:
                raise DeserializeError(f"Failed to read upload response: {e}")
        else:
            error_text = await response.text()
            try:
                error_msg = ErrorResponse.from_dict(json.loads(error_text)).get_message()
            except (ValueError, KeyError, AttributeError):
                error_msg = error_text or "Unknown error"
            raise self._map_status_error(response.status, error_msg)

    async def upload_bytes(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Upload raw bytes and return their gateway URI."""
        session = await self._ensure_session()
        url = f"{self._base_url}/upload"
        async with session.post(url, data=data, headers={"Content-Type": content_type}) as response:
            cid = await self._handle_response(response)
        uri = self.gateway_uri(cid)
        logger.info(f"Uploaded {len(data)} bytes to {uri}")
        return uri

    async def upload_file(self, path: str) -> str:
        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return await self.upload_bytes(Path(path).read_bytes(), content_type)

    async def upload_json(self, document: dict) -> str:
        body = json.dumps(document).encode("utf-8")
        return await self.upload_bytes(body, "application/json")
