"""DAS (Digital Asset Standard) JSON-RPC client implementation."""

import asyncio
import itertools
import json
import logging
from typing import Any, List, Optional

import aiohttp
from solders.pubkey import Pubkey

from ..program.constants import BUBBLEGUM_PROGRAM_ID
from ..program.pda import get_asset_id
from .error import (
    ApiError,
    HttpError,
    NotFoundError,
    BadRequestError,
    ForbiddenError,
    UnauthorizedError,
    RateLimitedError,
    ServerError,
    DeserializeError,
    RpcError,
    UnexpectedStatusError,
    ErrorResponse,
)
from .pagination import fetch_all
from .retry import BackoffPolicy, is_retryable
from .types import (
    Asset,
    AssetPage,
    AssetProof,
    AssetSignature,
    AssetWithProof,
    SignaturePage,
)
from .validation import MAX_PAGINATION_LIMIT, validate_limit, validate_page, validate_pubkey

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECS = 30

# JSON-RPC error codes
RPC_INVALID_PARAMS = -32602
RPC_INTERNAL_ERROR = -32603
RPC_SERVER_ERROR_MIN = -32099
RPC_SERVER_ERROR_MAX = -32000
RPC_RATE_LIMITED = 429


class DasApiClient:
    """Async client for the Metaplex DAS read API.

    Provides the raw JSON-RPC methods plus auto-paginating helpers for
    compressed NFT listings.

    Example:
        ```python
        async with DasApiClient("https://api.devnet.solana.com") as das:
            assets = await das.fetch_cnfts_by_owner(owner)
            print(f"Found {len(assets)} assets")
        ```
    """

    def __init__(
        self,
        url: str,
        timeout: int = DEFAULT_TIMEOUT_SECS,
        headers: Optional[dict[str, str]] = None,
        backoff_policy: Optional[BackoffPolicy] = None,
        page_limit: int = MAX_PAGINATION_LIMIT,
    ):
        """Create a new client for the given RPC URL.

        Args:
            url: A DAS-enabled RPC endpoint
            timeout: Request timeout in seconds
            headers: Optional additional headers for all requests
            backoff_policy: Retry policy for each page of a paginated fetch
            page_limit: Page size used by the paginated helpers
        """
        validate_limit(page_limit)
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if headers:
            self._headers.update(headers)
        self._session: Optional[aiohttp.ClientSession] = None
        self._backoff_policy = backoff_policy or BackoffPolicy.default()
        self._page_limit = page_limit
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    async def __aenter__(self) -> "DasApiClient":
        """Enter async context manager."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers=self._headers,
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _map_status_error(self, status: int, message: str) -> ApiError:
        """Map HTTP status code to ApiError."""
        if status == 401:
            return UnauthorizedError(message)
        elif status == 400:
            return BadRequestError(message)
        elif status == 403:
            return ForbiddenError(message)
        elif status == 404:
            return NotFoundError(message)
        elif status == 429:
            return RateLimitedError(message)
        elif status >= 500:
            return ServerError(message)
        else:
            return UnexpectedStatusError(status, message)

    def _map_rpc_error(self, error: ErrorResponse) -> ApiError:
        """Map a JSON-RPC error object to ApiError."""
        message = error.get_message()
        code = error.code if error.code is not None else 0
        if "not found" in message.lower():
            return NotFoundError(message)
        elif code == RPC_RATE_LIMITED:
            return RateLimitedError(message)
        elif code == RPC_INVALID_PARAMS:
            return BadRequestError(message)
        elif code == RPC_INTERNAL_ERROR or RPC_SERVER_ERROR_MIN <= code <= RPC_SERVER_ERROR_MAX:
            return ServerError(message)
        else:
            return RpcError(code, message)

    async def _handle_response(self, response: aiohttp.ClientResponse) -> Any:
        """Handle HTTP response, map errors and unwrap the JSON-RPC result."""
        if response.status >= 200 and response.status < 300:
            try:
                data = await response.json()
            except (ValueError, json.JSONDecodeError, aiohttp.ContentTypeError) as e:
                raise DeserializeError(f"Failed to deserialize response: {e}")

            if not isinstance(data, dict):
                raise DeserializeError("Response is not a JSON-RPC object")
            if data.get("error") is not None:
                raise self._map_rpc_error(ErrorResponse.from_dict(data))
            if "result" not in data:
                raise DeserializeError("Response has neither result nor error")
            return data["result"]
        else:
            error_text = await response.text()
            try:
                error_data = json.loads(error_text)
                error_msg = ErrorResponse.from_dict(error_data).get_message()
            except (ValueError, KeyError, AttributeError, json.JSONDecodeError):
                error_msg = error_text or "Unknown error"

            raise self._map_status_error(response.status, error_msg)

    async def _call(self, method: str, params: dict) -> Any:
        """Send one JSON-RPC request."""
        session = await self._ensure_session()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug(f"DAS {method} {params}")
        try:
            async with session.post(self._url, json=payload) as response:
                return await self._handle_response(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise HttpError(f"{method} request failed: {e}") from e

    # =========================================================================
    # Single asset
    # =========================================================================

    async def get_asset(self, asset_id: str) -> Asset:
        """Get one asset by id.

        Raises:
            InvalidParameterError: If asset_id is not a pubkey
            NotFoundError: If the asset is not indexed
        """
        validate_pubkey(asset_id, "asset_id")
        result = await self._call("getAsset", {"id": asset_id})
        if result is None:
            raise NotFoundError(f"Asset {asset_id}")
        return Asset.from_dict(result)

    async def get_asset_proof(self, asset_id: str) -> AssetProof:
        """Get the merkle proof of a compressed asset."""
        validate_pubkey(asset_id, "asset_id")
        result = await self._call("getAssetProof", {"id": asset_id})
        if result is None:
            raise NotFoundError(f"Proof for asset {asset_id}")
        return AssetProof.from_dict(result)

    async def get_asset_with_proof(self, asset_id: str) -> AssetWithProof:
        asset = await self.get_asset(asset_id)
        proof = await self.get_asset_proof(asset_id)
        return AssetWithProof(asset=asset, proof=proof)

    # =========================================================================
    # Listings (one page)
    # =========================================================================

    def _page_params(
        self,
        page: int,
        limit: int,
        sort_by: Optional[dict],
        before: Optional[str],
        after: Optional[str],
    ) -> dict:
        validate_page(page)
        validate_limit(limit)
        params: dict[str, Any] = {"page": page, "limit": limit}
        if sort_by is not None:
            params["sortBy"] = sort_by
        if before is not None:
            params["before"] = before
        if after is not None:
            params["after"] = after
        return params

    async def get_assets_by_owner(
        self,
        owner: str,
        page: int = 1,
        limit: int = MAX_PAGINATION_LIMIT,
        sort_by: Optional[dict] = None,
        before: Optional[str] = None,
        after: Optional[str] = None,
    ) -> AssetPage:
        validate_pubkey(owner, "owner")
        params = {"ownerAddress": owner}
        params.update(self._page_params(page, limit, sort_by, before, after))
        return AssetPage.from_dict(await self._call("getAssetsByOwner", params))

    async def get_assets_by_group(
        self,
        group_value: str,
        group_key: str = "collection",
        page: int = 1,
        limit: int = MAX_PAGINATION_LIMIT,
        sort_by: Optional[dict] = None,
        before: Optional[str] = None,
        after: Optional[str] = None,
    ) -> AssetPage:
        validate_pubkey(group_value, "group_value")
        params = {"groupKey": group_key, "groupValue": group_value}
        params.update(self._page_params(page, limit, sort_by, before, after))
        return AssetPage.from_dict(await self._call("getAssetsByGroup", params))

    async def search_assets(
        self,
        owner: Optional[str] = None,
        collection: Optional[str] = None,
        compressed: Optional[bool] = None,
        page: int = 1,
        limit: int = MAX_PAGINATION_LIMIT,
        sort_by: Optional[dict] = None,
        before: Optional[str] = None,
        after: Optional[str] = None,
    ) -> AssetPage:
        """Search assets by any combination of owner, collection and compression."""
        params: dict[str, Any] = {}
        if owner is not None:
            validate_pubkey(owner, "owner")
            params["ownerAddress"] = owner
        if collection is not None:
            validate_pubkey(collection, "collection")
            params["grouping"] = ["collection", collection]
        if compressed is not None:
            params["compressed"] = compressed
        params.update(self._page_params(page, limit, sort_by, before, after))
        return AssetPage.from_dict(await self._call("searchAssets", params))

    async def get_signatures_for_asset(
        self,
        asset_id: str,
        page: int = 1,
        limit: int = MAX_PAGINATION_LIMIT,
        sort_by: Optional[dict] = None,
        before: Optional[str] = None,
        after: Optional[str] = None,
    ) -> SignaturePage:
        validate_pubkey(asset_id, "asset_id")
        params = {"id": asset_id}
        params.update(self._page_params(page, limit, sort_by, before, after))
        return SignaturePage.from_dict(await self._call("getSignaturesForAsset", params))

    # =========================================================================
    # Compressed NFT helpers
    # =========================================================================

    async def fetch_cnft_by_asset_id(self, asset_id: str, proof: bool = True) -> dict:
        """Fetch an asset, with its proof unless `proof` is False, as plain JSON."""
        if proof:
            return (await self.get_asset_with_proof(asset_id)).to_dict()
        return (await self.get_asset(asset_id)).to_dict()

    async def fetch_cnft_by_tree_and_leaf(
        self,
        merkle_tree: str,
        leaf_index: int,
        proof: bool = True,
        program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
    ) -> dict:
        """Fetch the asset minted at `leaf_index` of `merkle_tree`."""
        validate_pubkey(merkle_tree, "merkle_tree")
        if leaf_index < 0:
            raise ValueError("leaf_index cannot be negative")
        asset_id, _ = get_asset_id(Pubkey.from_string(merkle_tree), leaf_index, program_id)
        return await self.fetch_cnft_by_asset_id(str(asset_id), proof)

    async def fetch_cnfts_by_owner(
        self,
        owner: str,
        collection: Optional[str] = None,
        paginate: bool = True,
    ) -> List[Asset]:
        """Every asset held by `owner`, narrowed to `collection` when given."""
        validate_pubkey(owner, "owner")
        assets = await fetch_all(
            self.get_assets_by_owner,
            {"owner": owner},
            paginate,
            self._page_limit,
            self._backoff_policy,
            should_retry=is_retryable,
        )
        if collection is not None:
            assets = [a for a in assets if a.in_collection(collection)]
        return assets

    async def fetch_cnfts_by_collection(
        self, collection: str, paginate: bool = True
    ) -> List[Asset]:
        validate_pubkey(collection, "collection")
        return await fetch_all(
            self.get_assets_by_group,
            {"group_value": collection, "group_key": "collection"},
            paginate,
            self._page_limit,
            self._backoff_policy,
            should_retry=is_retryable,
        )

    async def search_cnfts(
        self,
        owner: Optional[str] = None,
        collection: Optional[str] = None,
        compressed: bool = True,
        paginate: bool = True,
    ) -> List[Asset]:
        """Search by owner and/or collection. At least one is required."""
        if owner is None and collection is None:
            raise ValueError("owner or collection is required")
        if owner is not None:
            validate_pubkey(owner, "owner")
        if collection is not None:
            validate_pubkey(collection, "collection")
        return await fetch_all(
            self.search_assets,
            {"owner": owner, "collection": collection, "compressed": compressed},
            paginate,
            self._page_limit,
            self._backoff_policy,
            should_retry=is_retryable,
        )

    async def fetch_signatures_for_asset(
        self, asset_id: str, paginate: bool = True
    ) -> List[AssetSignature]:
        validate_pubkey(asset_id, "asset_id")
        return await fetch_all(
            self.get_signatures_for_asset,
            {"asset_id": asset_id},
            paginate,
            self._page_limit,
            self._backoff_policy,
            should_retry=is_retryable,
        )
