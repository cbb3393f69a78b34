"""Read-side API module for cnft-cli.

This module provides the DAS JSON-RPC client, the retrying page loop that
drives its listings, and the nft.storage uploader.

Example:
    ```python
    from cnft_cli.api import DasApiClient

    async with DasApiClient("https://api.devnet.solana.com") as das:
        assets = await das.fetch_cnfts_by_collection(collection)
        print(f"Found {len(assets)} assets")
    ```
"""

from .client import DasApiClient

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
    InvalidParameterError,
    UnexpectedStatusError,
    RpcError,
    RetryExhaustedError,
    ErrorResponse,
)

from .validation import MAX_PAGINATION_LIMIT

from .retry import BackoffPolicy, Jitter, calculate_delay, is_retryable, retry_with_backoff

from .pagination import fetch_all

from .uploader import NftStorageUploader

from .types import (
    Asset,
    AssetCompression,
    AssetOwnership,
    AssetPage,
    AssetProof,
    AssetSignature,
    AssetWithProof,
    SignaturePage,
)

__all__ = [
    # Clients
    "DasApiClient",
    "NftStorageUploader",
    # Errors
    "ApiError",
    "HttpError",
    "NotFoundError",
    "BadRequestError",
    "ForbiddenError",
    "UnauthorizedError",
    "RateLimitedError",
    "ServerError",
    "DeserializeError",
    "InvalidParameterError",
    "UnexpectedStatusError",
    "RpcError",
    "RetryExhaustedError",
    "ErrorResponse",
    # Constants
    "MAX_PAGINATION_LIMIT",
    # Retry and pagination
    "BackoffPolicy",
    "Jitter",
    "calculate_delay",
    "is_retryable",
    "retry_with_backoff",
    "fetch_all",
    # Types
    "Asset",
    "AssetCompression",
    "AssetOwnership",
    "AssetPage",
    "AssetProof",
    "AssetSignature",
    "AssetWithProof",
    "SignaturePage",
]
