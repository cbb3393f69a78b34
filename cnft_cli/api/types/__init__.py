"""DAS API types."""

from .asset import (
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
    "Asset",
    "AssetCompression",
    "AssetOwnership",
    "AssetPage",
    "AssetProof",
    "AssetSignature",
    "AssetWithProof",
    "SignaturePage",
]
