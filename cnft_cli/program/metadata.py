"""Leaf metadata: Borsh serialization, hashing, DAS reconstruction and JSON.

A compressed NFT stores only `keccak(keccak(MetadataArgs) || seller_fee)` in
its leaf. Updating it requires the exact current MetadataArgs, which are
rebuilt here from the DAS index and checked against the indexed hashes.
"""

from typing import List, Optional

import base58
from solders.pubkey import Pubkey

from .constants import MAX_CREATORS, MAX_NAME_LENGTH, MAX_SYMBOL_LENGTH, MAX_URI_LENGTH
from .errors import MetadataMismatchError
from .types import (
    Attribute,
    Collection,
    CreateCollectionArgs,
    Creator,
    MetadataArgs,
    NftCollection,
    TokenProgramVersion,
    TokenStandard,
    UpdateArgs,
    UseMethod,
    Uses,
)
from .utils import (
    encode_bool,
    encode_option,
    encode_string,
    encode_u16,
    encode_u64,
    encode_u8,
    encode_vec,
    keccak256,
)

_TOKEN_STANDARDS = {
    "NonFungible": TokenStandard.NON_FUNGIBLE,
    "FungibleAsset": TokenStandard.FUNGIBLE_ASSET,
    "Fungible": TokenStandard.FUNGIBLE,
    "NonFungibleEdition": TokenStandard.NON_FUNGIBLE_EDITION,
}

_USE_METHODS = {
    "Burn": UseMethod.BURN,
    "Multiple": UseMethod.MULTIPLE,
    "Single": UseMethod.SINGLE,
}


# ============================================================================
# Borsh
# ============================================================================


def serialize_creator(creator: Creator) -> bytes:
    return bytes(creator.address) + encode_bool(creator.verified) + encode_u8(creator.share)


def serialize_collection(collection: Collection) -> bytes:
    return encode_bool(collection.verified) + bytes(collection.key)


def serialize_uses(uses: Uses) -> bytes:
    return encode_u8(uses.use_method) + encode_u64(uses.remaining) + encode_u64(uses.total)


def serialize_metadata_args(metadata: MetadataArgs) -> bytes:
    """Serialize MetadataArgs in Bubblegum's Borsh layout."""
    data = bytearray()
    data.extend(encode_string(metadata.name))
    data.extend(encode_string(metadata.symbol))
    data.extend(encode_string(metadata.uri))
    data.extend(encode_u16(metadata.seller_fee_basis_points))
    data.extend(encode_bool(metadata.primary_sale_happened))
    data.extend(encode_bool(metadata.is_mutable))
    data.extend(encode_option(metadata.edition_nonce, encode_u8))
    data.extend(encode_option(metadata.token_standard, encode_u8))
    data.extend(encode_option(metadata.collection, serialize_collection))
    data.extend(encode_option(metadata.uses, serialize_uses))
    data.extend(encode_u8(metadata.token_program_version))
    data.extend(encode_vec(metadata.creators, serialize_creator))
    return bytes(data)


def serialize_update_args(args: UpdateArgs) -> bytes:
    """Serialize UpdateArgs in Bubblegum's Borsh layout."""
    data = bytearray()
    data.extend(encode_option(args.name, encode_string))
    data.extend(encode_option(args.symbol, encode_string))
    data.extend(encode_option(args.uri, encode_string))
    data.extend(
        encode_option(args.creators, lambda cs: encode_vec(cs, serialize_creator))
    )
    data.extend(encode_option(args.seller_fee_basis_points, encode_u16))
    data.extend(encode_option(args.primary_sale_happened, encode_bool))
    data.extend(encode_option(args.is_mutable, encode_bool))
    return bytes(data)


def serialize_data_v2(metadata: MetadataArgs) -> bytes:
    """Serialize the DataV2 subset of `metadata` for Token Metadata.

    An empty creator list is encoded as None.
    """
    data = bytearray()
    data.extend(encode_string(metadata.name))
    data.extend(encode_string(metadata.symbol))
    data.extend(encode_string(metadata.uri))
    data.extend(encode_u16(metadata.seller_fee_basis_points))
    data.extend(
        encode_option(metadata.creators or None, lambda cs: encode_vec(cs, serialize_creator))
    )
    data.extend(encode_option(metadata.collection, serialize_collection))
    data.extend(encode_option(metadata.uses, serialize_uses))
    return bytes(data)



# ============================================================================
# Hashing
# ============================================================================


def hash_metadata(metadata: MetadataArgs) -> bytes:
    """Leaf data hash: keccak(keccak(MetadataArgs) || seller_fee_basis_points)."""
    args_hash = keccak256(serialize_metadata_args(metadata))
    return keccak256(args_hash + encode_u16(metadata.seller_fee_basis_points))


def hash_creators(creators: List[Creator]) -> bytes:
    """Leaf creator hash: keccak of (address, verified, share) for each creator."""
    return keccak256(b"".join(serialize_creator(c) for c in creators))


# ============================================================================
# DAS reconstruction
# ============================================================================


def metadata_args_from_asset(asset: dict) -> MetadataArgs:
    """Rebuild the current MetadataArgs of a compressed asset from its DAS record."""
    content = asset.get("content") or {}
    meta = content.get("metadata") or {}
    royalty = asset.get("royalty") or {}
    supply = asset.get("supply") or {}

    collection = None
    for group in asset.get("grouping") or []:
        if group.get("group_key") == "collection":
            collection = Collection(
                key=Pubkey.from_string(group["group_value"]),
                verified=group.get("verified", True),
            )
            break

    uses = None
    raw_uses = asset.get("uses")
    if raw_uses:
        uses = Uses(
            use_method=_USE_METHODS[raw_uses["use_method"]],
            remaining=int(raw_uses["remaining"]),
            total=int(raw_uses["total"]),
        )

    token_standard = _TOKEN_STANDARDS.get(
        meta.get("token_standard") or "NonFungible", TokenStandard.NON_FUNGIBLE
    )
    token_program_version = (
        TokenProgramVersion.TOKEN_2022
        if meta.get("token_program_version") == "Token2022"
        else TokenProgramVersion.ORIGINAL
    )

    return MetadataArgs(
        name=meta.get("name", ""),
        symbol=meta.get("symbol", ""),
        uri=content.get("json_uri", ""),
        seller_fee_basis_points=int(royalty.get("basis_points", 0)),
        primary_sale_happened=bool(royalty.get("primary_sale_happened", False)),
        is_mutable=bool(asset.get("mutable", True)),
        edition_nonce=supply.get("edition_nonce"),
        token_standard=token_standard,
        collection=collection,
        uses=uses,
        token_program_version=token_program_version,
        creators=[Creator.from_dict(c) for c in asset.get("creators") or []],
    )


def verify_leaf_hashes(asset: dict, metadata: MetadataArgs) -> None:
    """Check rebuilt metadata against the indexed data and creator hashes.

    Raises:
        MetadataMismatchError: If either hash differs
    """
    compression = asset.get("compression") or {}
    asset_id = asset.get("id", "")
    data_hash = compression.get("data_hash")
    creator_hash = compression.get("creator_hash")
    if data_hash and base58.b58decode(data_hash) != hash_metadata(metadata):
        raise MetadataMismatchError(asset_id, "data_hash")
    if creator_hash and base58.b58decode(creator_hash) != hash_creators(metadata.creators):
        raise MetadataMismatchError(asset_id, "creator_hash")


# ============================================================================
# Off-chain JSON
# ============================================================================


def build_nft_json(
    collection: NftCollection,
    name: str,
    image_uri: str,
    attributes: List[Attribute],
    creators: List[Creator],
    image_type: str = "image/png",
) -> dict:
    """Build the off-chain JSON document an NFT's uri points to.

    The document is named after the NFT itself, not its collection.
    """
    return {
        "name": name,
        "symbol": collection.symbol,
        "description": collection.description,
        "seller_fee_basis_points": collection.seller_fee_basis_points,
        "image": image_uri,
        "external_url": collection.external_url,
        "attributes": [a.to_dict() for a in attributes],
        "properties": {
            "category": "image",
            "files": [{"file": image_uri, "type": image_type}],
            "creators": [c.to_dict() for c in creators],
        },
    }


def build_collection_json(
    args: CreateCollectionArgs,
    image_uri: str,
    image_type: str = "image/png",
) -> dict:
    """Build the off-chain JSON document a collection NFT's uri points to."""
    return {
        "name": args.name,
        "symbol": args.symbol,
        "description": args.description,
        "seller_fee_basis_points": args.seller_fee_basis_points,
        "image": image_uri,
        "external_url": args.external_url,
        "properties": {
            "category": "image",
            "files": [{"file": image_uri, "type": image_type}],
        },
    }


def build_collection_metadata(
    args: CreateCollectionArgs, uri: str, authority: Pubkey
) -> MetadataArgs:
    """On-chain data for a collection NFT with `authority` as sole verified creator."""
    return MetadataArgs(
        name=args.name,
        symbol=args.symbol,
        uri=uri,
        seller_fee_basis_points=args.seller_fee_basis_points,
        token_standard=None,
        creators=[Creator(address=authority, verified=True, share=100)],
    )



def build_mint_metadata(
    collection: NftCollection,
    name: str,
    uri: str,
    creators: Optional[List[Creator]] = None,
) -> MetadataArgs:
    """MetadataArgs for a new leaf minted into `collection`."""
    return MetadataArgs(
        name=name,
        uri=uri,
        seller_fee_basis_points=collection.seller_fee_basis_points,
        collection=Collection(key=collection.address, verified=False),
        creators=list(creators or []),
    )


def validate_metadata_args(metadata: MetadataArgs) -> None:
    """Check the on-chain limits Bubblegum enforces on new leaves.

    Raises:
        ValueError: If a field exceeds its limit or creator shares do not sum to 100
    """
    if len(metadata.name.encode("utf-8")) > MAX_NAME_LENGTH:
        raise ValueError(f"Name exceeds {MAX_NAME_LENGTH} bytes: {metadata.name!r}")
    if len(metadata.symbol.encode("utf-8")) > MAX_SYMBOL_LENGTH:
        raise ValueError(f"Symbol exceeds {MAX_SYMBOL_LENGTH} bytes: {metadata.symbol!r}")
    if len(metadata.uri.encode("utf-8")) > MAX_URI_LENGTH:
        raise ValueError(f"URI exceeds {MAX_URI_LENGTH} bytes")
    if not 0 <= metadata.seller_fee_basis_points <= 10000:
        raise ValueError(
            f"Seller fee must be 0-10000 basis points, got {metadata.seller_fee_basis_points}"
        )
    if len(metadata.creators) > MAX_CREATORS:
        raise ValueError(f"At most {MAX_CREATORS} creators are allowed")
    if metadata.creators and sum(c.share for c in metadata.creators) != 100:
        raise ValueError("Creator shares must sum to 100")
