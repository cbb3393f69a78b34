"""Type definitions for the cnft-cli program module."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, List, Optional, Union

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.signature import Signature


class TokenStandard(IntEnum):
    """Token Metadata token standard."""

    NON_FUNGIBLE = 0
    FUNGIBLE_ASSET = 1
    FUNGIBLE = 2
    NON_FUNGIBLE_EDITION = 3


class TokenProgramVersion(IntEnum):
    """Token program a compressed leaf targets on decompression."""

    ORIGINAL = 0
    TOKEN_2022 = 1


class UseMethod(IntEnum):
    BURN = 0
    MULTIPLE = 1
    SINGLE = 2


class AssemblyStage(Enum):
    """Lifecycle of a transaction envelope inside the assembler."""

    EMPTY = "empty"
    INSTRUCTIONS_SET = "instructions_set"
    COMPILED = "compiled"
    PARTIALLY_SIGNED = "partially_signed"
    SERIALIZED = "serialized"


# ============================================================================
# Metadata
# ============================================================================


@dataclass
class Creator:
    """Creator entry of an NFT."""

    address: Pubkey
    verified: bool = False
    share: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "Creator":
        return cls(
            address=Pubkey.from_string(data["address"]),
            verified=bool(data.get("verified", False)),
            share=int(data.get("share", 0)),
        )

    def to_dict(self) -> dict:
        return {"address": str(self.address), "verified": self.verified, "share": self.share}


@dataclass
class Attribute:
    """Off-chain JSON attribute."""

    trait_type: str
    value: Union[str, int, float]

    @classmethod
    def from_dict(cls, data: dict) -> "Attribute":
        return cls(trait_type=data["trait_type"], value=data["value"])

    def to_dict(self) -> dict:
        return {"trait_type": self.trait_type, "value": self.value}


@dataclass
class Collection:
    """On-chain collection reference inside MetadataArgs."""

    key: Pubkey
    verified: bool = False


@dataclass
class Uses:
    use_method: UseMethod
    remaining: int
    total: int


@dataclass
class MetadataArgs:
    """Bubblegum MetadataArgs, the on-chain part of a compressed leaf."""

    name: str
    uri: str
    seller_fee_basis_points: int
    symbol: str = ""
    primary_sale_happened: bool = False
    is_mutable: bool = True
    edition_nonce: Optional[int] = None
    token_standard: Optional[TokenStandard] = TokenStandard.NON_FUNGIBLE
    collection: Optional[Collection] = None
    uses: Optional[Uses] = None
    token_program_version: TokenProgramVersion = TokenProgramVersion.ORIGINAL
    creators: List[Creator] = field(default_factory=list)


@dataclass
class UpdateArgs:
    """Bubblegum UpdateArgs. None leaves the field unchanged."""

    name: Optional[str] = None
    symbol: Optional[str] = None
    uri: Optional[str] = None
    creators: Optional[List[Creator]] = None
    seller_fee_basis_points: Optional[int] = None
    primary_sale_happened: Optional[bool] = None
    is_mutable: Optional[bool] = None


# ============================================================================
# Collections and configs
# ============================================================================


@dataclass
class NftCollection:
    """Collection-level fields shared by every NFT minted into it."""

    address: Pubkey
    name: str
    symbol: str
    seller_fee_basis_points: int
    description: Optional[str] = None
    primary_sale_happened: Optional[bool] = None
    verified: Optional[bool] = None
    external_url: Optional[str] = None


@dataclass
class MetadataConfig:
    """Collection + merkle tree config file used by the mint commands."""

    address: Pubkey
    merkle_tree_address: Pubkey
    name: str
    symbol: str
    seller_fee_basis_points: int
    description: Optional[str] = None
    primary_sale_happened: Optional[bool] = None
    verified: Optional[bool] = None
    external_url: Optional[str] = None
    creators: List[Creator] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "MetadataConfig":
        return cls(
            address=Pubkey.from_string(data["address"]),
            merkle_tree_address=Pubkey.from_string(data["merkleTreeAddress"]),
            name=data["name"],
            symbol=data.get("symbol", ""),
            seller_fee_basis_points=int(data.get("sellerFeeBasisPoints", 0)),
            description=data.get("description"),
            primary_sale_happened=data.get("primarySaleHappened"),
            verified=data.get("verified"),
            external_url=data.get("externalUrl"),
            creators=[Creator.from_dict(c) for c in data.get("creators") or []],
            attributes=[Attribute.from_dict(a) for a in data.get("attributes") or []],
        )

    def to_collection(self) -> NftCollection:
        return NftCollection(
            address=self.address,
            name=self.name,
            symbol=self.symbol,
            seller_fee_basis_points=self.seller_fee_basis_points,
            description=self.description,
            primary_sale_happened=self.primary_sale_happened,
            verified=self.verified,
            external_url=self.external_url,
        )


@dataclass
class ImageSource:
    """Where an NFT image comes from: an existing URI, a file path, or raw bytes."""

    path: Optional[str] = None
    is_uri: bool = False
    data: Optional[bytes] = None


@dataclass
class CreateNftArgs:
    name: str
    collection_mint: Pubkey
    attributes: List[Attribute] = field(default_factory=list)
    creators: List[Creator] = field(default_factory=list)
    mint_to: Optional[Pubkey] = None
    image: Optional[ImageSource] = None


@dataclass
class CreateCollectionArgs:
    """A Token Metadata collection NFT to create; the authority is its sole creator."""

    name: str
    symbol: str
    description: str = ""
    seller_fee_basis_points: int = 500
    external_url: str = ""
    image: Optional[ImageSource] = None


@dataclass
class UpdateNftArgs:
    asset_id: Pubkey
    name: Optional[str] = None
    uri: Optional[str] = None


# ============================================================================
# Payments and composition
# ============================================================================


@dataclass
class TokenPayment:
    """SPL token payment that rides along with a mint.

    `amount` is always in the mint's native units.
    """

    payer: Pubkey
    payee: Pubkey
    amount: int
    decimals: int
    mint: Pubkey


@dataclass
class MintSpec:
    """Everything needed to build a mint_to_collection_v1 instruction."""

    leaf_owner: Pubkey
    merkle_tree: Pubkey
    collection_mint: Pubkey
    payer: Pubkey
    collection_authority: Pubkey
    metadata: MetadataArgs
    leaf_delegate: Optional[Pubkey] = None
    tree_creator_or_delegate: Optional[Pubkey] = None


@dataclass
class ComposeResult:
    """Ordered instructions plus the lookup tables they compress against."""

    instructions: List[Instruction]
    lookup_tables: List[AddressLookupTableAccount]
    fits_in_one_transaction: bool
    estimated_size: int


# ============================================================================
# Account data
# ============================================================================


@dataclass
class MerkleTreeHeader:
    """Concurrent merkle tree header plus derived canopy depth."""

    max_buffer_size: int
    max_depth: int
    authority: Pubkey
    creation_slot: int
    canopy_depth: int


# ============================================================================
# Results
# ============================================================================


@dataclass
class LookupTableResult:
    lut_address: Pubkey
    signature: Optional[Signature] = None
    slot: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lutAddress": str(self.lut_address),
            "transactionSignature": str(self.signature) if self.signature is not None else None,
            "slot": self.slot,
        }


@dataclass
class MerkleTreeResult:
    merkle_tree_address: Pubkey
    signature: Signature

    def to_dict(self) -> dict[str, Any]:
        return {
            "merkleTreeAddress": str(self.merkle_tree_address),
            "signature": str(self.signature),
        }


@dataclass
class CollectionResult:
    collection_mint: Pubkey
    signature: Signature
    metadata_uri: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": str(self.signature),
            "collectionMint": str(self.collection_mint),
        }
