"""Program IDs, seeds, discriminators and size limits used by cnft-cli."""

import hashlib

from solders.address_lookup_table_account import ID as ADDRESS_LOOKUP_TABLE_PROGRAM_ID
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import TOKEN_PROGRAM_ID

# ============================================================================
# PROGRAM IDS
# ============================================================================

BUBBLEGUM_PROGRAM_ID = Pubkey.from_string("BGUMAp9Gq7iTEuizy4pqaxsTyUCBK68MDfK752saRPUY")
SPL_ACCOUNT_COMPRESSION_PROGRAM_ID = Pubkey.from_string(
    "cmtDvXumGCrqC1Age74AVPhSRVXJMd8PJS91L8KbNCK"
)
SPL_NOOP_PROGRAM_ID = Pubkey.from_string("noopb9bkMVfRPU8AsbpTUg8AQkHtKwMYZiFUjNRtMmV")
TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

# Addresses a fresh cNFT lookup table is seeded with.
CNFT_LUT_ADDRESSES = [
    SPL_NOOP_PROGRAM_ID,
    BUBBLEGUM_PROGRAM_ID,
    SPL_ACCOUNT_COMPRESSION_PROGRAM_ID,
    TOKEN_METADATA_PROGRAM_ID,
]

# ============================================================================
# SEEDS
# ============================================================================

SEED_ASSET = b"asset"
SEED_COLLECTION_CPI = b"collection_cpi"
SEED_METADATA = b"metadata"
SEED_EDITION = b"edition"

# ============================================================================
# INSTRUCTION DISCRIMINATORS (Anchor: sha256("global:<name>")[:8])
# ============================================================================


def anchor_discriminator(name: str) -> bytes:
    """Compute the 8-byte Anchor instruction discriminator for `name`."""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:8]


CREATE_TREE_DISCRIMINATOR = anchor_discriminator("create_tree")
MINT_TO_COLLECTION_V1_DISCRIMINATOR = anchor_discriminator("mint_to_collection_v1")
UPDATE_METADATA_DISCRIMINATOR = anchor_discriminator("update_metadata")

# Token Metadata instructions are indexed by a single u8
CREATE_MASTER_EDITION_V3_DISCRIMINATOR = 17
CREATE_METADATA_ACCOUNT_V3_DISCRIMINATOR = 33

# ============================================================================
# ACCOUNT LAYOUTS
# ============================================================================

# account type (1) + header version (1) + ConcurrentMerkleTreeHeaderDataV1 (54)
CONCURRENT_MERKLE_TREE_HEADER_SIZE = 2 + 54
CONCURRENT_MERKLE_TREE_ACCOUNT_TYPE = 1

# ============================================================================
# TRANSACTION LIMITS
# ============================================================================

# Maximum serialized transaction size accepted by the network (IPv6 MTU - headers)
PACKET_DATA_SIZE = 1232
SIGNATURE_LENGTH = 64

# ============================================================================
# METADATA LIMITS
# ============================================================================

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200
MAX_CREATORS = 5

DEFAULT_MAX_DEPTH = 14
DEFAULT_MAX_BUFFER_SIZE = 64

__all__ = [
    "ADDRESS_LOOKUP_TABLE_PROGRAM_ID",
    "SYSTEM_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "BUBBLEGUM_PROGRAM_ID",
    "SPL_ACCOUNT_COMPRESSION_PROGRAM_ID",
    "SPL_NOOP_PROGRAM_ID",
    "TOKEN_METADATA_PROGRAM_ID",
    "CNFT_LUT_ADDRESSES",
    "SEED_ASSET",
    "SEED_COLLECTION_CPI",
    "SEED_METADATA",
    "SEED_EDITION",
    "anchor_discriminator",
    "CREATE_TREE_DISCRIMINATOR",
    "MINT_TO_COLLECTION_V1_DISCRIMINATOR",
    "UPDATE_METADATA_DISCRIMINATOR",
    "CREATE_MASTER_EDITION_V3_DISCRIMINATOR",
    "CREATE_METADATA_ACCOUNT_V3_DISCRIMINATOR",
    "CONCURRENT_MERKLE_TREE_HEADER_SIZE",
    "CONCURRENT_MERKLE_TREE_ACCOUNT_TYPE",
    "PACKET_DATA_SIZE",
    "SIGNATURE_LENGTH",
    "MAX_NAME_LENGTH",
    "MAX_SYMBOL_LENGTH",
    "MAX_URI_LENGTH",
    "MAX_CREATORS",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_BUFFER_SIZE",
]
