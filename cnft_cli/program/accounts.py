"""Account deserialization and fetch helpers for cnft-cli."""

import logging
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.types import TokenAccountOpts
from solders.address_lookup_table_account import (
    AddressLookupTable,
    AddressLookupTableAccount,
)
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.async_client import AsyncToken
from spl.token.core import MintInfo

from .constants import (
    CONCURRENT_MERKLE_TREE_ACCOUNT_TYPE,
    CONCURRENT_MERKLE_TREE_HEADER_SIZE,
    TOKEN_PROGRAM_ID,
)
from .errors import (
    AccountNotFoundError,
    InvalidAccountDataError,
    InvalidDiscriminatorError,
    LookupTableNotFoundError,
    MissingTokenAccountError,
)
from .types import MerkleTreeHeader
from .utils import decode_pubkey, decode_u32, decode_u64, decode_u8

logger = logging.getLogger(__name__)


def deserialize_lookup_table(data: bytes) -> AddressLookupTable:
    """Deserialize an address lookup table account.

    Raises:
        InvalidAccountDataError: If the bytes are not an initialized lookup table
    """
    try:
        return AddressLookupTable.deserialize(data)
    except Exception as e:
        raise InvalidAccountDataError(f"Invalid lookup table data: {e}") from e


def deserialize_merkle_tree_header(data: bytes) -> MerkleTreeHeader:
    """Deserialize a concurrent merkle tree account header.

    Layout:
    - [0]: account type (1 = ConcurrentMerkleTree)
    - [1]: header version (0 = V1)
    - [2..6]: max_buffer_size (u32 LE)
    - [6..10]: max_depth (u32 LE)
    - [10..42]: authority (Pubkey)
    - [42..50]: creation_slot (u64 LE)
    - [50..56]: padding

    The canopy depth is derived from the bytes left after the tree body.
    """
    if len(data) < CONCURRENT_MERKLE_TREE_HEADER_SIZE:
        raise InvalidAccountDataError(f"Merkle tree data too short: {len(data)} bytes")

    account_type = decode_u8(data, 0)
    if account_type != CONCURRENT_MERKLE_TREE_ACCOUNT_TYPE:
        raise InvalidDiscriminatorError(CONCURRENT_MERKLE_TREE_ACCOUNT_TYPE, account_type)

    max_buffer_size = decode_u32(data, 2)
    max_depth = decode_u32(data, 6)

    path_size = 32 * max_depth + 40
    tree_size = 24 + max_buffer_size * path_size + path_size
    canopy_bytes = len(data) - CONCURRENT_MERKLE_TREE_HEADER_SIZE - tree_size
    if canopy_bytes < 0:
        raise InvalidAccountDataError(
            f"Merkle tree data too short for depth {max_depth} and buffer {max_buffer_size}"
        )
    # canopy holds (2^(d+1) - 2) nodes
    nodes = canopy_bytes // 32
    canopy_depth = max((nodes + 2).bit_length() - 2, 0)

    return MerkleTreeHeader(
        max_buffer_size=max_buffer_size,
        max_depth=max_depth,
        authority=decode_pubkey(data, 10),
        creation_slot=decode_u64(data, 42),
        canopy_depth=canopy_depth,
    )


# ============================================================================
# Fetchers
# ============================================================================


async def fetch_account_data(connection: AsyncClient, address: Pubkey) -> bytes:
    """Fetch raw account data.

    Raises:
        AccountNotFoundError: If the account does not exist
    """
    response = await connection.get_account_info(address)
    if response.value is None:
        raise AccountNotFoundError(str(address))
    return bytes(response.value.data)


async def fetch_lookup_table(
    connection: AsyncClient, address: Pubkey
) -> AddressLookupTableAccount:
    """Fetch a lookup table and return it in the form message compilation takes.

    Raises:
        LookupTableNotFoundError: If the table does not exist yet
    """
    response = await connection.get_account_info(address)
    if response.value is None:
        raise LookupTableNotFoundError(str(address))

    table = deserialize_lookup_table(bytes(response.value.data))
    logger.debug(f"Resolved lookup table {address} with {len(table.addresses)} addresses")
    return AddressLookupTableAccount(key=address, addresses=table.addresses)


async def fetch_mint(
    connection: AsyncClient, mint: Pubkey, payer: Optional[Keypair] = None
) -> MintInfo:
    """Fetch an SPL token mint through the token client.

    Raises:
        AccountNotFoundError: If the mint does not exist
        InvalidAccountDataError: If the account is not a token program mint
    """
    # the token client wants a payer even for reads
    token = AsyncToken(connection, mint, TOKEN_PROGRAM_ID, payer or Keypair())
    try:
        return await token.get_mint_info()
    except AttributeError as e:
        raise InvalidAccountDataError(f"{mint} is not owned by the token program") from e
    except ValueError as e:
        if "Failed to find" in str(e):
            raise AccountNotFoundError(str(mint)) from e
        raise InvalidAccountDataError(f"Invalid mint data for {mint}: {e}") from e


async def fetch_merkle_tree_header(
    connection: AsyncClient, merkle_tree: Pubkey
) -> MerkleTreeHeader:
    """Fetch and deserialize a merkle tree header."""
    return deserialize_merkle_tree_header(await fetch_account_data(connection, merkle_tree))


async def find_token_account(
    connection: AsyncClient, owner: Pubkey, mint: Pubkey
) -> Pubkey:
    """Return the first token account `owner` holds for `mint`.

    Raises:
        MissingTokenAccountError: If the owner has no token account for the mint
    """
    response = await connection.get_token_accounts_by_owner(owner, TokenAccountOpts(mint=mint))
    if not response.value:
        raise MissingTokenAccountError(str(owner), str(mint))
    return response.value[0].pubkey
