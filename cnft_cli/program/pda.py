"""PDA (Program Derived Address) derivation functions for cnft-cli."""

from typing import Tuple

from solders.address_lookup_table_account import derive_lookup_table_address
from solders.pubkey import Pubkey

from .constants import (
    BUBBLEGUM_PROGRAM_ID,
    SEED_ASSET,
    SEED_COLLECTION_CPI,
    SEED_EDITION,
    SEED_METADATA,
    TOKEN_METADATA_PROGRAM_ID,
)
from .utils import encode_u64


def get_tree_config_pda(
    merkle_tree: Pubkey,
    program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Derive the Bubblegum tree config (tree authority) PDA.

    Seeds: [merkle_tree]
    """
    return Pubkey.find_program_address([bytes(merkle_tree)], program_id)


def get_bubblegum_signer_pda(
    program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Derive the Bubblegum collection CPI signer PDA.

    Seeds: ["collection_cpi"]
    """
    return Pubkey.find_program_address([SEED_COLLECTION_CPI], program_id)


def get_asset_id(
    merkle_tree: Pubkey,
    leaf_index: int,
    program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Derive the asset id of the leaf at `leaf_index` in a tree.

    Seeds: ["asset", merkle_tree, leaf_index (u64 LE)]
    """
    return Pubkey.find_program_address(
        [SEED_ASSET, bytes(merkle_tree), encode_u64(leaf_index)],
        program_id,
    )


def get_metadata_pda(mint: Pubkey) -> Tuple[Pubkey, int]:
    """Derive the Token Metadata account for a mint.

    Seeds: ["metadata", token_metadata_program, mint]
    """
    return Pubkey.find_program_address(
        [SEED_METADATA, bytes(TOKEN_METADATA_PROGRAM_ID), bytes(mint)],
        TOKEN_METADATA_PROGRAM_ID,
    )


def get_master_edition_pda(mint: Pubkey) -> Tuple[Pubkey, int]:
    """Derive the Token Metadata master edition account for a mint.

    Seeds: ["metadata", token_metadata_program, mint, "edition"]
    """
    return Pubkey.find_program_address(
        [SEED_METADATA, bytes(TOKEN_METADATA_PROGRAM_ID), bytes(mint), SEED_EDITION],
        TOKEN_METADATA_PROGRAM_ID,
    )


def get_lookup_table_address(authority: Pubkey, recent_slot: int) -> Tuple[Pubkey, int]:
    """Derive the address of a lookup table created by `authority` at `recent_slot`."""
    return derive_lookup_table_address(authority, recent_slot)
