"""On-chain program interaction module for cnft-cli.

This module provides the instruction builders, account decoders and the
compose / assemble / hand off pipeline for Bubblegum compressed NFTs.
"""

from .accounts import (
    deserialize_lookup_table,
    deserialize_merkle_tree_header,
    fetch_account_data,
    fetch_lookup_table,
    fetch_merkle_tree_header,
    fetch_mint,
    find_token_account,
)
from .assembler import TransactionAssembler
from .composer import InstructionComposer, measure_instructions
from .handoff import (
    SignatureSlot,
    decode_transaction,
    encode_transaction,
    is_fully_signed,
    missing_signers,
    sign_as,
    signature_status,
)
from .instructions import (
    build_allocate_tree_instruction,
    build_create_collection_mint_instructions,
    build_create_lookup_table_instruction,
    build_create_master_edition_v3_instruction,
    build_create_metadata_account_v3_instruction,
    build_create_tree_instruction,
    build_extend_lookup_table_instruction,
    build_mint_to_collection_v1_instruction,
    build_token_payment_instruction,
    build_update_metadata_instruction,
    get_merkle_tree_size,
)
from .metadata import (
    build_collection_json,
    build_collection_metadata,
    build_mint_metadata,
    build_nft_json,
    hash_creators,
    hash_metadata,
    metadata_args_from_asset,
    serialize_data_v2,
    serialize_metadata_args,
    serialize_update_args,
    validate_metadata_args,
    verify_leaf_hashes,
)
from .pda import (
    get_asset_id,
    get_bubblegum_signer_pda,
    get_lookup_table_address,
    get_master_edition_pda,
    get_metadata_pda,
    get_tree_config_pda,
)
from .utils import (
    estimate_transaction_size,
    fits_in_one_transaction,
    native_to_ui,
    ui_to_native,
)

__all__ = [
    # Pipeline
    "InstructionComposer",
    "TransactionAssembler",
    "measure_instructions",
    # Handoff
    "SignatureSlot",
    "decode_transaction",
    "encode_transaction",
    "is_fully_signed",
    "missing_signers",
    "sign_as",
    "signature_status",
    # Account Deserialization
    "deserialize_lookup_table",
    "deserialize_merkle_tree_header",
    # Account Fetchers
    "fetch_account_data",
    "fetch_lookup_table",
    "fetch_merkle_tree_header",
    "fetch_mint",
    "find_token_account",
    # PDA Functions
    "get_asset_id",
    "get_bubblegum_signer_pda",
    "get_lookup_table_address",
    "get_master_edition_pda",
    "get_metadata_pda",
    "get_tree_config_pda",
    # Instruction Builders
    "build_allocate_tree_instruction",
    "build_create_collection_mint_instructions",
    "build_create_lookup_table_instruction",
    "build_create_master_edition_v3_instruction",
    "build_create_metadata_account_v3_instruction",
    "build_create_tree_instruction",
    "build_extend_lookup_table_instruction",
    "build_mint_to_collection_v1_instruction",
    "build_token_payment_instruction",
    "build_update_metadata_instruction",
    "get_merkle_tree_size",
    # Metadata
    "build_collection_json",
    "build_collection_metadata",
    "build_mint_metadata",
    "build_nft_json",
    "hash_creators",
    "hash_metadata",
    "metadata_args_from_asset",
    "serialize_data_v2",
    "serialize_metadata_args",
    "serialize_update_args",
    "validate_metadata_args",
    "verify_leaf_hashes",
    # Amounts and sizing
    "estimate_transaction_size",
    "fits_in_one_transaction",
    "native_to_ui",
    "ui_to_native",
]
