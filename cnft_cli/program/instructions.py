"""Instruction builders for cnft-cli.

Bubblegum and Token Metadata instructions are Borsh-encoded by hand; SPL
Token, System and Address Lookup Table instructions come from solana-py /
solders builders.
"""

from typing import List, Optional, Sequence, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import (
    CreateAccountParams,
    CreateLookupTableParams,
    ExtendLookupTableParams,
    create_account,
    create_lookup_table,
    extend_lookup_table,
)
from solders.sysvar import RENT
from spl.token.constants import MINT_LEN
from spl.token.instructions import (
    InitializeMintParams,
    MintToParams,
    TransferCheckedParams,
    create_associated_token_account,
    get_associated_token_address,
    initialize_mint,
    mint_to,
    transfer_checked,
)

from .constants import (
    BUBBLEGUM_PROGRAM_ID,
    CONCURRENT_MERKLE_TREE_HEADER_SIZE,
    CREATE_MASTER_EDITION_V3_DISCRIMINATOR,
    CREATE_METADATA_ACCOUNT_V3_DISCRIMINATOR,
    CREATE_TREE_DISCRIMINATOR,
    MINT_TO_COLLECTION_V1_DISCRIMINATOR,
    SPL_ACCOUNT_COMPRESSION_PROGRAM_ID,
    SPL_NOOP_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_METADATA_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    UPDATE_METADATA_DISCRIMINATOR,
)
from .metadata import serialize_data_v2, serialize_metadata_args, serialize_update_args
from .pda import (
    get_bubblegum_signer_pda,
    get_master_edition_pda,
    get_metadata_pda,
    get_tree_config_pda,
)
from .types import MetadataArgs, MintSpec, TokenPayment, UpdateArgs
from .utils import encode_bool, encode_option, encode_u32, encode_u64, encode_u8


def build_mint_to_collection_v1_instruction(
    spec: MintSpec,
    program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
) -> Instruction:
    """Build the Bubblegum mint_to_collection_v1 instruction.

    Accounts:
    0. tree_config (writable)
    1. leaf_owner
    2. leaf_delegate
    3. merkle_tree (writable)
    4. payer (signer, writable)
    5. tree_creator_or_delegate (signer)
    6. collection_authority (signer)
    7. collection_authority_record_pda (program id when unused)
    8. collection_mint
    9. collection_metadata (writable)
    10. collection_edition
    11. bubblegum_signer
    12. log_wrapper
    13. compression_program
    14. token_metadata_program
    15. system_program

    Data: [discriminator (8), MetadataArgs]
    """
    tree_config, _ = get_tree_config_pda(spec.merkle_tree, program_id)
    bubblegum_signer, _ = get_bubblegum_signer_pda(program_id)
    collection_metadata, _ = get_metadata_pda(spec.collection_mint)
    collection_edition, _ = get_master_edition_pda(spec.collection_mint)
    leaf_delegate = spec.leaf_delegate or spec.leaf_owner
    tree_delegate = spec.tree_creator_or_delegate or spec.collection_authority

    accounts = [
        AccountMeta(pubkey=tree_config, is_signer=False, is_writable=True),
        AccountMeta(pubkey=spec.leaf_owner, is_signer=False, is_writable=False),
        AccountMeta(pubkey=leaf_delegate, is_signer=False, is_writable=False),
        AccountMeta(pubkey=spec.merkle_tree, is_signer=False, is_writable=True),
        AccountMeta(pubkey=spec.payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=tree_delegate, is_signer=True, is_writable=False),
        AccountMeta(pubkey=spec.collection_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=program_id, is_signer=False, is_writable=False),
        AccountMeta(pubkey=spec.collection_mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=collection_metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=collection_edition, is_signer=False, is_writable=False),
        AccountMeta(pubkey=bubblegum_signer, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SPL_NOOP_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SPL_ACCOUNT_COMPRESSION_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]

    data = MINT_TO_COLLECTION_V1_DISCRIMINATOR + serialize_metadata_args(spec.metadata)

    return Instruction(program_id=program_id, accounts=accounts, data=data)


def build_update_metadata_instruction(
    authority: Pubkey,
    payer: Pubkey,
    merkle_tree: Pubkey,
    leaf_owner: Pubkey,
    leaf_delegate: Pubkey,
    root: bytes,
    nonce: int,
    index: int,
    current_metadata: MetadataArgs,
    update_args: UpdateArgs,
    proof: Sequence[Pubkey] = (),
    collection_mint: Optional[Pubkey] = None,
    program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
) -> Instruction:
    """Build the Bubblegum update_metadata instruction.

    Accounts:
    0. tree_config
    1. authority (signer)
    2. collection_mint (program id when unused)
    3. collection_metadata (program id when unused)
    4. collection_authority_record_pda (program id when unused)
    5. leaf_owner
    6. leaf_delegate
    7. payer (signer)
    8. merkle_tree (writable)
    9. log_wrapper
    10. compression_program
    11. token_metadata_program
    12. system_program
    Remaining: proof nodes

    Data: [discriminator (8), root (32), nonce (u64), index (u32),
           current_metadata (MetadataArgs), update_args (UpdateArgs)]
    """
    if len(root) != 32:
        raise ValueError(f"Invalid root length: {len(root)} (expected 32)")

    tree_config, _ = get_tree_config_pda(merkle_tree, program_id)
    if collection_mint is not None:
        collection_metadata, _ = get_metadata_pda(collection_mint)
        collection_mint_key = collection_mint
    else:
        collection_metadata = program_id
        collection_mint_key = program_id

    accounts = [
        AccountMeta(pubkey=tree_config, is_signer=False, is_writable=False),
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=collection_mint_key, is_signer=False, is_writable=False),
        AccountMeta(pubkey=collection_metadata, is_signer=False, is_writable=False),
        AccountMeta(pubkey=program_id, is_signer=False, is_writable=False),
        AccountMeta(pubkey=leaf_owner, is_signer=False, is_writable=False),
        AccountMeta(pubkey=leaf_delegate, is_signer=False, is_writable=False),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=merkle_tree, is_signer=False, is_writable=True),
        AccountMeta(pubkey=SPL_NOOP_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SPL_ACCOUNT_COMPRESSION_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    for node in proof:
        accounts.append(AccountMeta(pubkey=node, is_signer=False, is_writable=False))

    data = bytearray()
    data.extend(UPDATE_METADATA_DISCRIMINATOR)
    data.extend(root)
    data.extend(encode_u64(nonce))
    data.extend(encode_u32(index))
    data.extend(serialize_metadata_args(current_metadata))
    data.extend(serialize_update_args(update_args))

    return Instruction(program_id=program_id, accounts=accounts, data=bytes(data))


def build_token_payment_instruction(
    payment: TokenPayment,
    source: Pubkey,
    destination: Pubkey,
    program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """Build an SPL transfer_checked moving `payment.amount` from payer to payee.

    `source` and `destination` are the payer's and payee's token accounts;
    the payer signs as owner of the source.
    """
    return transfer_checked(
        TransferCheckedParams(
            program_id=program_id,
            source=source,
            mint=payment.mint,
            dest=destination,
            owner=payment.payer,
            amount=payment.amount,
            decimals=payment.decimals,
        )
    )


# ============================================================================
# Merkle trees
# ============================================================================


def get_merkle_tree_size(max_depth: int, max_buffer_size: int, canopy_depth: int = 0) -> int:
    """Byte size of a concurrent merkle tree account.

    header + sequence_number, active_index, buffer_size (3 x u64)
    + change_log[max_buffer_size] + rightmost_path + canopy
    where a change log and a path are each 32*depth + 32 + u32 index + u32 padding.
    """
    path_size = 32 * max_depth + 32 + 4 + 4
    tree_size = 8 * 3 + max_buffer_size * path_size + path_size
    canopy_size = ((1 << (canopy_depth + 1)) - 2) * 32 if canopy_depth else 0
    return CONCURRENT_MERKLE_TREE_HEADER_SIZE + tree_size + canopy_size


def build_allocate_tree_instruction(
    payer: Pubkey,
    merkle_tree: Pubkey,
    lamports: int,
    space: int,
) -> Instruction:
    """Allocate the tree account, owned by the account compression program."""
    return create_account(
        CreateAccountParams(
            from_pubkey=payer,
            to_pubkey=merkle_tree,
            lamports=lamports,
            space=space,
            owner=SPL_ACCOUNT_COMPRESSION_PROGRAM_ID,
        )
    )


def build_create_tree_instruction(
    payer: Pubkey,
    tree_creator: Pubkey,
    merkle_tree: Pubkey,
    max_depth: int,
    max_buffer_size: int,
    public: Optional[bool] = None,
    program_id: Pubkey = BUBBLEGUM_PROGRAM_ID,
) -> Instruction:
    """Build the Bubblegum create_tree instruction.

    Accounts:
    0. tree_config (writable)
    1. merkle_tree (writable)
    2. payer (signer, writable)
    3. tree_creator (signer)
    4. log_wrapper
    5. compression_program
    6. system_program

    Data: [discriminator (8), max_depth (u32), max_buffer_size (u32), public (Option<bool>)]
    """
    tree_config, _ = get_tree_config_pda(merkle_tree, program_id)

    accounts = [
        AccountMeta(pubkey=tree_config, is_signer=False, is_writable=True),
        AccountMeta(pubkey=merkle_tree, is_signer=False, is_writable=True),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=tree_creator, is_signer=True, is_writable=False),
        AccountMeta(pubkey=SPL_NOOP_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SPL_ACCOUNT_COMPRESSION_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]

    data = bytearray()
    data.extend(CREATE_TREE_DISCRIMINATOR)
    data.extend(encode_u32(max_depth))
    data.extend(encode_u32(max_buffer_size))
    data.extend(encode_option(public, encode_bool))

    return Instruction(program_id=program_id, accounts=accounts, data=bytes(data))


# ============================================================================
# Address lookup tables
# ============================================================================


def build_create_lookup_table_instruction(
    authority: Pubkey,
    payer: Pubkey,
    recent_slot: int,
) -> Tuple[Instruction, Pubkey]:
    """Build a create_lookup_table instruction; returns it with the table address."""
    return create_lookup_table(
        CreateLookupTableParams(
            authority_address=authority,
            payer_address=payer,
            recent_slot=recent_slot,
        )
    )


def build_extend_lookup_table_instruction(
    lookup_table: Pubkey,
    authority: Pubkey,
    new_addresses: List[Pubkey],
    payer: Optional[Pubkey] = None,
) -> Instruction:
    """Build an extend_lookup_table instruction appending `new_addresses`."""
    return extend_lookup_table(
        ExtendLookupTableParams(
            lookup_table_address=lookup_table,
            authority_address=authority,
            new_addresses=new_addresses,
            payer_address=payer if payer is not None else authority,
        )
    )


# ============================================================================
# Token Metadata
# ============================================================================


def build_create_collection_mint_instructions(
    payer: Pubkey,
    mint: Pubkey,
    authority: Pubkey,
    rent_lamports: int,
) -> List[Instruction]:
    """Create a 0-decimal mint and mint its single token to `authority`.

    `authority` becomes mint and freeze authority. The mint account must sign.
    """
    token_account = get_associated_token_address(authority, mint)
    return [
        create_account(
            CreateAccountParams(
                from_pubkey=payer,
                to_pubkey=mint,
                lamports=rent_lamports,
                space=MINT_LEN,
                owner=TOKEN_PROGRAM_ID,
            )
        ),
        initialize_mint(
            InitializeMintParams(
                decimals=0,
                program_id=TOKEN_PROGRAM_ID,
                mint=mint,
                mint_authority=authority,
                freeze_authority=authority,
            )
        ),
        create_associated_token_account(payer, authority, mint),
        mint_to(
            MintToParams(
                program_id=TOKEN_PROGRAM_ID,
                mint=mint,
                dest=token_account,
                mint_authority=authority,
                amount=1,
            )
        ),
    ]



def build_create_metadata_account_v3_instruction(
    mint: Pubkey,
    mint_authority: Pubkey,
    payer: Pubkey,
    update_authority: Pubkey,
    metadata: MetadataArgs,
    is_mutable: bool = True,
    collection_size: Optional[int] = 0,
) -> Instruction:
    """Build the Token Metadata create_metadata_account_v3 instruction.

    Accounts:
    0. metadata (writable)
    1. mint
    2. mint_authority (signer)
    3. payer (signer, writable)
    4. update_authority (signer)
    5. system_program
    6. rent

    Data: [33, DataV2, is_mutable (bool), Option<CollectionDetails>]

    A `collection_size` makes the account a sized collection parent.
    """
    metadata_account, _ = get_metadata_pda(mint)

    accounts = [
        AccountMeta(pubkey=metadata_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
    ]

    # CollectionDetails::V1 { size }
    details = encode_option(collection_size, lambda size: encode_u8(0) + encode_u64(size))
    data = (
        encode_u8(CREATE_METADATA_ACCOUNT_V3_DISCRIMINATOR)
        + serialize_data_v2(metadata)
        + encode_bool(is_mutable)
        + details
    )

    return Instruction(program_id=TOKEN_METADATA_PROGRAM_ID, accounts=accounts, data=data)


def build_create_master_edition_v3_instruction(
    mint: Pubkey,
    update_authority: Pubkey,
    mint_authority: Pubkey,
    payer: Pubkey,
    max_supply: Optional[int] = 0,
) -> Instruction:
    """Build the Token Metadata create_master_edition_v3 instruction.

    Accounts:
    0. edition (writable)
    1. mint (writable)
    2. update_authority (signer)
    3. mint_authority (signer)
    4. payer (signer, writable)
    5. metadata (writable)
    6. token_program
    7. system_program
    8. rent

    Data: [17, Option<u64> max_supply]
    """
    metadata_account, _ = get_metadata_pda(mint)
    edition, _ = get_master_edition_pda(mint)

    accounts = [
        AccountMeta(pubkey=edition, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=mint_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=metadata_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
    ]

    data = encode_u8(CREATE_MASTER_EDITION_V3_DISCRIMINATOR) + encode_option(
        max_supply, encode_u64
    )

    return Instruction(program_id=TOKEN_METADATA_PROGRAM_ID, accounts=accounts, data=data)
