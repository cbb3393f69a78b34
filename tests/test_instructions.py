"""Tests for instruction builders."""

import struct

import pytest
from solders.address_lookup_table_account import derive_lookup_table_address
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from cnft_cli.program.constants import (
    ADDRESS_LOOKUP_TABLE_PROGRAM_ID,
    BUBBLEGUM_PROGRAM_ID,
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
    anchor_discriminator,
)
from cnft_cli.program.instructions import (
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
from cnft_cli.program.metadata import (
    serialize_data_v2,
    serialize_metadata_args,
    serialize_update_args,
)
from cnft_cli.program.pda import (
    get_bubblegum_signer_pda,
    get_master_edition_pda,
    get_metadata_pda,
    get_tree_config_pda,
)
from cnft_cli.program.types import (
    Collection,
    Creator,
    MetadataArgs,
    MintSpec,
    TokenPayment,
    UpdateArgs,
)


def make_mint_spec(**overrides):
    collection_mint = overrides.pop("collection_mint", Pubkey.new_unique())
    fields = dict(
        leaf_owner=Pubkey.new_unique(),
        merkle_tree=Pubkey.new_unique(),
        collection_mint=collection_mint,
        payer=Pubkey.new_unique(),
        collection_authority=Pubkey.new_unique(),
        metadata=MetadataArgs(
            name="Leaf",
            uri="https://example.com/leaf.json",
            seller_fee_basis_points=500,
            collection=Collection(key=collection_mint),
        ),
    )
    fields.update(overrides)
    return MintSpec(**fields)


class TestDiscriminators:
    def test_anchor_discriminators(self):
        assert len(MINT_TO_COLLECTION_V1_DISCRIMINATOR) == 8
        assert MINT_TO_COLLECTION_V1_DISCRIMINATOR == anchor_discriminator("mint_to_collection_v1")
        assert CREATE_TREE_DISCRIMINATOR != UPDATE_METADATA_DISCRIMINATOR


class TestMintToCollectionV1:
    def test_account_layout(self):
        spec = make_mint_spec()

        ix = build_mint_to_collection_v1_instruction(spec)

        assert ix.program_id == BUBBLEGUM_PROGRAM_ID
        assert len(ix.accounts) == 16
        keys = [meta.pubkey for meta in ix.accounts]
        assert keys[0] == get_tree_config_pda(spec.merkle_tree)[0]
        assert keys[1] == spec.leaf_owner
        assert keys[3] == spec.merkle_tree
        assert keys[4] == spec.payer
        assert keys[6] == spec.collection_authority
        assert keys[7] == BUBBLEGUM_PROGRAM_ID
        assert keys[8] == spec.collection_mint
        assert keys[9] == get_metadata_pda(spec.collection_mint)[0]
        assert keys[10] == get_master_edition_pda(spec.collection_mint)[0]
        assert keys[11] == get_bubblegum_signer_pda()[0]
        assert keys[12:] == [
            SPL_NOOP_PROGRAM_ID,
            SPL_ACCOUNT_COMPRESSION_PROGRAM_ID,
            TOKEN_METADATA_PROGRAM_ID,
            SYSTEM_PROGRAM_ID,
        ]

    def test_signers(self):
        spec = make_mint_spec()
        ix = build_mint_to_collection_v1_instruction(spec)

        signers = {meta.pubkey for meta in ix.accounts if meta.is_signer}
        assert signers == {spec.payer, spec.collection_authority}
        assert ix.accounts[4].is_writable

    def test_defaults_delegates(self):
        spec = make_mint_spec()
        ix = build_mint_to_collection_v1_instruction(spec)

        assert ix.accounts[2].pubkey == spec.leaf_owner
        assert ix.accounts[5].pubkey == spec.collection_authority

    def test_explicit_delegates(self):
        delegate, tree_delegate = Pubkey.new_unique(), Pubkey.new_unique()
        spec = make_mint_spec(leaf_delegate=delegate, tree_creator_or_delegate=tree_delegate)
        ix = build_mint_to_collection_v1_instruction(spec)

        assert ix.accounts[2].pubkey == delegate
        assert ix.accounts[5].pubkey == tree_delegate
        assert ix.accounts[5].is_signer

    def test_data(self):
        spec = make_mint_spec()
        ix = build_mint_to_collection_v1_instruction(spec)

        assert bytes(ix.data[:8]) == MINT_TO_COLLECTION_V1_DISCRIMINATOR
        assert bytes(ix.data[8:]) == serialize_metadata_args(spec.metadata)

    def test_custom_program_id(self):
        program_id = Pubkey.new_unique()
        spec = make_mint_spec()
        ix = build_mint_to_collection_v1_instruction(spec, program_id)

        assert ix.program_id == program_id
        assert ix.accounts[0].pubkey == get_tree_config_pda(spec.merkle_tree, program_id)[0]


class TestUpdateMetadata:
    def build(self, proof=(), collection_mint=None, root=bytes(32)):
        self.authority = Pubkey.new_unique()
        self.tree = Pubkey.new_unique()
        self.owner = Pubkey.new_unique()
        self.current = MetadataArgs(name="Old", uri="https://old", seller_fee_basis_points=0)
        self.update = UpdateArgs(name="New")
        return build_update_metadata_instruction(
            authority=self.authority,
            payer=self.authority,
            merkle_tree=self.tree,
            leaf_owner=self.owner,
            leaf_delegate=self.owner,
            root=root,
            nonce=9,
            index=9,
            current_metadata=self.current,
            update_args=self.update,
            proof=list(proof),
            collection_mint=collection_mint,
        )

    def test_accounts_with_proof(self):
        proof = [Pubkey.new_unique() for _ in range(4)]
        ix = self.build(proof=proof)

        assert len(ix.accounts) == 13 + 4
        assert [meta.pubkey for meta in ix.accounts[13:]] == proof
        assert ix.accounts[1].pubkey == self.authority
        assert ix.accounts[1].is_signer
        assert ix.accounts[8].pubkey == self.tree
        assert ix.accounts[8].is_writable

    def test_without_collection(self):
        ix = self.build()
        assert ix.accounts[2].pubkey == BUBBLEGUM_PROGRAM_ID
        assert ix.accounts[3].pubkey == BUBBLEGUM_PROGRAM_ID

    def test_with_collection(self):
        collection = Pubkey.new_unique()
        ix = self.build(collection_mint=collection)
        assert ix.accounts[2].pubkey == collection
        assert ix.accounts[3].pubkey == get_metadata_pda(collection)[0]

    def test_data_layout(self):
        root = bytes(range(32))
        ix = self.build(root=root)
        data = bytes(ix.data)

        assert data[:8] == UPDATE_METADATA_DISCRIMINATOR
        assert data[8:40] == root
        assert struct.unpack_from("<Q", data, 40)[0] == 9
        assert struct.unpack_from("<I", data, 48)[0] == 9
        current = serialize_metadata_args(self.current)
        assert data[52 : 52 + len(current)] == current
        assert data[52 + len(current) :] == serialize_update_args(self.update)

    def test_invalid_root(self):
        with pytest.raises(ValueError, match="root"):
            self.build(root=bytes(31))


class TestTokenPayment:
    def test_transfer_checked(self):
        payment = TokenPayment(
            payer=Pubkey.new_unique(),
            payee=Pubkey.new_unique(),
            amount=1_500_000,
            decimals=6,
            mint=Pubkey.new_unique(),
        )
        source, destination = Pubkey.new_unique(), Pubkey.new_unique()

        ix = build_token_payment_instruction(payment, source, destination)

        assert ix.program_id == TOKEN_PROGRAM_ID
        assert [meta.pubkey for meta in ix.accounts] == [
            source,
            payment.mint,
            destination,
            payment.payer,
        ]
        assert ix.accounts[3].is_signer
        data = bytes(ix.data)
        assert data[0] == 12
        assert struct.unpack_from("<Q", data, 1)[0] == 1_500_000
        assert data[9] == 6


class TestMerkleTree:
    def test_tree_size(self):
        assert get_merkle_tree_size(14, 64) == 31800

    def test_tree_size_with_canopy(self):
        assert get_merkle_tree_size(14, 64, 3) == 31800 + 14 * 32

    def test_allocate(self):
        payer, tree = Pubkey.new_unique(), Pubkey.new_unique()
        ix = build_allocate_tree_instruction(payer, tree, lamports=1000, space=31800)

        assert ix.program_id == SYSTEM_PROGRAM_ID
        assert ix.accounts[0].pubkey == payer
        assert ix.accounts[1].pubkey == tree
        assert ix.accounts[1].is_signer
        assert bytes(SPL_ACCOUNT_COMPRESSION_PROGRAM_ID) in bytes(ix.data)

    def test_create_tree(self):
        payer, tree = Pubkey.new_unique(), Pubkey.new_unique()
        ix = build_create_tree_instruction(payer, payer, tree, 14, 64)

        assert ix.program_id == BUBBLEGUM_PROGRAM_ID
        assert ix.accounts[0].pubkey == get_tree_config_pda(tree)[0]
        assert ix.accounts[1].pubkey == tree
        assert bytes(ix.data) == (
            CREATE_TREE_DISCRIMINATOR + struct.pack("<II", 14, 64) + b"\x00"
        )

    def test_create_public_tree(self):
        payer, tree = Pubkey.new_unique(), Pubkey.new_unique()
        ix = build_create_tree_instruction(payer, payer, tree, 5, 8, public=True)
        assert bytes(ix.data).endswith(b"\x01\x01")


class TestLookupTables:
    def test_create_returns_derived_address(self):
        authority = Pubkey.new_unique()

        ix, address = build_create_lookup_table_instruction(authority, authority, 4242)

        assert ix.program_id == ADDRESS_LOOKUP_TABLE_PROGRAM_ID
        assert address == derive_lookup_table_address(authority, 4242)[0]
        assert ix.accounts[0].pubkey == address

    def test_extend(self):
        authority, table = Pubkey.new_unique(), Pubkey.new_unique()
        addresses = [Pubkey.new_unique() for _ in range(3)]

        ix = build_extend_lookup_table_instruction(table, authority, addresses)

        assert ix.program_id == ADDRESS_LOOKUP_TABLE_PROGRAM_ID
        assert ix.accounts[0].pubkey == table
        data = bytes(ix.data)
        for address in addresses:
            assert bytes(address) in data


class TestCollectionInstructions:
    def test_collection_mint_instructions(self):
        payer, mint, authority = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()

        create, initialize, create_ata, mint_one = build_create_collection_mint_instructions(
            payer, mint, authority, 1_461_600
        )

        assert create.program_id == SYSTEM_PROGRAM_ID
        assert [a.pubkey for a in create.accounts] == [payer, mint]
        assert initialize.program_id == TOKEN_PROGRAM_ID
        assert initialize.accounts[0].pubkey == mint
        assert create_ata.accounts[1].pubkey == get_associated_token_address(authority, mint)
        assert mint_one.program_id == TOKEN_PROGRAM_ID
        assert mint_one.accounts[1].pubkey == get_associated_token_address(authority, mint)
        assert mint_one.accounts[2].pubkey == authority
        assert bytes(mint_one.data)[1:9] == struct.pack("<Q", 1)

    def test_create_metadata_account_v3(self):
        mint, authority = Pubkey.new_unique(), Pubkey.new_unique()
        metadata = MetadataArgs(
            name="Apes",
            symbol="APE",
            uri="https://x.io/c.json",
            seller_fee_basis_points=500,
            creators=[Creator(address=authority, verified=True, share=100)],
        )

        ix = build_create_metadata_account_v3_instruction(
            mint, authority, authority, authority, metadata
        )

        assert ix.program_id == TOKEN_METADATA_PROGRAM_ID
        assert len(ix.accounts) == 7
        assert ix.accounts[0].pubkey == get_metadata_pda(mint)[0]
        assert ix.accounts[0].is_writable
        assert ix.accounts[1].pubkey == mint
        assert ix.accounts[3].is_signer and ix.accounts[3].is_writable
        assert ix.accounts[5].pubkey == SYSTEM_PROGRAM_ID

        data = bytes(ix.data)
        assert data[0] == CREATE_METADATA_ACCOUNT_V3_DISCRIMINATOR
        body = serialize_data_v2(metadata)
        assert data[1 : 1 + len(body)] == body
        # is_mutable, then Some(CollectionDetails::V1 { size: 0 })
        assert data[1 + len(body) :] == b"\x01" + b"\x01" + b"\x00" + struct.pack("<Q", 0)

    def test_create_metadata_account_v3_without_collection_details(self):
        mint, authority = Pubkey.new_unique(), Pubkey.new_unique()
        metadata = MetadataArgs(name="A", uri="u", seller_fee_basis_points=0)

        ix = build_create_metadata_account_v3_instruction(
            mint,
            authority,
            authority,
            authority,
            metadata,
            is_mutable=False,
            collection_size=None,
        )

        assert bytes(ix.data).endswith(b"\x00\x00")

    def test_create_master_edition_v3(self):
        mint, authority = Pubkey.new_unique(), Pubkey.new_unique()

        ix = build_create_master_edition_v3_instruction(mint, authority, authority, authority)

        assert ix.program_id == TOKEN_METADATA_PROGRAM_ID
        assert [a.pubkey for a in ix.accounts[:6]] == [
            get_master_edition_pda(mint)[0],
            mint,
            authority,
            authority,
            authority,
            get_metadata_pda(mint)[0],
        ]
        assert ix.accounts[6].pubkey == TOKEN_PROGRAM_ID
        assert ix.accounts[1].is_writable
        # Some(0): a one-of-one
        assert bytes(ix.data) == bytes([CREATE_MASTER_EDITION_V3_DISCRIMINATOR, 1]) + bytes(8)
