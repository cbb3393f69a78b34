"""Tests for the staged transaction assembler."""

import base64

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from cnft_cli.program.assembler import TransactionAssembler
from cnft_cli.program.errors import (
    AssemblyStageError,
    ConfigurationError,
    InvalidSignerError,
)
from cnft_cli.program.instructions import (
    build_mint_to_collection_v1_instruction,
    build_token_payment_instruction,
)
from cnft_cli.program.types import (
    AssemblyStage,
    Collection,
    MetadataArgs,
    MintSpec,
    TokenPayment,
)


def mint_instructions(payer, authority, with_payment=True):
    collection_mint = Pubkey.new_unique()
    spec = MintSpec(
        leaf_owner=payer,
        merkle_tree=Pubkey.new_unique(),
        collection_mint=collection_mint,
        payer=payer,
        collection_authority=authority,
        metadata=MetadataArgs(
            name="Leaf",
            uri="https://example.com/leaf.json",
            seller_fee_basis_points=0,
            collection=Collection(key=collection_mint),
        ),
    )
    instructions = [build_mint_to_collection_v1_instruction(spec)]
    if with_payment:
        payment = TokenPayment(
            payer=payer, payee=Pubkey.new_unique(), amount=5, decimals=0, mint=Pubkey.new_unique()
        )
        instructions.append(
            build_token_payment_instruction(payment, Pubkey.new_unique(), Pubkey.new_unique())
        )
    return instructions


@pytest.fixture
def authority():
    return Keypair()


@pytest.fixture
def payer():
    return Keypair()


class TestAssemblerInit:
    def test_missing_authority(self):
        with pytest.raises(ConfigurationError, match="COLLECTION_AUTH"):
            TransactionAssembler(None)

    def test_starts_empty(self, authority):
        assembler = TransactionAssembler(authority)
        assert assembler.stage is AssemblyStage.EMPTY
        assert assembler.authority == authority.pubkey()
        assert assembler.message is None
        assert assembler.transaction is None


class TestStageOrder:
    def test_full_sequence(self, authority, payer):
        assembler = TransactionAssembler(authority)

        assembler.set_instructions(mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey())
        assert assembler.stage is AssemblyStage.INSTRUCTIONS_SET

        assembler.compile(Hash.new_unique())
        assert assembler.stage is AssemblyStage.COMPILED

        assembler.sign()
        assert assembler.stage is AssemblyStage.PARTIALLY_SIGNED

        raw = assembler.serialize()
        assert assembler.stage is AssemblyStage.SERIALIZED
        assert isinstance(raw, bytes)

    def test_compile_before_instructions(self, authority):
        with pytest.raises(AssemblyStageError) as exc_info:
            TransactionAssembler(authority).compile(Hash.new_unique())
        assert exc_info.value.stage == "empty"

    def test_sign_before_compile(self, authority, payer):
        assembler = TransactionAssembler(authority)
        assembler.set_instructions(mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey())

        with pytest.raises(AssemblyStageError):
            assembler.sign()

    def test_serialize_before_sign(self, authority, payer):
        assembler = TransactionAssembler(authority)
        assembler.set_instructions(mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey())
        assembler.compile(Hash.new_unique())

        with pytest.raises(AssemblyStageError):
            assembler.serialize()

    def test_instructions_set_once(self, authority, payer):
        assembler = TransactionAssembler(authority)
        instructions = mint_instructions(payer.pubkey(), authority.pubkey())
        assembler.set_instructions(instructions, payer.pubkey())

        with pytest.raises(AssemblyStageError):
            assembler.set_instructions(instructions, payer.pubkey())

    def test_no_instructions(self, authority, payer):
        with pytest.raises(ValueError):
            TransactionAssembler(authority).set_instructions([], payer.pubkey())

    def test_compile_without_blockhash(self, authority, payer):
        assembler = TransactionAssembler(authority)
        assembler.set_instructions(mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey())

        with pytest.raises(AssemblyStageError, match="blockhash"):
            assembler.compile(None)
        assert assembler.stage is AssemblyStage.INSTRUCTIONS_SET

    def test_serialize_is_idempotent(self, authority, payer):
        assembler = TransactionAssembler(authority)
        assembler.set_instructions(mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey())
        assembler.compile(Hash.new_unique())
        assembler.sign()

        assert assembler.serialize() == assembler.serialize()


class TestPartialSignature:
    def test_only_authority_slot_filled(self, authority, payer):
        blockhash = Hash.new_unique()
        encoded = TransactionAssembler(authority).assemble(
            mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey(), [], blockhash
        )

        transaction = VersionedTransaction.from_bytes(base64.b64decode(encoded))
        message = transaction.message
        signers = list(message.account_keys)[: message.header.num_required_signatures]
        signatures = list(transaction.signatures)

        assert message.recent_blockhash == blockhash
        assert signers[0] == payer.pubkey()
        assert set(signers) == {payer.pubkey(), authority.pubkey()}
        assert signatures[0] == Signature.default()

        authority_signature = signatures[signers.index(authority.pubkey())]
        assert authority_signature != Signature.default()
        assert authority_signature.verify(authority.pubkey(), to_bytes_versioned(message))

    def test_payer_signature_count(self, authority, payer):
        encoded = TransactionAssembler(authority).assemble(
            mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey(), [], Hash.new_unique()
        )
        transaction = VersionedTransaction.from_bytes(base64.b64decode(encoded))

        empty = [s for s in transaction.signatures if s == Signature.default()]
        assert len(empty) == 1

    def test_fee_payer_is_authority(self, authority):
        encoded = TransactionAssembler(authority).assemble(
            mint_instructions(authority.pubkey(), authority.pubkey(), with_payment=False),
            authority.pubkey(),
            [],
            Hash.new_unique(),
        )
        transaction = VersionedTransaction.from_bytes(base64.b64decode(encoded))

        assert transaction.message.header.num_required_signatures == 1
        assert transaction.signatures[0] != Signature.default()
        assert transaction.signatures[0].verify(
            authority.pubkey(), to_bytes_versioned(transaction.message)
        )

    def test_authority_not_a_signer(self, authority, payer):
        payment = TokenPayment(
            payer=payer.pubkey(), payee=Pubkey.new_unique(), amount=1, decimals=0, mint=Pubkey.new_unique()
        )
        ix = build_token_payment_instruction(payment, Pubkey.new_unique(), Pubkey.new_unique())
        assembler = TransactionAssembler(authority)
        assembler.set_instructions([ix], payer.pubkey())
        assembler.compile(Hash.new_unique())

        with pytest.raises(InvalidSignerError):
            assembler.sign()

    def test_base64_round_trip(self, authority, payer):
        assembler = TransactionAssembler(authority)
        encoded = assembler.assemble(
            mint_instructions(payer.pubkey(), authority.pubkey()), payer.pubkey(), [], Hash.new_unique()
        )
        assert base64.b64decode(encoded) == assembler.serialize()
