"""Tests for completing a partially signed transaction."""

import base64

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature

from cnft_cli.program.assembler import TransactionAssembler
from cnft_cli.program.errors import InvalidSignerError
from cnft_cli.program.handoff import (
    decode_transaction,
    encode_transaction,
    is_fully_signed,
    missing_signers,
    sign_as,
    signature_status,
)
from cnft_cli.program.instructions import (
    build_mint_to_collection_v1_instruction,
    build_token_payment_instruction,
)
from cnft_cli.program.types import Collection, MetadataArgs, MintSpec, TokenPayment


def partially_signed(authority, payer):
    """Assemble a paid mint signed only by `authority`, base64 encoded."""
    collection_mint = Pubkey.new_unique()
    spec = MintSpec(
        leaf_owner=payer.pubkey(),
        merkle_tree=Pubkey.new_unique(),
        collection_mint=collection_mint,
        payer=payer.pubkey(),
        collection_authority=authority.pubkey(),
        metadata=MetadataArgs(
            name="Leaf",
            uri="https://example.com/leaf.json",
            seller_fee_basis_points=0,
            collection=Collection(key=collection_mint),
        ),
    )
    payment = TokenPayment(
        payer=payer.pubkey(),
        payee=Pubkey.new_unique(),
        amount=10,
        decimals=0,
        mint=Pubkey.new_unique(),
    )
    instructions = [
        build_mint_to_collection_v1_instruction(spec),
        build_token_payment_instruction(payment, Pubkey.new_unique(), Pubkey.new_unique()),
    ]
    return TransactionAssembler(authority).assemble(
        instructions, payer.pubkey(), [], Hash.new_unique()
    )


@pytest.fixture
def keys():
    return Keypair(), Keypair()


class TestDecode:
    def test_decode_round_trip(self, keys):
        authority, payer = keys
        encoded = partially_signed(authority, payer)

        transaction = decode_transaction(encoded)

        assert encode_transaction(transaction) == encoded

    def test_invalid_base64(self):
        with pytest.raises(ValueError, match="base64"):
            decode_transaction("not base64!!")


class TestSignatureStatus:
    def test_payer_slot_missing(self, keys):
        authority, payer = keys
        transaction = decode_transaction(partially_signed(authority, payer))

        slots = signature_status(transaction)

        assert [slot.index for slot in slots] == [0, 1]
        assert slots[0].pubkey == payer.pubkey()
        assert not slots[0].signed
        assert slots[1].pubkey == authority.pubkey()
        assert slots[1].signed
        assert missing_signers(transaction) == [payer.pubkey()]
        assert not is_fully_signed(transaction)


class TestSignAs:
    def test_payer_completes_transaction(self, keys):
        authority, payer = keys
        transaction = decode_transaction(partially_signed(authority, payer))
        authority_signature = transaction.signatures[1]

        signed = sign_as(transaction, payer)

        assert is_fully_signed(signed)
        assert signed.signatures[1] == authority_signature
        message_bytes = to_bytes_versioned(signed.message)
        assert signed.signatures[0].verify(payer.pubkey(), message_bytes)
        assert signed.signatures[1].verify(authority.pubkey(), message_bytes)

    def test_original_is_untouched(self, keys):
        authority, payer = keys
        transaction = decode_transaction(partially_signed(authority, payer))

        sign_as(transaction, payer)

        assert transaction.signatures[0] == Signature.default()

    def test_stranger_cannot_sign(self, keys):
        authority, payer = keys
        transaction = decode_transaction(partially_signed(authority, payer))

        with pytest.raises(InvalidSignerError):
            sign_as(transaction, Keypair())

    def test_signed_transaction_serializes(self, keys):
        authority, payer = keys
        transaction = sign_as(decode_transaction(partially_signed(authority, payer)), payer)

        raw = base64.b64decode(encode_transaction(transaction))

        assert decode_transaction(base64.b64encode(raw).decode()).signatures == transaction.signatures
