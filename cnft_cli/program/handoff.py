"""Completion side of a partially signed transaction.

The receiving party decodes the base64 envelope, inspects which signature
slots are still empty, and fills its own slot before submitting.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import List

from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .errors import InvalidSignerError


@dataclass
class SignatureSlot:
    """One required signer of a transaction and whether its slot is filled."""

    index: int
    pubkey: Pubkey
    signed: bool


def decode_transaction(encoded: str) -> VersionedTransaction:
    """Decode a base64 envelope into a versioned transaction.

    Raises:
        ValueError: If the text is not base64 or not a transaction
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Transaction is not valid base64: {e}") from e
    return VersionedTransaction.from_bytes(raw)


def encode_transaction(transaction: VersionedTransaction) -> str:
    return base64.b64encode(bytes(transaction)).decode("ascii")


def signature_status(transaction: VersionedTransaction) -> List[SignatureSlot]:
    """List the required signers in slot order."""
    message = transaction.message
    required = message.header.num_required_signatures
    keys = list(message.account_keys)[:required]
    signatures = list(transaction.signatures)
    default = Signature.default()
    return [
        SignatureSlot(index=i, pubkey=key, signed=signatures[i] != default)
        for i, key in enumerate(keys)
    ]


def missing_signers(transaction: VersionedTransaction) -> List[Pubkey]:
    return [slot.pubkey for slot in signature_status(transaction) if not slot.signed]


def is_fully_signed(transaction: VersionedTransaction) -> bool:
    return not missing_signers(transaction)


def sign_as(transaction: VersionedTransaction, keypair: Keypair) -> VersionedTransaction:
    """Return a copy of `transaction` with `keypair`'s slot signed.

    Other slots are left untouched. Signing a slot that is already filled
    by the same key replaces it with an identical signature.

    Raises:
        InvalidSignerError: If the key is not a required signer
    """
    pubkey = keypair.pubkey()
    slots = signature_status(transaction)
    index = next((s.index for s in slots if s.pubkey == pubkey), None)
    if index is None:
        raise InvalidSignerError(str(pubkey))

    message = transaction.message
    signatures = list(transaction.signatures)
    signatures[index] = keypair.sign_message(to_bytes_versioned(message))
    return VersionedTransaction.populate(message, signatures)
