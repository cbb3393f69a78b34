"""Utility functions for the cnft-cli program module."""

import struct
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Callable, List, Optional, TypeVar, Union

from Crypto.Hash import keccak
from solders.pubkey import Pubkey

from .constants import PACKET_DATA_SIZE, SIGNATURE_LENGTH
from .errors import InvalidAmountError

T = TypeVar("T")


def keccak256(data: bytes) -> bytes:
    """Compute keccak256 hash of data."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# ============================================================================
# Borsh encoding
# ============================================================================


def encode_u8(value: int) -> bytes:
    """Encode an unsigned 8-bit integer.

    Raises:
        ValueError: If value is out of range [0, 255]
    """
    if not 0 <= value <= 255:
        raise ValueError(f"u8 value out of range: {value} (must be 0-255)")
    return struct.pack("<B", value)


def encode_u16(value: int) -> bytes:
    """Encode an unsigned 16-bit integer (little-endian).

    Raises:
        ValueError: If value is out of range [0, 65535]
    """
    if not 0 <= value <= 65535:
        raise ValueError(f"u16 value out of range: {value} (must be 0-65535)")
    return struct.pack("<H", value)


def encode_u32(value: int) -> bytes:
    """Encode an unsigned 32-bit integer (little-endian).

    Raises:
        ValueError: If value is out of range [0, 4294967295]
    """
    if not 0 <= value <= 4294967295:
        raise ValueError(f"u32 value out of range: {value} (must be 0-4294967295)")
    return struct.pack("<I", value)


def encode_u64(value: int) -> bytes:
    """Encode an unsigned 64-bit integer (little-endian).

    Raises:
        ValueError: If value is out of range [0, 2^64-1]
    """
    if not 0 <= value <= 18446744073709551615:
        raise ValueError(f"u64 value out of range: {value} (must be 0-18446744073709551615)")
    return struct.pack("<Q", value)


def encode_bool(value: bool) -> bytes:
    """Encode a boolean as a single byte."""
    return b"\x01" if value else b"\x00"


def encode_string(s: str) -> bytes:
    """Encode a string with a u32 length prefix (Borsh).

    Format: [length (4 bytes LE)][utf-8 bytes]
    """
    encoded = s.encode("utf-8")
    return encode_u32(len(encoded)) + encoded


def encode_option(value: Optional[T], encoder: Callable[[T], bytes]) -> bytes:
    """Encode a Borsh Option: 0 for None, 1 followed by the encoded value."""
    if value is None:
        return b"\x00"
    return b"\x01" + encoder(value)


def encode_vec(values: List[T], encoder: Callable[[T], bytes]) -> bytes:
    """Encode a Borsh Vec with a u32 element count prefix."""
    return encode_u32(len(values)) + b"".join(encoder(v) for v in values)


def decode_u8(data: bytes, offset: int = 0) -> int:
    """Decode an unsigned 8-bit integer."""
    return struct.unpack_from("<B", data, offset)[0]


def decode_u32(data: bytes, offset: int = 0) -> int:
    """Decode an unsigned 32-bit integer (little-endian)."""
    return struct.unpack_from("<I", data, offset)[0]


def decode_u64(data: bytes, offset: int = 0) -> int:
    """Decode an unsigned 64-bit integer (little-endian)."""
    return struct.unpack_from("<Q", data, offset)[0]


def decode_pubkey(data: bytes, offset: int = 0) -> Pubkey:
    """Decode a Pubkey from 32 bytes.

    Raises:
        ValueError: If not enough bytes available for Pubkey
    """
    if offset + 32 > len(data):
        raise ValueError(
            f"Not enough bytes for Pubkey at offset {offset}: "
            f"need 32 bytes, have {len(data) - offset}"
        )
    return Pubkey.from_bytes(data[offset : offset + 32])


def to_pubkey(value: Union[Pubkey, str]) -> Pubkey:
    """Accept either a Pubkey or its base58 string."""
    if isinstance(value, Pubkey):
        return value
    return Pubkey.from_string(value)


# ============================================================================
# Amounts
# ============================================================================


def ui_to_native(amount: Union[int, float, str, Decimal], decimals: int) -> int:
    """Convert a UI token amount to native units, rounding down.

    ui_to_native(1.5, 6) == 1500000

    Raises:
        InvalidAmountError: If the amount is not a finite non-negative number
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidAmountError(f"{amount!r} is not a number")
    if not value.is_finite() or value < 0:
        raise InvalidAmountError(f"{amount!r} must be a finite non-negative number")
    scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_FLOOR)
    return int(scaled)


def native_to_ui(amount: int, decimals: int) -> Decimal:
    """Convert a native token amount to its UI value."""
    return Decimal(amount).scaleb(-decimals)


# ============================================================================
# Transaction size
# ============================================================================


def estimate_transaction_size(serialized_length: int, num_signatures: int) -> int:
    """Estimate the wire size of a transaction from its serialized message.

    size = message bytes + 1 (signature count) + 64 * signatures
    """
    return serialized_length + 1 + num_signatures * SIGNATURE_LENGTH


def fits_in_one_transaction(
    serialized_length: int,
    num_signatures: int,
    max_size: int = PACKET_DATA_SIZE,
) -> bool:
    """Check whether a message of the given size fits in a single transaction."""
    return estimate_transaction_size(serialized_length, num_signatures) <= max_size
