"""Tests for encoding, amount conversion and size helpers."""

from decimal import Decimal

import pytest
from solders.pubkey import Pubkey

from cnft_cli.program.errors import InvalidAmountError
from cnft_cli.program.utils import (
    decode_pubkey,
    decode_u32,
    decode_u64,
    encode_bool,
    encode_option,
    encode_string,
    encode_u16,
    encode_u32,
    encode_u64,
    encode_u8,
    encode_vec,
    estimate_transaction_size,
    fits_in_one_transaction,
    keccak256,
    native_to_ui,
    to_pubkey,
    ui_to_native,
)


class TestKeccak256:
    def test_empty_input(self):
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_length(self):
        assert len(keccak256(b"cnft")) == 32


class TestEncoding:
    def test_integers_little_endian(self):
        assert encode_u8(7) == b"\x07"
        assert encode_u16(500) == b"\xf4\x01"
        assert encode_u32(1) == b"\x01\x00\x00\x00"
        assert encode_u64(2**64 - 1) == b"\xff" * 8

    @pytest.mark.parametrize(
        "encoder,value",
        [(encode_u8, 256), (encode_u16, 65536), (encode_u32, 2**32), (encode_u64, -1)],
    )
    def test_out_of_range(self, encoder, value):
        with pytest.raises(ValueError):
            encoder(value)

    def test_bool(self):
        assert encode_bool(True) == b"\x01"
        assert encode_bool(False) == b"\x00"

    def test_string_is_length_prefixed(self):
        assert encode_string("abc") == b"\x03\x00\x00\x00abc"
        assert encode_string("") == b"\x00\x00\x00\x00"

    def test_string_counts_utf8_bytes(self):
        assert encode_string("é")[:4] == b"\x02\x00\x00\x00"

    def test_option(self):
        assert encode_option(None, encode_u8) == b"\x00"
        assert encode_option(5, encode_u8) == b"\x01\x05"
        assert encode_option(0, encode_u8) == b"\x01\x00"

    def test_vec(self):
        assert encode_vec([1, 2], encode_u8) == b"\x02\x00\x00\x00\x01\x02"
        assert encode_vec([], encode_u8) == b"\x00\x00\x00\x00"

    def test_decode_round_values(self):
        assert decode_u32(b"\x00\x2a\x00\x00\x00", 1) == 42
        assert decode_u64(encode_u64(123456789)) == 123456789

    def test_decode_pubkey(self):
        key = Pubkey.new_unique()
        assert decode_pubkey(b"\x00" + bytes(key), 1) == key

    def test_decode_pubkey_too_short(self):
        with pytest.raises(ValueError):
            decode_pubkey(bytes(31))

    def test_to_pubkey(self):
        key = Pubkey.new_unique()
        assert to_pubkey(key) is key
        assert to_pubkey(str(key)) == key


class TestAmounts:
    def test_ui_to_native(self):
        assert ui_to_native(1.5, 6) == 1_500_000
        assert ui_to_native("2", 9) == 2_000_000_000
        assert ui_to_native(Decimal("0.000001"), 6) == 1

    def test_ui_to_native_rounds_down(self):
        assert ui_to_native("1.0000009", 6) == 1_000_000

    def test_ui_to_native_zero_decimals(self):
        assert ui_to_native(42, 0) == 42

    def test_negative_amount(self):
        with pytest.raises(InvalidAmountError):
            ui_to_native(-1, 6)

    def test_not_a_number(self):
        with pytest.raises(InvalidAmountError):
            ui_to_native("abc", 6)

    def test_infinite_amount(self):
        with pytest.raises(InvalidAmountError):
            ui_to_native("Infinity", 6)

    def test_native_to_ui(self):
        assert native_to_ui(1_500_000, 6) == Decimal("1.5")
        assert native_to_ui(1, 9) == Decimal("0.000000001")


class TestTransactionSize:
    def test_estimate(self):
        assert estimate_transaction_size(1000, 2) == 1000 + 1 + 128

    def test_fits_at_limit(self):
        assert fits_in_one_transaction(1232 - 1 - 64, 1)

    def test_one_byte_over(self):
        assert not fits_in_one_transaction(1232 - 64, 1)

    def test_custom_limit(self):
        assert not fits_in_one_transaction(100, 1, max_size=150)
        assert fits_in_one_transaction(85, 1, max_size=150)
