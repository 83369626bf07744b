"""
Tests for the RLP codec.
"""
import pytest
from hypothesis import given, settings, strategies as st

from setcode_sdk import rlp_codec
from setcode_sdk.exceptions import DecodingError, EncodingError


@pytest.mark.parametrize(
    "item, expected_hex",
    [
        (b"dog", "83646f67"),
        ([b"cat", b"dog"], "c88363617483646f67"),
        (b"", "80"),
        ([], "c0"),
        (0, "80"),
        (15, "0f"),
        (1024, "820400"),
        (b"\x7f", "7f"),
        (b"\x80", "8180"),
        ([[], [[]], [[], [[]]]], "c7c0c1c0c3c0c1c0"),
    ]
)
def test_encode_known_vectors(item, expected_hex):
    """Encodings match the canonical RLP examples"""
    assert rlp_codec.encode(item).hex() == expected_hex


def test_encode_long_string_prefix():
    """Strings of 56 bytes or more switch to the long-form prefix"""
    data = b"a" * 56
    encoded = rlp_codec.encode(data)
    assert encoded[:2] == bytes.fromhex("b838")
    assert encoded[2:] == data


def test_encode_long_list_prefix():
    """Lists with payloads of 56 bytes or more switch to the long-form prefix"""
    encoded = rlp_codec.encode([b"a" * 60])
    # payload: 0xb83c + 60 bytes = 62 bytes
    assert encoded[:2] == bytes.fromhex("f83e")


def test_encode_accepts_tuples_and_bytearrays():
    assert rlp_codec.encode((bytearray(b"cat"), 1024)) == rlp_codec.encode([b"cat", 1024])


@pytest.mark.parametrize("value", [-1, 1.5, "dog", None, True])
def test_encode_rejects_unsupported_items(value):
    with pytest.raises(EncodingError):
        rlp_codec.encode(value)


def test_encode_int_zero_is_empty():
    assert rlp_codec.encode_int(0) == b""
    assert rlp_codec.encode_int(256) == b"\x01\x00"


def test_decode_int_rejects_leading_zero():
    with pytest.raises(DecodingError, match="leading zero"):
        rlp_codec.decode_int(b"\x00\x01")


def test_decode_int_empty_is_zero():
    assert rlp_codec.decode_int(b"") == 0


@pytest.mark.parametrize(
    "raw_hex",
    [
        "",            # empty input
        "83646f",      # truncated string
        "c883636174",  # truncated list
        "8100",        # single byte below 0x80 wrapped in a prefix
        "b80161",      # long form used for a short string
        "83646f6700",  # trailing bytes
    ]
)
def test_decode_rejects_malformed_input(raw_hex):
    with pytest.raises(DecodingError):
        rlp_codec.decode(bytes.fromhex(raw_hex))


def test_decode_rejects_non_bytes():
    with pytest.raises(DecodingError):
        rlp_codec.decode("c0")


def test_decode_nested_lists():
    assert rlp_codec.decode(bytes.fromhex("c7c0c1c0c3c0c1c0")) == [[], [[]], [[], [[]]]]


def test_errors_are_value_errors():
    """Codec errors can be caught as ValueError by callers"""
    with pytest.raises(ValueError):
        rlp_codec.encode(-5)
    with pytest.raises(ValueError):
        rlp_codec.decode(b"\x83do")


rlp_items = st.recursive(
    st.binary(max_size=80),
    lambda children: st.lists(children, max_size=5),
    max_leaves=20,
)


@settings(max_examples=50)
@given(item=rlp_items)
def test_decode_inverts_encode(item):
    """decode(encode(x)) == x for byte-strings and nested lists"""
    assert rlp_codec.decode(rlp_codec.encode(item)) == item


@settings(max_examples=50)
@given(value=st.integers(min_value=0, max_value=2**256 - 1))
def test_integer_encoding_is_minimal(value):
    encoded = rlp_codec.encode_int(value)
    assert encoded[:1] != b"\x00"
    assert rlp_codec.decode_int(encoded) == value
