"""
Recursive-length-prefix codec.

Thin layer over ``pyrlp`` that accepts the item shapes used by this SDK
(bytes, non-negative ints and nested sequences of those) and translates
library failures into :class:`EncodingError` / :class:`DecodingError`.
"""
from typing import List, Sequence, Union

import rlp
from rlp.exceptions import RLPException
from eth_utils import big_endian_to_int, int_to_big_endian

from .exceptions import DecodingError, EncodingError

RLPItem = Union[bytes, int, Sequence["RLPItem"]]
DecodedItem = Union[bytes, List["DecodedItem"]]


def encode_int(value: int) -> bytes:
    """
    Convert an integer to its minimal big-endian form.

    Zero becomes the empty byte-string.

    Raises:
        EncodingError: If the value is not a non-negative integer
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"Expected an integer, got {type(value).__name__}")
    if value < 0:
        raise EncodingError(f"Cannot encode negative integer {value}")
    if value == 0:
        return b""
    return int_to_big_endian(value)


def decode_int(data: bytes) -> int:
    """
    Convert a minimal big-endian byte-string back to an integer.

    Raises:
        DecodingError: If the input has leading zero bytes
    """
    if not isinstance(data, (bytes, bytearray)):
        raise DecodingError(f"Expected bytes for an integer field, got a {type(data).__name__}")
    if data[:1] == b"\x00":
        raise DecodingError("Integer encoding has leading zero bytes")
    return big_endian_to_int(bytes(data))


def _normalize(item: RLPItem):
    if isinstance(item, (bytes, bytearray)):
        return bytes(item)
    if isinstance(item, int) and not isinstance(item, bool):
        return encode_int(item)
    if isinstance(item, (list, tuple)):
        return [_normalize(child) for child in item]
    raise EncodingError(f"Cannot RLP encode object of type {type(item).__name__}")


def encode(item: RLPItem) -> bytes:
    """
    RLP-encode a byte-string, integer or nested sequence of those.

    Args:
        item: bytes, non-negative int, or a list/tuple of items

    Returns:
        Canonical RLP encoding

    Raises:
        EncodingError: On negative integers or unsupported item types
    """
    normalized = _normalize(item)
    try:
        return rlp.encode(normalized)
    except RLPException as e:
        raise EncodingError(f"RLP encoding failed: {e}") from e


def decode(data: bytes) -> DecodedItem:
    """
    Strictly decode an RLP byte-string.

    Non-canonical length prefixes, truncated input and trailing bytes are
    all rejected.

    Raises:
        DecodingError: If the input is malformed
    """
    if not isinstance(data, (bytes, bytearray)):
        raise DecodingError(f"Can only decode bytes, got {type(data).__name__}")
    if not data:
        raise DecodingError("Cannot decode empty input")
    try:
        return rlp.decode(bytes(data), strict=True)
    except RLPException as e:
        raise DecodingError(f"RLP decoding failed: {e}") from e
