"""Utility functions for the Cash Link program module."""

import struct
from typing import Union

import base58
from solders.pubkey import Pubkey


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


def decode_u8(data: bytes, offset: int = 0) -> int:
    """Decode an unsigned 8-bit integer."""
    return struct.unpack_from("<B", data, offset)[0]


def decode_u16(data: bytes, offset: int = 0) -> int:
    """Decode an unsigned 16-bit integer (little-endian)."""
    return struct.unpack_from("<H", data, offset)[0]


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


def pubkey_to_bytes(pubkey: Union[Pubkey, str, bytes]) -> bytes:
    """Convert a Pubkey, base-58 string or raw bytes to 32 bytes."""
    if isinstance(pubkey, bytes):
        if len(pubkey) != 32:
            raise ValueError(f"Invalid pubkey length: {len(pubkey)} (expected 32)")
        return pubkey
    if isinstance(pubkey, str):
        return bytes(Pubkey.from_string(pubkey))
    return bytes(pubkey)


def to_pubkey(value: Union[Pubkey, str]) -> Pubkey:
    """Coerce a base-58 string to a Pubkey."""
    if isinstance(value, Pubkey):
        return value
    return Pubkey.from_string(value)


def b58encode_bytes(data: bytes) -> str:
    """Base-58 encode raw bytes, as used by RPC memcmp filters."""
    return base58.b58encode(data).decode("utf-8")


def decode_fingerprint(fingerprint: str) -> bytes:
    """Decode a base-58 fingerprint into the raw bytes used as a PDA seed.

    Raises:
        ValueError: If the fingerprint is not valid base-58
    """
    try:
        return base58.b58decode(fingerprint)
    except ValueError as e:
        raise ValueError(f"Invalid fingerprint {fingerprint!r}: {e}") from e
