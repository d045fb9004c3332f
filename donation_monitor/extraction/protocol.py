"""
Protocol message decoding for tagged payloads.

A tagged payload is a 4-byte function selector followed by a single
ABI-encoded `string` argument (offset word, length word, UTF-8 bytes padded
to 32). Decoding is delegated to eth_abi; any decoding problem yields None.
"""

from __future__ import annotations

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

TAG_LENGTH = 4


def parse_tag(tag: bytes | str) -> bytes:
    """Normalize a protocol tag ("0x9d96e2df", "9d96e2df" or 4 raw bytes) to bytes."""
    if isinstance(tag, bytes):
        raw = tag
    else:
        clean = tag.strip()
        if clean.lower().startswith("0x"):
            clean = clean[2:]
        try:
            raw = bytes.fromhex(clean)
        except ValueError as e:
            raise ValueError(f"Invalid protocol tag {tag!r}") from e
    if len(raw) != TAG_LENGTH:
        raise ValueError(f"Protocol tag must be {TAG_LENGTH} bytes, got {len(raw)}")
    return raw


def decode_string_argument(body: bytes) -> str | None:
    """Decode `body` as one ABI-encoded string; None when it is not one."""
    if not body:
        return None
    try:
        (text,) = abi_decode(["string"], body)
    except (DecodingError, ValueError, OverflowError):
        return None
    return text
