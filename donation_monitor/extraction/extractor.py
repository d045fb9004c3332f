"""
Donation message extraction: raw payload bytes to optional message text.

Priority order:
1. Payloads shorter than MIN_PAYLOAD_BYTES carry no message.
2. Payloads starting with a recognized protocol tag are decoded as an
   ABI-encoded string. If that fails, the bytes after the tag are read as
   text, but only accepted when they are printable ASCII / whitespace.
3. Untagged payloads are read as UTF-8 text (no printable restriction).

Never raises: a missing or unreadable message is a normal outcome.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from donation_monitor.extraction.protocol import TAG_LENGTH, decode_string_argument, parse_tag

MIN_PAYLOAD_BYTES = 5
MAX_MESSAGE_CHARS = 1000

# Example selectors for sendMessage(string) / message(string); override via PROTOCOL_TAGS
DEFAULT_PROTOCOL_TAGS: frozenset[bytes] = frozenset(
    {
        bytes.fromhex("9d96e2df"),
        bytes.fromhex("8be0079c"),
    }
)

_PRINTABLE_RE = re.compile(r"^[\x20-\x7E\s]*$")


class SourceKind(str, Enum):
    """Where an extracted message came from."""

    PROTOCOL = "protocol"
    HEURISTIC = "heuristic"


@dataclass(frozen=True)
class ExtractedMessage:
    text: str
    source_kind: SourceKind


def normalize_text(text: str) -> str:
    """Strip NUL characters and surrounding whitespace."""
    return text.replace("\x00", "").strip()


def _acceptable(text: str) -> bool:
    return 0 < len(text) < MAX_MESSAGE_CHARS


def _coerce_payload(payload: bytes | bytearray | str | None) -> bytes | None:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    clean = payload[2:] if payload.startswith(("0x", "0X")) else payload
    try:
        return bytes.fromhex(clean)
    except ValueError:
        return None


def _read_text(data: bytes, *, printable_only: bool) -> str | None:
    text = normalize_text(data.decode("utf-8", errors="replace"))
    if not _acceptable(text):
        return None
    if printable_only and not _PRINTABLE_RE.match(text):
        return None
    return text


class MessageExtractor:
    """
    Extracts an optional message from transaction payloads.

    protocol_tags: 4-byte selectors (bytes or hex strings) that mark a payload
    as carrying an ABI-encoded string. Defaults to DEFAULT_PROTOCOL_TAGS.
    """

    def __init__(self, protocol_tags: Iterable[bytes | str] | None = None) -> None:
        if protocol_tags is None:
            self._tags = DEFAULT_PROTOCOL_TAGS
        else:
            self._tags = frozenset(parse_tag(t) for t in protocol_tags)

    @property
    def protocol_tags(self) -> frozenset[bytes]:
        return self._tags

    def extract(self, payload: bytes | bytearray | str | None) -> ExtractedMessage | None:
        """Return the message carried by `payload`, or None."""
        data = _coerce_payload(payload)
        if data is None or len(data) < MIN_PAYLOAD_BYTES:
            return None

        tag, body = data[:TAG_LENGTH], data[TAG_LENGTH:]
        if tag in self._tags:
            decoded = decode_string_argument(body)
            if decoded is not None:
                text = normalize_text(decoded)
                if _acceptable(text):
                    return ExtractedMessage(text, SourceKind.PROTOCOL)
            fallback = _read_text(body, printable_only=True)
            if fallback is not None:
                return ExtractedMessage(fallback, SourceKind.HEURISTIC)
            return None

        text = _read_text(data, printable_only=False)
        if text is not None:
            return ExtractedMessage(text, SourceKind.HEURISTIC)
        return None


_default_extractor = MessageExtractor()


def extract_message(payload: bytes | bytearray | str | None) -> ExtractedMessage | None:
    """Extract with the default protocol tags."""
    return _default_extractor.extract(payload)
