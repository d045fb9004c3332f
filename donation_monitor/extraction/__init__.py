# Message extraction: protocol-tagged ABI strings, then a plain-text heuristic.

from donation_monitor.extraction.extractor import (
    DEFAULT_PROTOCOL_TAGS,
    ExtractedMessage,
    MessageExtractor,
    SourceKind,
    extract_message,
)

__all__ = [
    "DEFAULT_PROTOCOL_TAGS",
    "ExtractedMessage",
    "MessageExtractor",
    "SourceKind",
    "extract_message",
]
