"""
Utility helper functions
"""
import hashlib
import json
import math
from datetime import datetime
from typing import Any


def compute_digest(data: bytes) -> str:
    """Return a stable content identity for raw bytes."""
    return hashlib.sha256(data).hexdigest()


def stable_hash(payload: Any) -> str:
    """
    Hash a JSON-serializable payload deterministically.

    Args:
        payload: Any JSON-serializable structure

    Returns:
        Hex digest that only depends on the payload's content
    """
    text = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def guess_media_type(data: bytes) -> str:
    """Sniff an image media type from its magic bytes (PNG when unknown)."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (10.5 -> 11)."""
    return int(math.floor(value + 0.5))


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def timestamp_now() -> str:
    """Get current timestamp as ISO format string."""
    return datetime.now().isoformat()
