"""Utilities package"""
from .helpers import (
    compute_digest,
    stable_hash,
    guess_media_type,
    round_half_up,
    truncate_text,
    timestamp_now,
)

__all__ = [
    "compute_digest",
    "stable_hash",
    "guess_media_type",
    "round_half_up",
    "truncate_text",
    "timestamp_now",
]
