"""
Processing module for TrendingHub.

Normalizes raw source items into storable records.
"""

from trendinghub.services.processing.normalizer import (
    NewsNormalizer,
    fingerprint,
    truncate_chars,
    to_valid_text,
    ELLIPSIS,
)

__all__ = [
    "NewsNormalizer",
    "fingerprint",
    "truncate_chars",
    "to_valid_text",
    "ELLIPSIS",
]
