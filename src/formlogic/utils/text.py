"""
Text utilities for formlogic.

This module provides:
- Stable hashing for rule-set fingerprints and generated ids
- Slug generation for ids derived from labels
"""

import hashlib
import re
from typing import List


def stable_hash(parts: List[str], length: int = 16) -> str:
    """
    Generate a stable hash from a list of string parts.

    The same inputs always produce the same hash, so a rule set serialized
    the same way always gets the same version fingerprint.

    Args:
        parts: List of strings to hash together.
        length: Number of hex characters to return (max 64 for SHA256).

    Returns:
        Hex string of specified length.
    """
    combined = "|".join(parts)
    full_hash = hashlib.sha256(combined.encode("utf-8")).hexdigest()
    return full_hash[:length]


def slugify(text: str, max_len: int = 40) -> str:
    """
    Create a lowercase, underscore-separated slug.

    Example:
        >>> slugify("Show State When US")
        'show_state_when_us'
    """
    slug = re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")
    return slug[:max_len].rstrip("_")
