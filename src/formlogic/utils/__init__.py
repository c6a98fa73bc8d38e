"""
Utility modules for formlogic.

Submodules:
    text: Stable hashing and slug generation
    values: Coercion of untyped snapshot values (numbers, booleans, dates, collections)
"""

from formlogic.utils.text import stable_hash, slugify
from formlogic.utils.values import (
    is_missing,
    is_empty_value,
    is_multi_value,
    as_list,
    to_number,
    to_bool,
    to_temporal,
    as_text,
)

__all__ = [
    # Text utilities
    "stable_hash",
    "slugify",
    # Value coercion
    "is_missing",
    "is_empty_value",
    "is_multi_value",
    "as_list",
    "to_number",
    "to_bool",
    "to_temporal",
    "as_text",
]
