"""Utilities package - Flat structure (no nested directories)"""

# URL utilities
from .url_utils import canonicalize_url, clamp_result_count, deduplicate_results

__all__ = [
    "canonicalize_url",
    "clamp_result_count",
    "deduplicate_results",
]
