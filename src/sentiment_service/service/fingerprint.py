"""
Content fingerprinting.

Texts that differ only in Unicode form, letter case or whitespace share a
fingerprint, and therefore share one stored result.
"""

import hashlib
import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """NFKC-normalise, case-fold, collapse whitespace runs and trim."""
    text = unicodedata.normalize("NFKC", text)
    text = text.casefold()
    return _WHITESPACE.sub(" ", text).strip()


def compute_fingerprint(text: str) -> str:
    """SHA-256 hex digest (64 chars) of the normalised text."""
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


def is_fingerprint(value: str) -> bool:
    return len(value) == 64 and all(c in "0123456789abcdef" for c in value)
