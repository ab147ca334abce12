"""Content fingerprints used to deduplicate resumes and job descriptions."""

import hashlib


def normalize_text(text) -> str:
    """Unify line endings and strip surrounding whitespace."""
    if not isinstance(text, str):
        return ""
    return text.replace("\r\n", "\n").strip()


def create_hash(text) -> str:
    """Return the SHA-1 hex digest of ``normalize_text(text)``."""
    normalized = normalize_text(text)
    return hashlib.sha1(normalized.encode("utf-8")).hexdigest()
