"""Error-text classifier for benchmark subprocess output.

The single table of substring signatures used to turn captured
stdout/stderr into control decisions. Matching is case-insensitive
substring search; a text may belong to several classes at once since
the generic submit failure message is shared by every rejection path.
"""

from __future__ import annotations

from enum import Enum


class ErrorClass(str, Enum):
    """Known failure signatures in benchmark output."""

    authority_rejected = "authority_rejected"
    proof_rejected = "proof_rejected"
    malformed_proof = "malformed_proof"
    deadline_missed = "deadline_missed"
    cache_corrupted = "cache_corrupted"
    unknown = "unknown"


_SUBMIT_FAILED = "submit_batch_proof execution failed"

ERROR_PATTERNS: dict[ErrorClass, tuple[str, ...]] = {
    ErrorClass.authority_rejected: (
        "unauthorized",
        "prover authority",
        _SUBMIT_FAILED,
    ),
    ErrorClass.proof_rejected: (
        "proof verification failed",
        "proof circuit mismatch",
        _SUBMIT_FAILED,
    ),
    ErrorClass.malformed_proof: (
        "invalid proof envelope",
        "proof verification failed",
        "failed to parse proof",
        "deserialize",
        _SUBMIT_FAILED,
    ),
    ErrorClass.deadline_missed: (
        "missed proof deadline",
        "proof deadline",
        "window close",
        _SUBMIT_FAILED,
    ),
    ErrorClass.cache_corrupted: (
        "cannot allocate memory",
        ".partial",
        "/go/pkg/mod/cache/download",
    ),
}


def contains_any(text: str, patterns: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


def matches(text: str, error_class: ErrorClass) -> bool:
    """Return True if text carries any signature of error_class."""
    return contains_any(text, ERROR_PATTERNS.get(error_class, ()))


def classify(text: str) -> frozenset[ErrorClass]:
    """Return every class whose signatures appear in text, or {unknown}."""
    found = frozenset(cls for cls in ERROR_PATTERNS if matches(text, cls))
    return found or frozenset({ErrorClass.unknown})


def is_cache_corruption(text: str) -> bool:
    return matches(text, ErrorClass.cache_corrupted)
