"""One-shot cache-corruption recovery as a bounded state machine.

Attempt(n) -> success
           | retryable failure and n < max_recoveries -> reset cache -> Attempt(n+1)
           | retryable failure and n == max_recoveries -> CacheRecoveryExhausted
           | any other failure -> terminal (returned to the caller as-is)

Only the recovery path mutates the shared module cache, and it always
deletes then recreates the directory before the single retry. Running
two harnesses against the same cache directory is unsupported.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Generic, TypeVar

from launchgate.errors import CacheRecoveryExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_CACHE_RECOVERIES = 1


class AttemptOutcome(str, Enum):
    """Classification of one attempt by the recovery state machine."""

    success = "success"
    retryable = "retryable"
    terminal = "terminal"


@dataclass
class RecoveryOutcome(Generic[T]):
    """Final result plus how many cache resets it took."""

    result: T
    retries: int
    recovered: bool


def reset_module_cache(cache_dir: Path) -> None:
    """Delete and recreate the module cache directory."""
    logger.warning("Cache corruption detected; resetting %s", cache_dir)
    shutil.rmtree(cache_dir, ignore_errors=True)
    cache_dir.mkdir(parents=True, exist_ok=True)


def run_with_cache_recovery(
    run_once: Callable[[], T],
    classify: Callable[[T], AttemptOutcome],
    reset_cache: Callable[[], None],
    *,
    label: str,
    max_recoveries: int = MAX_CACHE_RECOVERIES,
) -> RecoveryOutcome[T]:
    """Run an action, resetting the cache and retrying on cache corruption.

    Args:
        run_once: Performs one attempt and returns its result.
        classify: Maps a result to success, retryable, or terminal.
        reset_cache: Side-effecting cache wipe performed before a retry.
        label: Name used in logs and in the exhaustion error.
        max_recoveries: Upper bound on cache resets (default 1).

    Returns:
        RecoveryOutcome with the last result. recovered is True only when
        a reset happened and the final attempt succeeded.

    Raises:
        CacheRecoveryExhausted: If the attempt after the last permitted
            reset still fails with cache corruption.
    """
    for attempt in range(max_recoveries + 1):
        result = run_once()
        outcome = classify(result)

        if outcome is AttemptOutcome.success:
            return RecoveryOutcome(result=result, retries=attempt, recovered=attempt > 0)
        if outcome is AttemptOutcome.terminal:
            return RecoveryOutcome(result=result, retries=attempt, recovered=False)

        if attempt == max_recoveries:
            raise CacheRecoveryExhausted(
                f"{label}: cache corruption persisted after {max_recoveries} cache reset(s)"
            )
        logger.info("%s: retrying after cache reset (%d/%d)", label, attempt + 1, max_recoveries)
        reset_cache()

    # Unreachable, but satisfies type checker
    raise RuntimeError("Recovery loop exited unexpectedly")  # pragma: no cover
