"""Base evaluator abstract class and shared verdict helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from launchgate.evaluation.classifier import ErrorClass, matches
from launchgate.models.result import Evaluation, ExecutionResult

MISSING_SUMMARY = "missing summary payload"


class BaseEvaluator(ABC):
    """Abstract base class for scenario evaluators.

    Each evaluator is a pure function of one ExecutionResult: it reads
    the exit code, summary counters, and error snippet and returns an
    Evaluation. Evaluators hold no state.
    """

    @abstractmethod
    def evaluate(self, run: ExecutionResult) -> Evaluation:
        """Decide pass/fail for a single execution.

        Args:
            run: The captured execution result.

        Returns:
            Evaluation with passed and a human-readable reason.
        """


class RejectionEvaluator(BaseEvaluator):
    """Two-branch fail-closed rule shared by the adversarial drills.

    Non-zero exit passes only when the error text carries the expected
    rejection signature; any other non-zero exit is an unexpected crash.
    Zero exit passes only with a summary showing nothing accepted and at
    least one batch rejected.
    """

    error_class: ErrorClass
    rejection_reason: str

    def evaluate(self, run: ExecutionResult) -> Evaluation:
        if run.exit_code != 0:
            if matches(run.error_text, self.error_class):
                return Evaluation(passed=True, reason=self.rejection_reason)
            return unexpected_exit(run)

        counters = run.counters
        if counters is None:
            return Evaluation(passed=False, reason=MISSING_SUMMARY)
        if counters.accepted != 0:
            return Evaluation(passed=False, reason=f"accepted={counters.accepted} (expected 0)")
        if counters.rejected < 1:
            return Evaluation(passed=False, reason=f"rejected={counters.rejected} (expected >=1)")
        return Evaluation(
            passed=True,
            reason=f"accepted={counters.accepted}, rejected={counters.rejected}",
        )


def unexpected_exit(run: ExecutionResult) -> Evaluation:
    return Evaluation(passed=False, reason=f"unexpected process exit code {run.exit_code}")
