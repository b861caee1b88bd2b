"""Nominal-path evaluator -- a clean run must accept and reject nothing."""

from __future__ import annotations

from launchgate.evaluation.evaluators.base import MISSING_SUMMARY, BaseEvaluator
from launchgate.models.result import Evaluation, ExecutionResult


class ShieldedSmokeEvaluator(BaseEvaluator):
    """Passes on exit 0 with accepted>=1, rejected=0 and no missed deadlines.

    Also decides the backup-recovers sub-run of the takeover drill, where
    the backup signer must reproduce the nominal pass.
    """

    def evaluate(self, run: ExecutionResult) -> Evaluation:
        if run.exit_code != 0:
            return Evaluation(passed=False, reason=f"process exit code {run.exit_code}")

        counters = run.counters
        if counters is None:
            return Evaluation(passed=False, reason=MISSING_SUMMARY)
        if counters.accepted < 1:
            return Evaluation(passed=False, reason=f"accepted={counters.accepted} (expected >=1)")
        if counters.rejected != 0:
            return Evaluation(passed=False, reason=f"rejected={counters.rejected} (expected 0)")
        if counters.missed_deadlines != 0:
            return Evaluation(
                passed=False,
                reason=f"missed_deadlines={counters.missed_deadlines} (expected 0)",
            )
        return Evaluation(
            passed=True,
            reason=(
                f"accepted={counters.accepted}, rejected={counters.rejected}, "
                f"missed={counters.missed_deadlines}"
            ),
        )
