"""Backup-takeover evaluator for the primary signer sub-run."""

from __future__ import annotations

from launchgate.evaluation.classifier import ErrorClass, matches
from launchgate.evaluation.evaluators.base import BaseEvaluator, unexpected_exit
from launchgate.models.result import Evaluation, ExecutionResult


class PrimaryMustFailEvaluator(BaseEvaluator):
    """Once backup authority is installed the primary prover must never succeed."""

    def evaluate(self, run: ExecutionResult) -> Evaluation:
        if run.exit_code == 0:
            return Evaluation(passed=False, reason="primary prover unexpectedly succeeded")
        if matches(run.error_text, ErrorClass.authority_rejected):
            return Evaluation(
                passed=True,
                reason="primary prover rejected under backup authority gate",
            )
        return unexpected_exit(run)
