"""Tests for launchgate.evaluation.evaluators - per-kind verdict rules."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from launchgate.evaluation.evaluators import EVALUATOR_REGISTRY, evaluate_run, get_evaluator
from launchgate.evaluation.evaluators.authority import PrimaryMustFailEvaluator
from launchgate.evaluation.evaluators.nominal import ShieldedSmokeEvaluator
from launchgate.evaluation.evaluators.rejection import (
    MalformedProofEvaluator,
    SyntheticNegativeEvaluator,
)
from launchgate.evaluation.evaluators.timeout import TimeoutDrillEvaluator
from launchgate.models.result import ExecutionResult
from launchgate.models.scenario import ScenarioKind

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _summary(accepted=0, rejected=0, missed=0) -> dict:
    return {
        "results": [
            {
                "summary": {
                    "total_accepted_batches": accepted,
                    "total_rejected_batches": rejected,
                    "total_missed_proof_deadlines": missed,
                }
            }
        ]
    }


def _run(exit_code: int = 0, summary: dict | None = None, snippet: str | None = None) -> ExecutionResult:
    return ExecutionResult(
        name="case",
        started_at=NOW,
        ended_at=NOW,
        duration_ms=10,
        exit_code=exit_code,
        output_dir="./out",
        summary=summary,
        stdout_log="out.log",
        stderr_log="err.log",
        error_snippet=snippet,
    )


class TestRegistry:
    """Test kind -> evaluator dispatch."""

    def test_every_kind_registered(self):
        assert set(EVALUATOR_REGISTRY) == set(ScenarioKind)

    def test_backup_recovers_uses_nominal_rule(self):
        assert isinstance(get_evaluator(ScenarioKind.backup_recovers), ShieldedSmokeEvaluator)

    def test_lookup_by_value(self):
        assert isinstance(get_evaluator("timeout-drill"), TimeoutDrillEvaluator)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown scenario kind"):
            get_evaluator("chaos-monkey")


class TestShieldedSmoke:
    """Nominal run: accepted>=1, rejected=0, missed=0 on exit 0."""

    evaluator = ShieldedSmokeEvaluator()

    def test_pass(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=4)))
        assert result.passed
        assert result.reason == "accepted=4, rejected=0, missed=0"

    def test_non_zero_exit(self):
        result = self.evaluator.evaluate(_run(exit_code=2, snippet="boom"))
        assert not result.passed
        assert result.reason == "process exit code 2"

    def test_missing_summary(self):
        result = self.evaluator.evaluate(_run())
        assert not result.passed
        assert result.reason == "missing summary payload"

    def test_nothing_accepted(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=0)))
        assert result.reason == "accepted=0 (expected >=1)"

    def test_any_rejection_fails(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=3, rejected=1)))
        assert not result.passed
        assert result.reason == "rejected=1 (expected 0)"

    def test_missed_deadline_fails(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=3, missed=1)))
        assert not result.passed
        assert result.reason == "missed_deadlines=1 (expected 0)"


class TestSyntheticNegative:
    """Synthetic proofs must be refused (fail-closed)."""

    evaluator = SyntheticNegativeEvaluator()

    def test_rejection_signature_passes(self):
        result = self.evaluator.evaluate(_run(exit_code=1, snippet="Proof verification failed"))
        assert result.passed
        assert "fail-close" in result.reason

    def test_unexpected_crash_fails(self):
        result = self.evaluator.evaluate(_run(exit_code=1, snippet="panic: runtime error"))
        assert not result.passed
        assert result.reason == "unexpected process exit code 1"

    def test_clean_exit_with_rejections_passes(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=0, rejected=2)))
        assert result.passed
        assert result.reason == "accepted=0, rejected=2"

    def test_clean_exit_with_acceptance_fails(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=1, rejected=2)))
        assert not result.passed
        assert result.reason == "accepted=1 (expected 0)"

    def test_clean_exit_without_rejections_fails(self):
        result = self.evaluator.evaluate(_run(summary=_summary()))
        assert not result.passed
        assert result.reason == "rejected=0 (expected >=1)"

    def test_clean_exit_missing_summary_fails(self):
        assert not self.evaluator.evaluate(_run()).passed

    def test_non_zero_exit_ignores_missing_summary(self):
        result = self.evaluator.evaluate(
            _run(exit_code=3, snippet="submit_batch_proof execution failed")
        )
        assert result.passed


class TestMalformedProof:
    """Truncated proofs must fail to parse or verify."""

    evaluator = MalformedProofEvaluator()

    def test_parse_failure_passes(self):
        result = self.evaluator.evaluate(_run(exit_code=1, snippet="invalid proof envelope: short read"))
        assert result.passed
        assert "malformed-proof" in result.reason

    def test_circuit_mismatch_is_not_a_malformed_signature(self):
        result = self.evaluator.evaluate(_run(exit_code=1, snippet="proof circuit mismatch"))
        assert not result.passed

    def test_clean_exit_rule(self):
        assert self.evaluator.evaluate(_run(summary=_summary(rejected=1))).passed
        assert not self.evaluator.evaluate(_run(summary=_summary(accepted=1, rejected=1))).passed


class TestPrimaryMustFail:
    """The primary prover must be refused once backup authority is installed."""

    evaluator = PrimaryMustFailEvaluator()

    def test_clean_exit_fails(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=5)))
        assert not result.passed
        assert result.reason == "primary prover unexpectedly succeeded"

    def test_authority_rejection_passes(self):
        result = self.evaluator.evaluate(_run(exit_code=1, snippet="ERR: unauthorized submitter"))
        assert result.passed

    def test_other_failure_fails(self):
        result = self.evaluator.evaluate(_run(exit_code=1, snippet="connection refused"))
        assert not result.passed
        assert result.reason == "unexpected process exit code 1"


class TestTimeoutDrill:
    """Late proofs must be refused or counted as missed."""

    evaluator = TimeoutDrillEvaluator()

    def test_deadline_failure_passes(self):
        result = self.evaluator.evaluate(_run(exit_code=1, snippet="missed proof deadline for window 3"))
        assert result.passed

    def test_other_failure_fails(self):
        assert not self.evaluator.evaluate(_run(exit_code=1, snippet="out of gas")).passed

    def test_killed_run_without_signature_fails(self):
        assert not self.evaluator.evaluate(_run(exit_code=-1, snippet="")).passed

    def test_clean_exit_with_missed_passes(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=1, missed=2)))
        assert result.passed
        assert result.reason == "rejected=0, missed_deadlines=2"

    def test_clean_exit_with_rejections_passes(self):
        assert self.evaluator.evaluate(_run(summary=_summary(rejected=1))).passed

    def test_clean_exit_all_on_time_fails(self):
        result = self.evaluator.evaluate(_run(summary=_summary(accepted=8)))
        assert not result.passed
        assert result.reason == "no missed deadline or rejection observed"

    def test_clean_exit_missing_summary_fails(self):
        assert self.evaluator.evaluate(_run()).reason == "missing summary payload"


class TestEvaluateRun:
    """evaluate_run dispatches through the registry."""

    def test_dispatch(self):
        run = _run(exit_code=1, snippet="unauthorized")
        assert evaluate_run(ScenarioKind.backup_primary_fails, run).passed
        assert not evaluate_run(ScenarioKind.shielded_smoke, run).passed

    @pytest.mark.parametrize("kind", list(ScenarioKind), ids=lambda k: k.value)
    @pytest.mark.parametrize(
        "run",
        [
            _run(summary=_summary(accepted=3)),
            _run(summary=_summary(accepted=2, rejected=1, missed=1)),
            _run(),
            _run(exit_code=1, snippet="proof verification failed: unauthorized"),
            _run(exit_code=1, snippet="context deadline exceeded"),
        ],
        ids=["clean", "clean-with-rejections", "no-summary", "unauthorized", "deadline"],
    )
    def test_verdict_is_deterministic(self, kind, run):
        via_dispatch = evaluate_run(kind, run)
        assert evaluate_run(kind, run) == via_dispatch
        assert get_evaluator(kind).evaluate(run) == via_dispatch
        assert get_evaluator(kind).evaluate(run) == get_evaluator(kind).evaluate(run)
