"""Tests for launchgate.evaluation.aggregation - check policies and overall verdict."""

from __future__ import annotations

from datetime import datetime, timezone

from launchgate.evaluation.aggregation import check_passed, overall_verdict, run_check
from launchgate.models.result import Attempt, CheckRecord, Evaluation, ExecutionResult
from launchgate.models.scenario import CheckPlan, ScenarioKind, ScenarioSpec

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


def _run(name: str, exit_code: int = 0, summary: dict | None = None, snippet: str | None = None):
    return ExecutionResult(
        name=name,
        started_at=NOW,
        ended_at=NOW,
        duration_ms=10,
        exit_code=exit_code,
        output_dir=f"./out-{name}",
        summary=summary,
        stdout_log=f"{name}.stdout.log",
        stderr_log=f"{name}.stderr.log",
        error_snippet=snippet,
    )


def _timeout_plan(*batches: int) -> CheckPlan:
    return CheckPlan(
        id="timeout-drill",
        policy="first-pass",
        specs=tuple(
            ScenarioSpec(name=f"timeout-drill-b{b}", kind=ScenarioKind.timeout_drill) for b in batches
        ),
    )


def _takeover_plan() -> CheckPlan:
    return CheckPlan(
        id="backup-takeover",
        specs=(
            ScenarioSpec(name="backup-takeover-primary-fails", kind=ScenarioKind.backup_primary_fails),
            ScenarioSpec(name="backup-takeover-backup-recovers", kind=ScenarioKind.backup_recovers),
        ),
    )


class _ScriptedExecutor:
    """Returns canned ExecutionResults by spec name and records call order."""

    def __init__(self, results: dict[str, ExecutionResult]) -> None:
        self.results = results
        self.calls: list[str] = []

    def __call__(self, spec: ScenarioSpec) -> ExecutionResult:
        self.calls.append(spec.name)
        return self.results[spec.name]


class TestRunCheckFirstPass:
    """Timeout drill semantics: iterate batch sizes, stop at the first pass."""

    def test_second_batch_passes(self):
        execute = _ScriptedExecutor(
            {
                "timeout-drill-b8": _run("timeout-drill-b8", summary=_summary(accepted=8)),
                "timeout-drill-b32": _run("timeout-drill-b32", summary=_summary(missed=1)),
            }
        )
        record = run_check(_timeout_plan(8, 32), execute)
        assert record.passed is True
        assert len(record.attempts) == 2
        assert [a.evaluation.passed for a in record.attempts] == [False, True]

    def test_stops_at_first_pass(self):
        execute = _ScriptedExecutor(
            {
                "timeout-drill-b8": _run("timeout-drill-b8", exit_code=1, snippet="window close"),
                "timeout-drill-b32": _run("timeout-drill-b32"),
            }
        )
        record = run_check(_timeout_plan(8, 32), execute)
        assert record.passed is True
        assert execute.calls == ["timeout-drill-b8"]

    def test_all_fail(self):
        execute = _ScriptedExecutor(
            {
                "timeout-drill-b8": _run("timeout-drill-b8", summary=_summary(accepted=8)),
                "timeout-drill-b32": _run("timeout-drill-b32", summary=_summary(accepted=32)),
            }
        )
        record = run_check(_timeout_plan(8, 32), execute)
        assert record.passed is False
        assert len(record.attempts) == 2


class TestRunCheckAll:
    """Backup takeover semantics: both sub-runs run and both must pass."""

    def test_both_pass(self):
        execute = _ScriptedExecutor(
            {
                "backup-takeover-primary-fails": _run(
                    "backup-takeover-primary-fails", exit_code=1, snippet="unauthorized"
                ),
                "backup-takeover-backup-recovers": _run(
                    "backup-takeover-backup-recovers", summary=_summary(accepted=2)
                ),
            }
        )
        record = run_check(_takeover_plan(), execute)
        assert record.passed is True
        assert record.id == "backup-takeover"

    def test_primary_success_fails_regardless_of_backup(self):
        execute = _ScriptedExecutor(
            {
                "backup-takeover-primary-fails": _run(
                    "backup-takeover-primary-fails", summary=_summary(accepted=2)
                ),
                "backup-takeover-backup-recovers": _run(
                    "backup-takeover-backup-recovers", summary=_summary(accepted=2)
                ),
            }
        )
        record = run_check(_takeover_plan(), execute)
        assert record.passed is False
        assert record.attempts[0].evaluation.reason == "primary prover unexpectedly succeeded"
        assert record.attempts[1].evaluation.passed is True
        assert execute.calls == ["backup-takeover-primary-fails", "backup-takeover-backup-recovers"]

    def test_on_attempt_callback(self):
        seen: list[str] = []
        execute = _ScriptedExecutor(
            {"smoke": _run("smoke", summary=_summary(accepted=1))}
        )
        plan = CheckPlan(id="shielded-smoke", specs=(ScenarioSpec(name="smoke", kind=ScenarioKind.shielded_smoke),))
        run_check(plan, execute, on_attempt=lambda spec, attempt: seen.append(spec.name))
        assert seen == ["smoke"]


class TestCheckPassed:
    """check_passed edge cases."""

    def test_no_attempts_fails(self):
        assert check_passed(_takeover_plan(), []) is False

    def test_all_policy_requires_every_spec(self):
        attempt = Attempt(run=_run("x"), evaluation=Evaluation(passed=True, reason="ok"))
        assert check_passed(_takeover_plan(), [attempt]) is False


class TestOverallVerdict:
    """Overall verdict is the AND of required checks."""

    def test_all_required_pass(self):
        checks = [CheckRecord(id="a", passed=True), CheckRecord(id="b", passed=True)]
        assert overall_verdict(checks) is True

    def test_one_required_fails(self):
        checks = [CheckRecord(id="a", passed=True), CheckRecord(id="b", passed=False)]
        assert overall_verdict(checks) is False

    def test_optional_failure_ignored(self):
        checks = [CheckRecord(id="a", passed=True), CheckRecord(id="b", required=False, passed=False)]
        assert overall_verdict(checks) is True

    def test_empty_is_pass(self):
        assert overall_verdict([]) is True
