"""Tests for launchgate.models.result - summary counters and bundle serialization."""

from __future__ import annotations

from datetime import datetime, timezone

from launchgate.models.result import (
    Attempt,
    ChainInfo,
    CheckRecord,
    Evaluation,
    EvidenceBundle,
    ExecDescriptor,
    ExecutionResult,
    SummaryCounters,
)

NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _summary(accepted=1, rejected=0, missed=0) -> dict:
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


def _run(**overrides) -> ExecutionResult:
    fields = {
        "name": "shielded-smoke",
        "started_at": NOW,
        "ended_at": NOW,
        "duration_ms": 1500,
        "exit_code": 0,
        "output_dir": "./zkbench-out-evidence-x-shielded-smoke",
        "stdout_log": "/tmp/logs/shielded-smoke.stdout.log",
        "stderr_log": "/tmp/logs/shielded-smoke.stderr.log",
    }
    fields.update(overrides)
    return ExecutionResult(**fields)


class TestSummaryCounters:
    """Test extraction from results[0].summary."""

    def test_reads_first_result(self):
        counters = SummaryCounters.from_summary(_summary(accepted=3, rejected=1, missed=2))
        assert counters == SummaryCounters(accepted=3, rejected=1, missed_deadlines=2)

    def test_missing_fields_default_to_zero(self):
        counters = SummaryCounters.from_summary({"results": [{"summary": {}}]})
        assert counters == SummaryCounters()

    def test_non_numeric_fields_default_to_zero(self):
        counters = SummaryCounters.from_summary(
            {"results": [{"summary": {"total_accepted_batches": "many"}}]}
        )
        assert counters.accepted == 0

    def test_absent_structure_is_none(self):
        assert SummaryCounters.from_summary(None) is None
        assert SummaryCounters.from_summary({}) is None
        assert SummaryCounters.from_summary({"results": []}) is None
        assert SummaryCounters.from_summary({"results": ["x"]}) is None
        assert SummaryCounters.from_summary({"results": [{"summary": None}]}) is None


class TestExecutionResult:
    """Test derived properties."""

    def test_counters_property(self):
        assert _run(summary=_summary(accepted=5)).counters.accepted == 5
        assert _run().counters is None

    def test_error_text_is_lowercased(self):
        assert _run(error_snippet="Proof Verification FAILED").error_text == "proof verification failed"
        assert _run().error_text == ""


class TestChainInfo:
    """Test alias handling for node chain rows."""

    def test_accepts_node_field_names(self):
        info = ChainInfo.model_validate({"id": "c1", "name": "VEIL", "subnetID": "s", "vmID": "v"})
        assert info.subnet_id == "s"
        assert info.vm_id == "v"

    def test_accepts_python_field_names(self):
        assert ChainInfo(id="c1", vm_id="v").vm_id == "v"


class TestEvidenceBundle:
    """Test JSON round-trip of the bundle contract."""

    def test_round_trip(self):
        run = _run(summary=_summary(), retries=1, recovered_after_cache_reset=True)
        bundle = EvidenceBundle(
            generated_at=NOW,
            harness_version="0.1.0",
            node_url="http://127.0.0.1:9660",
            chain_id="chain",
            chain_discovery_strategy="vm-id",
            runner="docker",
            zkbench_exec=ExecDescriptor(mode="binary", binary_path="/workspace/bin/zk"),
            pk_path="/pk.bin",
            discovered_chains=[ChainInfo(id="chain", name="VEIL")],
            checks=[
                CheckRecord(
                    id="shielded-smoke",
                    passed=True,
                    attempts=[Attempt(run=run, evaluation=Evaluation(passed=True, reason="ok"))],
                )
            ],
            overall_pass=True,
        )
        restored = EvidenceBundle.model_validate_json(bundle.model_dump_json())
        assert restored == bundle
        assert restored.checks[0].attempts[0].run.recovered_after_cache_reset is True
