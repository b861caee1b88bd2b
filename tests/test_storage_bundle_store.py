"""Tests for launchgate.storage.bundle_store - bundle layout and rendering."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from launchgate.models.result import (
    Attempt,
    ChainInfo,
    CheckRecord,
    Evaluation,
    EvidenceBundle,
    ExecDescriptor,
    ExecutionResult,
)
from launchgate.storage.bundle_store import (
    CHECKS_ALIGN,
    CHECKS_HEADER,
    BundleStore,
    bundle_stamp,
    latest_bundle_dir,
    load_bundle,
    render_markdown,
)

NOW = datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)


def _run(root: Path, name: str, duration_ms: int = 12_340, accepted: int = 1) -> ExecutionResult:
    out = root / f"zkbench-out-evidence-20260304-050607-{name}"
    return ExecutionResult(
        name=name,
        started_at=NOW,
        ended_at=NOW,
        duration_ms=duration_ms,
        exit_code=0,
        output_dir=f"./{out.name}",
        summary_path=str(out / "summary.json"),
        summary={"results": [{"summary": {"total_accepted_batches": accepted}}]},
        stdout_log=str(root / "evidence-bundles" / "logs" / f"{name}.stdout.log"),
        stderr_log=str(root / "evidence-bundles" / "logs" / f"{name}.stderr.log"),
    )


def _bundle(root: Path, overall: bool = True) -> EvidenceBundle:
    drill_fail = Attempt(
        run=_run(root, "timeout-drill-b8", accepted=8),
        evaluation=Evaluation(passed=False, reason="no missed deadline or rejection observed"),
    )
    drill_pass = Attempt(
        run=_run(root, "timeout-drill-b32", duration_ms=999),
        evaluation=Evaluation(passed=True, reason="expected timeout/deadline failure observed"),
    )
    smoke = Attempt(
        run=_run(root, "shielded-smoke", accepted=3),
        evaluation=Evaluation(passed=True, reason="accepted=3, rejected=0, missed=0"),
    )
    return EvidenceBundle(
        generated_at=NOW,
        harness_version="0.1.0",
        node_url="http://127.0.0.1:9660",
        chain_id="chain-abc",
        chain_discovery_strategy="vm-id",
        runner="docker",
        zkbench_exec=ExecDescriptor(mode="go-run"),
        pk_path=str(root / "pk.bin"),
        checks=[
            CheckRecord(id="shielded-smoke", passed=True, attempts=[smoke]),
            CheckRecord(id="timeout-drill", passed=True, attempts=[drill_fail, drill_pass]),
        ],
        overall_pass=overall,
    )


class TestBundleStamp:
    def test_format(self):
        assert bundle_stamp(NOW) == "20260304-050607"


class TestRenderMarkdown:
    """Human-readable bundle summary."""

    def test_header_and_verdict(self, tmp_path):
        md = render_markdown(_bundle(tmp_path, overall=False), tmp_path)
        lines = md.splitlines()
        assert lines[0] == "# VEIL Launch-Gate Evidence Bundle"
        assert "- Chain ID: `chain-abc`" in lines
        assert "- Verdict: **FAIL**" in lines
        header = lines.index(CHECKS_HEADER)
        assert lines[header + 1] == CHECKS_ALIGN

    def test_one_row_per_attempt(self, tmp_path):
        md = render_markdown(_bundle(tmp_path), tmp_path)
        rows = [line for line in md.splitlines() if line.startswith("| ") and "Check" not in line]
        assert [r.split(" | ")[0] for r in rows] == [
            "| shielded-smoke",
            "| timeout-drill-b8",
            "| timeout-drill-b32",
        ]
        assert "| timeout-drill-b8 | FAIL | 12.3 | 8 | 0 | 0 |" in md
        assert "| timeout-drill-b32 | PASS | 1.0 | 1 | 0 | 0 |" in md

    def test_artifact_paths_are_relative(self, tmp_path):
        md = render_markdown(_bundle(tmp_path), tmp_path)
        assert "  - stdout: `evidence-bundles/logs/shielded-smoke.stdout.log`" in md
        assert (
            "  - summary: `zkbench-out-evidence-20260304-050607-shielded-smoke/summary.json`" in md
        )
        assert str(tmp_path) not in md.split("## Artifacts")[1]

    def test_missing_summary_path_renders_empty(self, tmp_path):
        bundle = _bundle(tmp_path)
        bundle.checks[0].attempts[0].run.summary_path = ""
        md = render_markdown(bundle, tmp_path)
        assert "  - summary: ``" in md


class TestBundleStore:
    """Directory layout, atomic save, and reload."""

    def test_layout(self, tmp_path):
        store = BundleStore(tmp_path / "out", stamp="20260304-050607")
        assert store.bundle_dir == tmp_path / "out" / "20260304-050607-launch-gate-evidence"
        assert store.logs_dir == store.bundle_dir / "logs"
        store.ensure_dirs()
        assert store.logs_dir.is_dir()

    def test_save_and_load(self, tmp_path):
        store = BundleStore(tmp_path / "out", stamp="20260304-050607")
        bundle = _bundle(tmp_path)

        json_path, md_path = store.save(bundle, tmp_path)

        assert json_path.name == "bundle.json"
        assert md_path.read_text().startswith("# VEIL Launch-Gate Evidence Bundle")
        assert not (store.bundle_dir / "bundle.json.tmp").exists()
        data = json.loads(json_path.read_text())
        assert data["overall_pass"] is True
        assert data["checks"][1]["attempts"][0]["run"]["name"] == "timeout-drill-b8"

        loaded = load_bundle(store.bundle_dir)
        assert loaded == bundle
        assert load_bundle(json_path) == bundle

    def test_discovered_chains_use_node_field_names(self, tmp_path):
        store = BundleStore(tmp_path / "out", stamp="20260304-050607")
        bundle = _bundle(tmp_path).model_copy(
            update={"discovered_chains": [ChainInfo(id="chain-abc", name="VEIL", subnet_id="subnet-1", vm_id="vm-1")]}
        )

        json_path, _ = store.save(bundle, tmp_path)

        chain = json.loads(json_path.read_text())["discovered_chains"][0]
        assert chain == {"id": "chain-abc", "name": "VEIL", "subnetID": "subnet-1", "vmID": "vm-1"}
        assert load_bundle(json_path) == bundle

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_bundle(tmp_path / "nope")


class TestLatestBundleDir:
    def test_no_out_dir(self, tmp_path):
        assert latest_bundle_dir(tmp_path / "missing") is None

    def test_picks_newest_complete_bundle(self, tmp_path):
        out = tmp_path / "out"
        BundleStore(out, stamp="20260101-000000").save(_bundle(tmp_path), tmp_path)
        BundleStore(out, stamp="20260201-000000").save(_bundle(tmp_path), tmp_path)
        # Newer but incomplete (no bundle.json yet)
        BundleStore(out, stamp="20260301-000000").ensure_dirs()
        assert latest_bundle_dir(out) == out / "20260201-000000-launch-gate-evidence"
