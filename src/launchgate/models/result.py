"""Result data models for launchgate evidence runs.

These models encode the bundle contract: one ExecutionResult per
subprocess invocation, an Evaluation per result, CheckRecords that
group attempts per scenario, and the EvidenceBundle written once at
the end of a run. Designed for lossless JSON round-trips.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class SummaryCounters(BaseModel):
    """Batch counters read from a benchmark summary artifact."""

    accepted: int = 0
    rejected: int = 0
    missed_deadlines: int = 0

    @classmethod
    def from_summary(cls, summary: dict[str, Any] | None) -> SummaryCounters | None:
        """Extract counters from results[0].summary of a summary.json payload.

        Returns None when the payload has no first result summary.
        """
        if not isinstance(summary, dict):
            return None
        results = summary.get("results")
        if not isinstance(results, list) or not results:
            return None
        first = results[0].get("summary") if isinstance(results[0], dict) else None
        if not isinstance(first, dict):
            return None
        return cls(
            accepted=_as_int(first.get("total_accepted_batches")),
            rejected=_as_int(first.get("total_rejected_batches")),
            missed_deadlines=_as_int(first.get("total_missed_proof_deadlines")),
        )


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class ExecutionResult(BaseModel):
    """Outcome of one benchmark subprocess invocation (after any cache retry)."""

    model_config = {"extra": "forbid"}

    name: str
    started_at: datetime
    ended_at: datetime
    duration_ms: int
    exit_code: int
    signal: str = ""
    timed_out: bool = False
    output_dir: str
    summary_path: str = ""
    summary: dict[str, Any] | None = None
    retries: int = 0
    recovered_after_cache_reset: bool = False
    stdout_log: str
    stderr_log: str
    error_snippet: str | None = None

    @property
    def counters(self) -> SummaryCounters | None:
        return SummaryCounters.from_summary(self.summary)

    @property
    def error_text(self) -> str:
        """Lower-cased error snippet used for pattern matching."""
        return (self.error_snippet or "").lower()


class Evaluation(BaseModel):
    """Verdict of one evaluation procedure over one ExecutionResult."""

    model_config = {"extra": "forbid", "frozen": True}

    passed: bool
    reason: str


class Attempt(BaseModel):
    """One execution paired with its evaluation."""

    model_config = {"extra": "forbid"}

    run: ExecutionResult
    evaluation: Evaluation


class CheckRecord(BaseModel):
    """Verdict for one scenario, with every attempt in execution order."""

    model_config = {"extra": "forbid"}

    id: str
    required: bool = True
    passed: bool
    attempts: list[Attempt] = Field(default_factory=list)


class ChainInfo(BaseModel):
    """A chain reported by the node's blockchain listing."""

    model_config = {"populate_by_name": True}

    id: str = ""
    name: str = ""
    subnet_id: str = Field(default="", alias="subnetID")
    vm_id: str = Field(default="", alias="vmID")


class ChainDiscovery(BaseModel):
    """Chosen chain id plus the full candidate list, retained for audit."""

    chain_id: str
    strategy: Literal["explicit", "vm-id", "name-fallback"]
    discovered: list[ChainInfo] = Field(default_factory=list)


class ExecDescriptor(BaseModel):
    """How scenario runs launch the benchmark: a prebuilt binary or `go run`."""

    model_config = {"extra": "forbid", "frozen": True}

    mode: Literal["binary", "go-run"] = "go-run"
    binary_path: str = ""
    recovered_after_cache_reset: bool = False


class EvidenceBundle(BaseModel):
    """The final artifact of one harness invocation.

    overall_pass is the conjunction of passed over every required check;
    setup_runs hold prefund executions and never affect the verdict.
    """

    model_config = {"extra": "forbid"}

    generated_at: datetime
    harness_version: str
    node_url: str
    chain_id: str
    chain_discovery_strategy: str
    runner: str
    docker_image: str = ""
    docker_server_version: str = ""
    docker_image_built: bool = False
    zkbench_exec: ExecDescriptor
    pk_path: str
    discovered_chains: list[ChainInfo] = Field(default_factory=list)
    setup_runs: list[ExecutionResult] = Field(default_factory=list)
    checks: list[CheckRecord] = Field(default_factory=list)
    overall_pass: bool
