"""launchgate data models - re-exports all public model classes."""

from launchgate.models.config import RunConfiguration, RunnerMode
from launchgate.models.result import (
    Attempt,
    ChainDiscovery,
    ChainInfo,
    CheckRecord,
    Evaluation,
    EvidenceBundle,
    ExecDescriptor,
    ExecutionResult,
    SummaryCounters,
)
from launchgate.models.scenario import CheckPlan, ScenarioKind, ScenarioSpec, SignerKeys

__all__ = [
    "Attempt",
    "ChainDiscovery",
    "ChainInfo",
    "CheckPlan",
    "CheckRecord",
    "Evaluation",
    "EvidenceBundle",
    "ExecDescriptor",
    "ExecutionResult",
    "RunConfiguration",
    "RunnerMode",
    "ScenarioKind",
    "ScenarioSpec",
    "SignerKeys",
    "SummaryCounters",
]
