"""launchgate execution - process supervision, provisioning, scenarios, orchestration."""

from launchgate.execution.harness import EvidenceHarness, Preflight, resolve_target
from launchgate.execution.process import CommandResult, run_command
from launchgate.execution.provisioner import Provisioner, ProvisionStatus
from launchgate.execution.recovery import AttemptOutcome, run_with_cache_recovery
from launchgate.execution.scenario_runner import ScenarioRunner

__all__ = [
    "AttemptOutcome",
    "CommandResult",
    "EvidenceHarness",
    "Preflight",
    "ProvisionStatus",
    "Provisioner",
    "ScenarioRunner",
    "resolve_target",
    "run_command",
    "run_with_cache_recovery",
]
