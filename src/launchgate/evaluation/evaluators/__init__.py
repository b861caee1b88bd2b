"""Evaluator registry -- maps ScenarioKind values to evaluator classes."""

from __future__ import annotations

from launchgate.evaluation.evaluators.authority import PrimaryMustFailEvaluator
from launchgate.evaluation.evaluators.base import BaseEvaluator
from launchgate.evaluation.evaluators.nominal import ShieldedSmokeEvaluator
from launchgate.evaluation.evaluators.rejection import (
    MalformedProofEvaluator,
    SyntheticNegativeEvaluator,
)
from launchgate.evaluation.evaluators.timeout import TimeoutDrillEvaluator
from launchgate.models.result import Evaluation, ExecutionResult
from launchgate.models.scenario import ScenarioKind

EVALUATOR_REGISTRY: dict[ScenarioKind, type[BaseEvaluator]] = {
    ScenarioKind.shielded_smoke: ShieldedSmokeEvaluator,
    ScenarioKind.synthetic_negative: SyntheticNegativeEvaluator,
    ScenarioKind.malformed_proof: MalformedProofEvaluator,
    ScenarioKind.backup_primary_fails: PrimaryMustFailEvaluator,
    ScenarioKind.backup_recovers: ShieldedSmokeEvaluator,
    ScenarioKind.timeout_drill: TimeoutDrillEvaluator,
}


def get_evaluator(kind: ScenarioKind | str) -> BaseEvaluator:
    """Look up and instantiate the evaluator for a scenario kind.

    Raises:
        ValueError: If *kind* is not a registered ScenarioKind.
    """
    try:
        cls = EVALUATOR_REGISTRY[ScenarioKind(kind)]
    except (KeyError, ValueError):
        available = sorted(k.value for k in EVALUATOR_REGISTRY)
        raise ValueError(
            f"Unknown scenario kind {kind!r}. Available kinds: {available}"
        ) from None
    return cls()


def evaluate_run(kind: ScenarioKind | str, run: ExecutionResult) -> Evaluation:
    """Dispatch run to the evaluator registered for kind."""
    return get_evaluator(kind).evaluate(run)
