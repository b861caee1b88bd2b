"""Evaluation package for scenario verdicts.

Provides the error-text classifier, evaluator dispatch by ScenarioKind,
and check/bundle aggregation.
"""

from __future__ import annotations

from launchgate.evaluation.aggregation import check_passed, overall_verdict, run_check
from launchgate.evaluation.classifier import ErrorClass, classify, is_cache_corruption
from launchgate.evaluation.evaluators import evaluate_run, get_evaluator
from launchgate.evaluation.evaluators.base import BaseEvaluator

__all__ = [
    "BaseEvaluator",
    "ErrorClass",
    "check_passed",
    "classify",
    "evaluate_run",
    "get_evaluator",
    "is_cache_corruption",
    "overall_verdict",
    "run_check",
]
