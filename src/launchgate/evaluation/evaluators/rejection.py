"""Adversarial proof evaluators -- invalid proofs must be rejected."""

from __future__ import annotations

from launchgate.evaluation.classifier import ErrorClass
from launchgate.evaluation.evaluators.base import RejectionEvaluator


class SyntheticNegativeEvaluator(RejectionEvaluator):
    """Synthetic (non-Groth16) proofs must be refused by the verifier gate."""

    error_class = ErrorClass.proof_rejected
    rejection_reason = "expected fail-close proof rejection observed (non-zero exit)"


class MalformedProofEvaluator(RejectionEvaluator):
    """Truncated proof envelopes must fail to parse or verify."""

    error_class = ErrorClass.malformed_proof
    rejection_reason = "expected malformed-proof rejection observed (non-zero exit)"
