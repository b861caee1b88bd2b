"""launchgate: launch-readiness evidence harness for proof-gated batch pipelines."""

__version__ = "0.1.0"
