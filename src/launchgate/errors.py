"""Exception hierarchy for the evidence harness.

Every fatal condition derives from HarnessError so the CLI can print a
single diagnostic line and exit non-zero. Scenario evaluation failures
are not exceptions: they are recorded as Evaluation values in the bundle.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for fatal harness errors."""


class ConfigurationError(HarnessError):
    """Raised when a flag, environment variable, or project file value is invalid.

    Attributes:
        field: Name of the offending setting (flag name or env var).
        value: The raw value that failed validation.
    """

    def __init__(self, field: str, value: object, message: str | None = None) -> None:
        self.field = field
        self.value = value
        super().__init__(message or f"invalid {field}: {value}")


class ReadinessError(HarnessError):
    """Raised when a precondition for running scenarios is not met."""


class NodeUnreachable(ReadinessError):
    """Raised when no node candidate became healthy before its deadline.

    Attributes:
        candidates: Every endpoint that was polled, in order.
        last_error: Message of the last probe failure seen.
    """

    TROUBLESHOOTING: tuple[str, ...] = (
        "- start/restart the node: docker compose -f docker-compose.local.yml up -d --build node",
        "- ensure the shielded verifier gate is active: VEIL_ZK_REQUIRED_CIRCUIT_ID=shielded-ledger-v1",
        "- verify the readiness endpoint: http://127.0.0.1:9660/ext/health/readiness",
        "- if docker commands hang, restart the Docker daemon and retry",
    )

    def __init__(self, candidates: list[str], last_error: str | None) -> None:
        self.candidates = list(candidates)
        self.last_error = last_error or "unknown error"
        lines = [
            f"node did not become healthy after trying: {', '.join(self.candidates)}",
            f"last error: {self.last_error}",
            "troubleshooting:",
            *self.TROUBLESHOOTING,
        ]
        super().__init__("\n".join(lines))


class ChainNotFound(ReadinessError):
    """Raised when the node hosts no chain matching the expected VM."""

    def __init__(self, node_url: str) -> None:
        self.node_url = node_url
        super().__init__(f"no VEIL VM chains found on {node_url}")


class RpcError(HarnessError):
    """Raised when a JSON-RPC call fails at the transport or protocol level."""

    def __init__(self, method: str, message: str) -> None:
        self.method = method
        super().__init__(f"{method}: {message}")


class ProvisioningError(HarnessError):
    """Raised when the benchmark executable or its image cannot be built."""


class CacheRecoveryExhausted(ProvisioningError):
    """Raised when a cache-corruption failure recurs after the one-shot reset."""


class SetupStepFailure(HarnessError):
    """Raised when key generation or wallet prefunding fails."""
