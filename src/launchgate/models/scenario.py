"""Scenario data models for the evidence battery.

A ScenarioSpec is one benchmark invocation: a case name, the
environment overrides layered onto the base configuration, and the
ScenarioKind that selects its evaluation procedure. A CheckPlan groups
the specs that together decide one CheckRecord. The battery is
statically enumerated by build_battery().
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from launchgate.models.config import RunConfiguration

SHIELDED_CIRCUIT_ID = "shielded-ledger-v1"

# Hard cap on the benchmark's own timeout during the timeout drill
TIMEOUT_DRILL_MAX_MINUTES = 10


class ScenarioKind(str, Enum):
    """Evaluation procedure selector, one per scenario family."""

    shielded_smoke = "shielded-smoke"
    synthetic_negative = "synthetic-negative"
    malformed_proof = "malformed-proof"
    backup_primary_fails = "backup-primary-fails"
    backup_recovers = "backup-recovers"
    timeout_drill = "timeout-drill"


class ScenarioSpec(BaseModel):
    """One named benchmark invocation within a check."""

    model_config = {"extra": "forbid", "frozen": True}

    name: str
    kind: ScenarioKind | None = None  # None for setup runs, which are not evaluated
    env_overrides: dict[str, str] = Field(default_factory=dict)


class CheckPlan(BaseModel):
    """The specs that decide one check, and how their verdicts combine.

    policy "all": every spec runs and every attempt must pass.
    policy "first-pass": specs run in order until one passes.
    """

    model_config = {"extra": "forbid", "frozen": True}

    id: str
    required: bool = True
    policy: Literal["all", "first-pass"] = "all"
    specs: tuple[ScenarioSpec, ...]


class SignerKeys(BaseModel):
    """Key material resolved for a run (backup may be generated at setup)."""

    model_config = {"extra": "forbid", "frozen": True}

    primary: str
    proof_config: str
    backup: str = ""
    faucet: str = ""


def _groth16_window(config: RunConfiguration) -> dict[str, str]:
    return {
        "PROOF_MODE": "groth16",
        "PROOF_CIRCUIT_ID": SHIELDED_CIRCUIT_ID,
        "GROTH16_PK_PATH": str(config.pk_path),
        "BATCH_SIZES": str(config.batch_size),
        "WINDOWS_PER_SIZE": str(config.windows_per_size),
        "BATCH_WINDOW_MS": "5000",
        "PROOF_DEADLINE_MS": "10000",
    }


def prefund_spec(name: str, target_key: str, source_key: str, amount: int) -> ScenarioSpec:
    """Spec for a prefund-only run that tops up target_key from source_key."""
    return ScenarioSpec(
        name=name,
        env_overrides={
            "PRIVATE_KEY": target_key,
            "REFUEL_PRIVATE_KEY": source_key,
            "GAS_SAFETY_BPS": "10000",
            "GAS_RESERVE": "1",
            "REFUEL_AMOUNT": str(amount),
            "PREFUND_ONLY": "true",
            "PROOF_MODE": "synthetic",
            "BATCH_SIZES": "1",
            "WINDOWS_PER_SIZE": "1",
            "BATCH_WINDOW_MS": "1000",
            "PROOF_DEADLINE_MS": "2000",
        },
    )


def build_battery(config: RunConfiguration, keys: SignerKeys) -> list[CheckPlan]:
    """Enumerate the checks to run, in execution order, honoring skip toggles.

    Skipped checks are simply absent; they never count toward the verdict.
    """
    plans: list[CheckPlan] = [
        CheckPlan(
            id="shielded-smoke",
            specs=(
                ScenarioSpec(
                    name="shielded-smoke",
                    kind=ScenarioKind.shielded_smoke,
                    env_overrides=_groth16_window(config),
                ),
            ),
        )
    ]

    if not config.skip_backup_takeover:
        plans.append(
            CheckPlan(
                id="backup-takeover",
                specs=(
                    ScenarioSpec(
                        name="backup-takeover-primary-fails",
                        kind=ScenarioKind.backup_primary_fails,
                        env_overrides={
                            "PRIVATE_KEY": keys.primary,
                            "PROOF_CONFIG_PRIVATE_KEY": keys.proof_config,
                            "PROVER_AUTHORITY_PRIVATE_KEY": keys.backup,
                            **_groth16_window(config),
                        },
                    ),
                    ScenarioSpec(
                        name="backup-takeover-backup-recovers",
                        kind=ScenarioKind.backup_recovers,
                        env_overrides={
                            "PRIVATE_KEY": keys.backup,
                            "REFUEL_PRIVATE_KEY": keys.primary,
                            "PROOF_CONFIG_PRIVATE_KEY": keys.proof_config,
                            "PROVER_AUTHORITY_PRIVATE_KEY": keys.backup,
                            "GAS_SAFETY_BPS": "10000",
                            "GAS_RESERVE": "1",
                            **_groth16_window(config),
                        },
                    ),
                ),
            )
        )

    if not config.skip_negative:
        synthetic = _groth16_window(config)
        synthetic["PROOF_MODE"] = "synthetic"
        del synthetic["GROTH16_PK_PATH"]
        plans.append(
            CheckPlan(
                id="synthetic-negative",
                specs=(
                    ScenarioSpec(
                        name="synthetic-negative",
                        kind=ScenarioKind.synthetic_negative,
                        env_overrides=synthetic,
                    ),
                ),
            )
        )

    if not config.skip_malformed:
        plans.append(
            CheckPlan(
                id="malformed-proof",
                specs=(
                    ScenarioSpec(
                        name="malformed-proof",
                        kind=ScenarioKind.malformed_proof,
                        env_overrides={**_groth16_window(config), "PROOF_TAMPER_MODE": "truncate"},
                    ),
                ),
            )
        )

    if not config.skip_timeout:
        drill_minutes = str(min(config.timeout_minutes, TIMEOUT_DRILL_MAX_MINUTES))
        plans.append(
            CheckPlan(
                id="timeout-drill",
                policy="first-pass",
                specs=tuple(
                    ScenarioSpec(
                        name=f"timeout-drill-b{batch}",
                        kind=ScenarioKind.timeout_drill,
                        env_overrides={
                            "PROOF_MODE": "groth16",
                            "PROOF_CIRCUIT_ID": SHIELDED_CIRCUIT_ID,
                            "GROTH16_PK_PATH": str(config.pk_path),
                            "BATCH_SIZES": str(batch),
                            "WINDOWS_PER_SIZE": "1",
                            "BATCH_WINDOW_MS": "1",
                            "PROOF_DEADLINE_MS": "1",
                            "PROOF_SUBMIT_DELAY_MS": "1500",
                            "TIMEOUT_MINUTES": drill_minutes,
                        },
                    )
                    for batch in config.timeout_batches
                ),
            )
        )

    return plans
