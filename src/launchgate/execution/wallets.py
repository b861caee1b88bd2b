"""Signer key setup: backup key generation and prefund runs.

Setup steps are fatal: a failed key generation or prefund aborts the
run with SetupStepFailure.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping

from launchgate.errors import SetupStepFailure
from launchgate.execution.docker import shell_command, toolchain_run_args
from launchgate.execution.process import CommandExecutor, run_command
from launchgate.models.config import RunConfiguration, RunnerMode
from launchgate.models.result import ExecutionResult
from launchgate.models.scenario import ScenarioSpec, SignerKeys, prefund_spec

logger = logging.getLogger(__name__)

KEYGEN_PACKAGE = "./cmd/veilvm-keygen"
KEYGEN_TIMEOUT = 5 * 60.0

_KEYGEN_KEY_RE = re.compile(r"Private Key \(hex\):\s*([0-9a-fA-F]{128})")


def short_key(value: str) -> str:
    """Abbreviated form for console output: first 10 and last 8 characters."""
    if len(value) <= 20:
        return value
    return f"{value[:10]}...{value[-8:]}"


def extract_keygen_key(text: str) -> str:
    """Pull the generated private key out of keygen output, lower-cased ('' if absent)."""
    match = _KEYGEN_KEY_RE.search(text or "")
    return match.group(1).lower() if match else ""


def generate_backup_key(
    config: RunConfiguration,
    environ: Mapping[str, str] | None = None,
    executor: CommandExecutor = run_command,
) -> str:
    """Run the keygen tool (in the runner image or locally) and parse its key.

    Raises:
        SetupStepFailure: If keygen fails or prints no parseable key.
    """
    if config.runner is RunnerMode.docker:
        label = "keygen"
        argv = [
            config.docker_bin,
            *toolchain_run_args(config),
            config.docker_image,
            *shell_command(f"go run {KEYGEN_PACKAGE} 2>&1"),
        ]
    else:
        label = f"go run {KEYGEN_PACKAGE}"
        argv = ["go", "run", KEYGEN_PACKAGE]

    result = executor(argv, cwd=config.project_root, env=environ, timeout=KEYGEN_TIMEOUT)
    if result.failed:
        raise SetupStepFailure(f"failed to generate backup key\n{result.failure_details(label)}")
    key = extract_keygen_key(result.output)
    if not key:
        raise SetupStepFailure("failed to parse backup key from keygen output")
    return key


def resolve_signer_keys(
    config: RunConfiguration,
    generate: Callable[[], str],
) -> SignerKeys:
    """Assemble the key set for the battery.

    The backup key is only needed for the takeover drill; when not
    configured it is produced by generate().

    Raises:
        SetupStepFailure: If the backup key equals the primary key.
    """
    backup = ""
    if not config.skip_backup_takeover:
        if config.backup_private_key:
            backup = config.backup_private_key
        else:
            logger.info("Generating backup private key for takeover drill...")
            backup = generate()
            logger.info("Backup key generated: %s", short_key(backup))
        if backup == config.private_key:
            raise SetupStepFailure("backup private key must differ from primary private key")

    return SignerKeys(
        primary=config.private_key,
        proof_config=config.proof_config_private_key,
        backup=backup,
        faucet=config.faucet_private_key,
    )


def plan_prefunds(config: RunConfiguration, keys: SignerKeys) -> list[ScenarioSpec]:
    """Prefund runs to perform before the battery, in order.

    The primary is topped up from the faucet when a distinct faucet key
    is configured. The backup is topped up (from the faucet, else the
    primary) whenever the takeover drill runs and prefunding is enabled.

    Raises:
        SetupStepFailure: If the backup prefund source is the backup key itself.
    """
    specs: list[ScenarioSpec] = []
    if keys.faucet and keys.faucet != keys.primary:
        specs.append(prefund_spec("prefund-primary", keys.primary, keys.faucet, config.prefund_amount))

    if not config.skip_backup_takeover and not config.skip_prefund_backup:
        source = keys.faucet or keys.primary
        if source == keys.backup:
            raise SetupStepFailure("backup prefund source key must differ from backup private key")
        specs.append(prefund_spec("prefund-backup", keys.backup, source, config.prefund_amount))
    return specs


def ensure_setup_success(label: str, run: ExecutionResult) -> None:
    """Raise SetupStepFailure unless a setup run exited 0."""
    if run.exit_code == 0:
        return
    raise SetupStepFailure(
        f"{label} failed (exit={run.exit_code}). stderr: {run.stderr_log}\n{run.error_snippet or ''}".rstrip()
    )
