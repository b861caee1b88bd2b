"""ScenarioRunner: execute one benchmark scenario and capture its evidence.

Merges the scenario's environment overrides onto the base environment,
launches the benchmark (in the runner image or directly), writes
per-case stdout/stderr logs, and loads the summary artifact. In docker
mode a cache-corruption failure gets exactly one module-cache reset and
re-run; no other failure is retried.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path

from launchgate.evaluation.classifier import is_cache_corruption
from launchgate.execution.docker import (
    docker_reachable_url,
    shell_command,
    to_container_path,
    toolchain_run_args,
)
from launchgate.execution.process import CommandExecutor, CommandResult, run_command
from launchgate.execution.provisioner import BENCH_PACKAGE
from launchgate.execution.recovery import AttemptOutcome, reset_module_cache, run_with_cache_recovery
from launchgate.models.config import RunConfiguration, RunnerMode
from launchgate.models.result import ExecDescriptor, ExecutionResult
from launchgate.models.scenario import ScenarioSpec

logger = logging.getLogger(__name__)

ERROR_SNIPPET_LINES = 80
SUMMARY_FILE = "summary.json"
# Grace on top of the benchmark's own TIMEOUT_MINUTES before the supervisor kills it
SUPERVISOR_GRACE_SECONDS = 120

# Always passed to the container, even when empty
REQUIRED_CONTAINER_ENV = (
    "NODE_URL",
    "CHAIN_ID",
    "PROOF_MODE",
    "PROOF_CIRCUIT_ID",
    "BATCH_SIZES",
    "WINDOWS_PER_SIZE",
    "BATCH_WINDOW_MS",
    "PROOF_DEADLINE_MS",
    "TIMEOUT_MINUTES",
    "OUTPUT_DIR",
)
# Passed only when set to a non-empty value
OPTIONAL_CONTAINER_ENV = (
    "GROTH16_PK_PATH",
    "PRIVATE_KEY",
    "REFUEL_PRIVATE_KEY",
    "PROVER_AUTHORITY_PRIVATE_KEY",
    "PROOF_CONFIG_PRIVATE_KEY",
    "PROOF_TAMPER_MODE",
    "GROTH16_CCS_CACHE_PATH",
    "STRICT_FEE_PREFLIGHT",
    "GAS_SAFETY_BPS",
    "GAS_RESERVE",
    "REFUEL_AMOUNT",
    "PROOF_SUBMIT_DELAY_MS",
    "PREFUND_ONLY",
)


def error_snippet(stdout: str, stderr: str, max_lines: int = ERROR_SNIPPET_LINES) -> str:
    """Trailing lines of combined output, used for pattern matching on failure."""
    lines = "\n".join([stdout, stderr]).splitlines()
    return "\n".join(lines[-max_lines:])


def load_summary(path: Path) -> dict | None:
    """Parse a summary artifact; absent or unreadable files yield None."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("unreadable summary %s: %s", path, exc)
        return None
    return data if isinstance(data, dict) else None


class ScenarioRunner:
    """Runs ScenarioSpecs against the benchmark executable.

    Args:
        config: Resolved run configuration.
        exec_descriptor: How to launch the benchmark (from provisioning).
        base_env: Base environment for the benchmark (process env plus
            node, chain, timeout, and signer settings).
        logs_dir: Directory for per-case stdout/stderr logs.
        bundle_stamp: Timestamp used to name per-case output directories.
        executor: Command runner (tests inject a fake).
        docker_environ: Environment for the docker CLI itself.
    """

    def __init__(
        self,
        config: RunConfiguration,
        exec_descriptor: ExecDescriptor,
        base_env: Mapping[str, str],
        logs_dir: Path,
        bundle_stamp: str,
        executor: CommandExecutor = run_command,
        docker_environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._exec = exec_descriptor
        self._base_env = dict(base_env)
        self._logs_dir = logs_dir
        self._stamp = bundle_stamp
        self._executor = executor
        self._docker_environ = dict(docker_environ) if docker_environ is not None else None

    def output_dir_for(self, case_name: str) -> str:
        return f"./zkbench-out-evidence-{self._stamp}-{case_name}"

    def build_env(self, spec: ScenarioSpec) -> dict[str, str]:
        """Base environment with the scenario's overrides and its output directory."""
        return {
            **self._base_env,
            **spec.env_overrides,
            "OUTPUT_DIR": self.output_dir_for(spec.name),
        }

    def supervisor_timeout(self, run_env: Mapping[str, str]) -> float:
        try:
            minutes = int(run_env.get("TIMEOUT_MINUTES", self._config.timeout_minutes))
        except ValueError:
            minutes = self._config.timeout_minutes
        return minutes * 60.0 + SUPERVISOR_GRACE_SECONDS

    def docker_argv(self, run_env: Mapping[str, str]) -> list[str]:
        """Full `docker run` argv for one benchmark invocation."""
        config = self._config
        env = dict(run_env)
        env["NODE_URL"] = docker_reachable_url(env.get("NODE_URL", ""))
        if env.get("GROTH16_PK_PATH"):
            env["GROTH16_PK_PATH"] = to_container_path(config.pk_path, config.mount_root)

        pairs = {key: env.get(key, "") for key in REQUIRED_CONTAINER_ENV}
        pairs.update({key: env[key] for key in OPTIONAL_CONTAINER_ENV if env.get(key)})

        if self._exec.mode == "binary" and self._exec.binary_path:
            command = [self._exec.binary_path]
        else:
            command = shell_command(f"go run {BENCH_PACKAGE}")
        return [config.docker_bin, *toolchain_run_args(config, pairs), config.docker_image, *command]

    def _execute_once(self, run_env: dict[str, str]) -> CommandResult:
        config = self._config
        timeout = self.supervisor_timeout(run_env)
        if config.runner is RunnerMode.docker:
            return self._executor(
                self.docker_argv(run_env),
                cwd=config.project_root,
                env=self._docker_environ,
                timeout=timeout,
            )
        if self._exec.mode == "binary" and self._exec.binary_path:
            argv = [self._exec.binary_path]
        else:
            argv = ["go", "run", BENCH_PACKAGE]
        return self._executor(argv, cwd=config.project_root, env=run_env, timeout=timeout)

    def _classify(self, result: CommandResult) -> AttemptOutcome:
        if not result.failed:
            return AttemptOutcome.success
        if self._config.runner is RunnerMode.docker and is_cache_corruption(
            error_snippet(result.stdout, result.stderr)
        ):
            return AttemptOutcome.retryable
        return AttemptOutcome.terminal

    def run(self, spec: ScenarioSpec) -> ExecutionResult:
        """Execute spec and return its ExecutionResult.

        Raises:
            CacheRecoveryExhausted: If cache corruption recurs after the
                one-shot module-cache reset.
        """
        run_env = self.build_env(spec)
        output_dir = run_env["OUTPUT_DIR"]
        self._logs_dir.mkdir(parents=True, exist_ok=True)
        stdout_log = self._logs_dir / f"{spec.name}.stdout.log"
        stderr_log = self._logs_dir / f"{spec.name}.stderr.log"

        logger.info("Running %s...", spec.name)
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        def attempt() -> CommandResult:
            result = self._execute_once(run_env)
            # Each attempt overwrites the logs so they always match the recorded result
            stdout_log.write_text(result.stdout, encoding="utf-8")
            stderr_log.write_text(result.stderr, encoding="utf-8")
            return result

        outcome = run_with_cache_recovery(
            attempt,
            self._classify,
            lambda: reset_module_cache(self._config.go_mod_cache_dir),
            label=spec.name,
        )
        child = outcome.result

        summary_path = (self._config.project_root / output_dir / SUMMARY_FILE).resolve()
        summary = load_summary(summary_path)
        ended_at = datetime.now(timezone.utc)

        result = ExecutionResult(
            name=spec.name,
            started_at=started_at,
            ended_at=ended_at,
            duration_ms=int((time.perf_counter() - start) * 1000),
            exit_code=child.exit_code,
            signal=child.signal,
            timed_out=child.timed_out,
            output_dir=output_dir,
            summary_path=str(summary_path) if summary_path.exists() else "",
            summary=summary,
            retries=outcome.retries,
            recovered_after_cache_reset=outcome.recovered,
            stdout_log=str(stdout_log),
            stderr_log=str(stderr_log),
            error_snippet=(
                error_snippet(child.stdout, child.stderr + (f"\n{child.error}" if child.error else ""))
                if child.exit_code != 0
                else None
            ),
        )
        logger.info("%s finished: exit=%d in %.1fs", spec.name, result.exit_code, result.duration_ms / 1000)
        return result
