"""Executable Provisioner: make the benchmark executable available.

In docker mode the container runtime is probed, the runner image is
reused or built, and the benchmark is compiled inside the image. In
local mode the benchmark is compiled with the host toolchain. Either
way the result is an ExecDescriptor consumed by the Scenario Runner.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass

from launchgate.errors import ProvisioningError, ReadinessError
from launchgate.evaluation.classifier import is_cache_corruption
from launchgate.execution.docker import shell_command, to_container_path, toolchain_run_args
from launchgate.execution.process import CommandExecutor, CommandResult, run_command
from launchgate.execution.recovery import AttemptOutcome, reset_module_cache, run_with_cache_recovery
from launchgate.models.config import RunConfiguration, RunnerMode
from launchgate.models.result import ExecDescriptor

logger = logging.getLogger(__name__)

BENCH_PACKAGE = "./cmd/veilvm-zkbench"
DOCKER_BINARY_NAME = "veilvm-zkbench-linux-amd64"
LOCAL_BINARY_NAME = "veilvm-zkbench.exe" if sys.platform == "win32" else "veilvm-zkbench"

DOCKER_PROBE_TIMEOUT = 30.0
IMAGE_BUILD_TIMEOUT = 30 * 60.0
PREBUILD_TIMEOUT = 20 * 60.0


@dataclass
class ImageStatus:
    """Result of the container readiness step."""

    built: bool
    server_version: str


@dataclass
class ProvisionStatus:
    """Everything provisioning learned, for the console and the bundle."""

    exec_descriptor: ExecDescriptor
    image: ImageStatus | None = None


def classify_build(result: CommandResult) -> AttemptOutcome:
    """Success on exit 0; retryable when the output shows cache corruption."""
    if not result.failed:
        return AttemptOutcome.success
    if is_cache_corruption(result.output):
        return AttemptOutcome.retryable
    return AttemptOutcome.terminal


class Provisioner:
    """Prepares the container image and the benchmark executable.

    Args:
        config: Resolved run configuration.
        environ: Environment passed to docker/go invocations.
        executor: Command runner (tests inject a fake).
    """

    def __init__(
        self,
        config: RunConfiguration,
        environ: Mapping[str, str] | None = None,
        executor: CommandExecutor = run_command,
    ) -> None:
        self._config = config
        self._environ = dict(environ) if environ is not None else None
        self._executor = executor

    def _docker(self, args: list[str], timeout: float | None) -> CommandResult:
        return self._executor(
            [self._config.docker_bin, *args],
            cwd=self._config.project_root,
            env=self._environ,
            timeout=timeout,
        )

    def ensure_docker_image(self) -> ImageStatus:
        """Verify the daemon is reachable and the runner image exists, building it if needed.

        Raises:
            ReadinessError: Daemon unreachable, image missing with building
                disabled, or build file missing.
            ProvisioningError: The image build failed.
        """
        config = self._config
        probe = self._docker(["version", "--format", "{{.Server.Version}}"], DOCKER_PROBE_TIMEOUT)
        if probe.failed:
            raise ReadinessError(
                "docker daemon not reachable; start the Docker daemon and retry\n"
                + probe.failure_details("docker version")
            )
        server_version = probe.stdout.strip()

        inspect = self._docker(["image", "inspect", config.docker_image], DOCKER_PROBE_TIMEOUT)
        if not inspect.failed:
            logger.info("Docker image %s found (reused)", config.docker_image)
            return ImageStatus(built=False, server_version=server_version)

        if config.skip_image_build:
            raise ReadinessError(
                f"docker image not found and --skip-image-build was set: {config.docker_image}"
            )
        if not config.dockerfile.exists():
            raise ReadinessError(f"dockerfile not found: {config.dockerfile}")

        logger.info("Building docker image %s from %s", config.docker_image, config.dockerfile)
        build = self._docker(
            ["build", "-f", str(config.dockerfile), "-t", config.docker_image, str(config.dockerfile.parent)],
            IMAGE_BUILD_TIMEOUT,
        )
        if build.failed:
            raise ProvisioningError(
                f"docker build failed for {config.docker_image}\n{build.output}"
            )
        return ImageStatus(built=True, server_version=server_version)

    def prebuild(self) -> ExecDescriptor:
        """Compile the benchmark once into the cache bin directory.

        In docker mode a cache-corruption failure triggers one module-cache
        reset and rebuild; a recurrence raises CacheRecoveryExhausted.

        Raises:
            ProvisioningError: The build failed for any other reason.
        """
        config = self._config
        config.bin_dir.mkdir(parents=True, exist_ok=True)

        if config.runner is RunnerMode.docker:
            binary_path = to_container_path(config.bin_dir / DOCKER_BINARY_NAME, config.mount_root)
            container_bin_dir = to_container_path(config.bin_dir, config.mount_root)
            command = shell_command(
                f"mkdir -p {container_bin_dir}",
                f"go build -o {binary_path} {BENCH_PACKAGE}",
            )

            def build_once() -> CommandResult:
                return self._docker(
                    [*toolchain_run_args(config), config.docker_image, *command],
                    PREBUILD_TIMEOUT,
                )

            outcome = run_with_cache_recovery(
                build_once,
                classify_build,
                lambda: reset_module_cache(config.go_mod_cache_dir),
                label="benchmark prebuild",
            )
            if outcome.result.failed:
                raise ProvisioningError(
                    f"failed to prebuild benchmark binary in docker\n{outcome.result.output}"
                )
            return ExecDescriptor(
                mode="binary",
                binary_path=binary_path,
                recovered_after_cache_reset=outcome.recovered,
            )

        local_path = config.bin_dir / LOCAL_BINARY_NAME
        result = self._executor(
            ["go", "build", "-o", str(local_path), BENCH_PACKAGE],
            cwd=config.project_root,
            env=self._environ,
            timeout=PREBUILD_TIMEOUT,
        )
        if result.failed:
            raise ProvisioningError(
                f"failed to prebuild benchmark binary locally\n{result.failure_details('go build')}"
            )
        return ExecDescriptor(mode="binary", binary_path=str(local_path))

    def provision(self) -> ProvisionStatus:
        """Run the container readiness step (docker mode) and the optional prebuild."""
        config = self._config
        config.go_mod_cache_dir.mkdir(parents=True, exist_ok=True)
        config.go_build_cache_dir.mkdir(parents=True, exist_ok=True)

        image = self.ensure_docker_image() if config.runner is RunnerMode.docker else None
        if config.skip_prebuild:
            descriptor = ExecDescriptor(mode="go-run")
        else:
            descriptor = self.prebuild()
        return ProvisionStatus(exec_descriptor=descriptor, image=image)
