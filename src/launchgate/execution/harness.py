"""EvidenceHarness: sequential orchestration of one evidence run.

Resolve node -> resolve chain -> check proving key -> provision executable
-> resolve keys and prefund -> run the battery check by check -> aggregate
-> write the bundle.

Every step before the battery is fatal on failure (HarnessError). Inside
the battery, scenario failures are recorded and the run continues; only
CacheRecoveryExhausted aborts it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from launchgate import __version__
from launchgate.errors import ConfigurationError, ReadinessError
from launchgate.evaluation.aggregation import overall_verdict, run_check
from launchgate.execution.docker import to_container_path
from launchgate.execution.process import CommandExecutor, run_command
from launchgate.execution.provisioner import Provisioner, ProvisionStatus
from launchgate.execution.scenario_runner import ScenarioRunner
from launchgate.execution.wallets import (
    ensure_setup_success,
    generate_backup_key,
    plan_prefunds,
    resolve_signer_keys,
    short_key,
)
from launchgate.models.config import RunConfiguration, RunnerMode
from launchgate.models.result import (
    Attempt,
    ChainDiscovery,
    CheckRecord,
    EvidenceBundle,
    ExecutionResult,
)
from launchgate.models.scenario import ScenarioSpec, build_battery
from launchgate.node.chain import discover_chain
from launchgate.node.resolver import DEFAULT_HEALTH_DEADLINE, Clock, Sleep, resolve_healthy_node
from launchgate.storage.bundle_store import BundleStore

logger = logging.getLogger(__name__)

AttemptCallback = Callable[[ScenarioSpec, Attempt], None]


async def resolve_target(
    config: RunConfiguration,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    health_deadline: float = DEFAULT_HEALTH_DEADLINE,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> tuple[str, ChainDiscovery]:
    """Find a healthy node and the chain to exercise on it.

    An explicit chain id is used verbatim; otherwise the chain is
    discovered on the resolved node.

    Raises:
        NodeUnreachable: No candidate became healthy.
        ChainNotFound: Discovery found no matching chain.
        RpcError: The chain listing call failed.
    """
    node_url = await resolve_healthy_node(
        config.node_candidates(),
        health_deadline,
        transport=transport,
        clock=clock,
        sleep=sleep,
    )
    if node_url != config.node_url:
        logger.info("Node URL fallback: %s -> %s", config.node_url, node_url)

    if config.chain_id:
        return node_url, ChainDiscovery(chain_id=config.chain_id, strategy="explicit")
    discovery = await discover_chain(node_url, config.vm_ids, transport=transport)
    if not discovery.chain_id:
        raise ReadinessError("failed to resolve chain ID")
    return node_url, discovery


@dataclass
class Preflight:
    """Everything established before any scenario runs."""

    node_url: str
    discovery: ChainDiscovery
    provision: ProvisionStatus
    store: BundleStore
    setup_runs: list[ExecutionResult] = field(default_factory=list)


class EvidenceHarness:
    """Runs the launch-gate battery and produces an EvidenceBundle.

    Args:
        config: Resolved run configuration.
        environ: Base process environment for child processes
            (default: os.environ).
        executor: Command runner shared by provisioning, setup, and
            scenarios (tests inject a fake).
        transport: httpx transport for node calls (tests inject a mock).
        health_deadline: Per-candidate health deadline in seconds.
    """

    def __init__(
        self,
        config: RunConfiguration,
        environ: Mapping[str, str] | None = None,
        executor: CommandExecutor = run_command,
        transport: httpx.AsyncBaseTransport | None = None,
        health_deadline: float = DEFAULT_HEALTH_DEADLINE,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self.environ = dict(environ) if environ is not None else dict(os.environ)
        self.executor = executor
        self.transport = transport
        self.health_deadline = health_deadline
        self.clock = clock
        self.sleep = sleep

    async def preflight(self) -> Preflight:
        """Readiness and provisioning: node, chain, proving key, image, prebuild.

        Raises:
            HarnessError: On any readiness or provisioning failure.
        """
        config = self.config
        node_url, discovery = await resolve_target(
            config,
            transport=self.transport,
            health_deadline=self.health_deadline,
            clock=self.clock,
            sleep=self.sleep,
        )

        if not config.pk_path.exists():
            raise ReadinessError(f"shielded proving key not found: {config.pk_path}")
        if config.runner is RunnerMode.docker:
            try:
                to_container_path(config.pk_path, config.mount_root)
            except ConfigurationError:
                raise ReadinessError(
                    f"shielded proving key is outside the mount root {config.mount_root}: {config.pk_path}"
                ) from None

        store = BundleStore(config.out_dir)
        store.ensure_dirs()

        provision = Provisioner(config, self.environ, self.executor).provision()
        return Preflight(node_url=node_url, discovery=discovery, provision=provision, store=store)

    def base_env(self, preflight: Preflight) -> dict[str, str]:
        """Process environment plus the node, chain, timeout, proving key, and signer settings."""
        config = self.config
        return {
            **self.environ,
            "NODE_URL": preflight.node_url,
            "CHAIN_ID": preflight.discovery.chain_id,
            "GROTH16_PK_PATH": str(config.pk_path),
            "TIMEOUT_MINUTES": str(config.timeout_minutes),
            "PRIVATE_KEY": config.private_key,
            "PROOF_CONFIG_PRIVATE_KEY": config.proof_config_private_key,
        }

    def scenario_runner(self, preflight: Preflight) -> ScenarioRunner:
        return ScenarioRunner(
            self.config,
            preflight.provision.exec_descriptor,
            self.base_env(preflight),
            preflight.store.logs_dir,
            preflight.store.stamp,
            executor=self.executor,
            docker_environ=self.environ,
        )

    def execute(
        self,
        preflight: Preflight,
        on_attempt: AttemptCallback | None = None,
    ) -> EvidenceBundle:
        """Set up keys, run the battery, and write the bundle.

        Args:
            preflight: Result of preflight().
            on_attempt: Optional callback after each evaluated attempt.

        Returns:
            The EvidenceBundle that was written.

        Raises:
            SetupStepFailure: Key generation or a prefund run failed.
            CacheRecoveryExhausted: Cache corruption persisted in a scenario.
        """
        config = self.config
        runner = self.scenario_runner(preflight)

        keys = resolve_signer_keys(
            config, lambda: generate_backup_key(config, self.environ, self.executor)
        )
        for spec in plan_prefunds(config, keys):
            target = spec.env_overrides.get("PRIVATE_KEY", "")
            logger.info("Prefunding %s (%s)...", spec.name, short_key(target))
            run = runner.run(spec)
            preflight.setup_runs.append(run)
            ensure_setup_success(spec.name.replace("-", " "), run)

        checks: list[CheckRecord] = []
        for plan in build_battery(config, keys):
            logger.info("Running check %s (%d scenario(s))", plan.id, len(plan.specs))
            record = run_check(plan, runner.run, on_attempt)
            logger.info("%s: %s", plan.id, "PASS" if record.passed else "FAIL")
            checks.append(record)

        bundle = self.assemble(preflight, checks)
        preflight.store.save(bundle, config.project_root)
        return bundle

    def assemble(self, preflight: Preflight, checks: list[CheckRecord]) -> EvidenceBundle:
        config = self.config
        docker = config.runner is RunnerMode.docker
        image = preflight.provision.image
        return EvidenceBundle(
            generated_at=datetime.now(timezone.utc),
            harness_version=__version__,
            node_url=preflight.node_url,
            chain_id=preflight.discovery.chain_id,
            chain_discovery_strategy=preflight.discovery.strategy,
            runner=config.runner.value,
            docker_image=config.docker_image if docker else "",
            docker_server_version=image.server_version if image else "",
            docker_image_built=image.built if image else False,
            zkbench_exec=preflight.provision.exec_descriptor,
            pk_path=str(config.pk_path),
            discovered_chains=preflight.discovery.discovered,
            setup_runs=preflight.setup_runs,
            checks=checks,
            overall_pass=overall_verdict(checks),
        )
