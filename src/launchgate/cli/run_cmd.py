"""launchgate run -- execute the evidence battery and write a bundle.

Resolves the run configuration, performs preflight (node, chain,
proving key, image, prebuild), runs the scenario battery, renders Rich
verdict output, and exits 0 only when every required check passed.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from launchgate.cli.output import (
    output_json,
    render_attempt,
    render_checks,
    render_headline,
    render_preflight,
    verdict_markup,
)
from launchgate.errors import HarnessError
from launchgate.execution.harness import EvidenceHarness
from launchgate.models.config import resolve_run_configuration

console = Console(stderr=True)

PREFLIGHT_PASS = "Preflight: PASS (node, chain, proving key, docker/image, benchmark prebuild)"


def configure_logging(verbose: bool) -> None:
    """Route launchgate loggers to stderr through Rich."""
    handler = RichHandler(console=console, show_path=False, markup=False)
    logger = logging.getLogger("launchgate")
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def run(
    node_url: Optional[str] = typer.Option(None, "--node-url", help="Node endpoint to probe"),
    chain_id: Optional[str] = typer.Option(None, "--chain-id", help="Target chain id (default: discovered)"),
    pk_path: Optional[str] = typer.Option(None, "--pk-path", help="Shielded Groth16 proving key"),
    out_dir: Optional[str] = typer.Option(None, "--out-dir", help="Output root for evidence bundles"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Batch size for nominal checks"),
    windows_per_size: Optional[int] = typer.Option(None, "--windows-per-size", help="Windows per batch size"),
    timeout_minutes: Optional[int] = typer.Option(None, "--timeout-minutes", help="Benchmark timeout in minutes"),
    timeout_batches: Optional[str] = typer.Option(None, "--timeout-batches", help="Comma-separated timeout drill batch sizes"),
    private_key: Optional[str] = typer.Option(None, "--private-key", help="Primary signer key (128 hex chars)"),
    faucet_private_key: Optional[str] = typer.Option(None, "--faucet-private-key", help="Faucet key used to prefund run wallets"),
    backup_private_key: Optional[str] = typer.Option(None, "--backup-private-key", help="Backup prover key (default: generated)"),
    proof_config_private_key: Optional[str] = typer.Option(None, "--proof-config-private-key", help="Proof-config signer key"),
    prefund_amount: Optional[int] = typer.Option(None, "--prefund-amount", help="Prefund transfer amount"),
    skip_prefund_backup: bool = typer.Option(False, "--skip-prefund-backup", help="Skip backup wallet prefund step"),
    runner: Optional[str] = typer.Option(None, "--runner", help="docker or local"),
    docker_image: Optional[str] = typer.Option(None, "--docker-image", help="Benchmark runner image tag"),
    dockerfile: Optional[str] = typer.Option(None, "--dockerfile", help="Dockerfile for the runner image"),
    skip_image_build: bool = typer.Option(False, "--skip-image-build", help="Fail instead of building a missing image"),
    skip_prebuild: bool = typer.Option(False, "--skip-prebuild", help="Use `go run` instead of a prebuilt binary"),
    skip_negative: bool = typer.Option(False, "--skip-negative", help="Skip the synthetic-negative check"),
    skip_malformed: bool = typer.Option(False, "--skip-malformed", help="Skip the malformed-proof check"),
    skip_backup_takeover: bool = typer.Option(False, "--skip-backup-takeover", help="Skip the backup-takeover check"),
    skip_timeout: bool = typer.Option(False, "--skip-timeout", help="Skip the timeout drill"),
    preflight_only: bool = typer.Option(False, "--preflight-only", help="Stop after readiness and provisioning"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Benchmark project root"),
    mount_root: Optional[str] = typer.Option(None, "--mount-root", help="Directory mounted into the runner container"),
    format_json: bool = typer.Option(False, "--json", help="Output the bundle as JSON to stdout"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Debug logging and detail tables even on pass"),
) -> None:
    """Run the launch-gate evidence battery against a live node."""
    configure_logging(verbose)

    # Boolean flags only count when given; absent flags defer to env and launchgate.yaml
    flags = {
        "node_url": node_url,
        "chain_id": chain_id,
        "pk_path": pk_path,
        "out_dir": out_dir,
        "batch_size": batch_size,
        "windows_per_size": windows_per_size,
        "timeout_minutes": timeout_minutes,
        "timeout_batches": timeout_batches,
        "private_key": private_key,
        "faucet_private_key": faucet_private_key,
        "backup_private_key": backup_private_key,
        "proof_config_private_key": proof_config_private_key,
        "prefund_amount": prefund_amount,
        "skip_prefund_backup": skip_prefund_backup or None,
        "runner": runner,
        "docker_image": docker_image,
        "dockerfile": dockerfile,
        "skip_image_build": skip_image_build or None,
        "skip_prebuild": skip_prebuild or None,
        "skip_negative": skip_negative or None,
        "skip_malformed": skip_malformed or None,
        "skip_backup_takeover": skip_backup_takeover or None,
        "skip_timeout": skip_timeout or None,
        "preflight_only": preflight_only,
        "project_root": project_root,
        "mount_root": mount_root,
    }

    output_console = Console()
    try:
        config = resolve_run_configuration(flags, os.environ)
        harness = EvidenceHarness(config)
        preflight = asyncio.run(harness.preflight())
        render_preflight(preflight, config, console)

        if config.preflight_only:
            console.print(PREFLIGHT_PASS)
            raise typer.Exit(code=0)

        bundle = harness.execute(
            preflight,
            on_attempt=lambda spec, attempt: render_attempt(spec, attempt, console),
        )
    except HarnessError as exc:
        console.print(f"[bold red]EVIDENCE BUNDLE FAILED:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    if format_json:
        output_json(bundle)
    else:
        render_headline(bundle, output_console)
        if not bundle.overall_pass or verbose:
            render_checks(bundle, output_console)
        output_console.print(f"Bundle JSON: {preflight.store.json_path}")
        output_console.print(f"Bundle MD:   {preflight.store.md_path}")
        output_console.print(f"Verdict:     {verdict_markup(bundle.overall_pass)}")

    if not bundle.overall_pass:
        raise typer.Exit(code=1)
