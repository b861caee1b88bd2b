"""launchgate report -- display a stored evidence bundle.

Shows the newest bundle under the output root by default, or the one
at BUNDLE_DIR. Supports a failures-only view of the checks table.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from launchgate.cli.output import output_json, render_checks, render_headline, verdict_markup
from launchgate.errors import HarnessError
from launchgate.models.config import resolve_run_configuration
from launchgate.models.result import EvidenceBundle
from launchgate.storage.bundle_store import latest_bundle_dir, load_bundle


def _failures_only(bundle: EvidenceBundle) -> EvidenceBundle:
    checks = []
    for check in bundle.checks:
        failed = [a for a in check.attempts if not a.evaluation.passed]
        if failed:
            checks.append(check.model_copy(update={"attempts": failed}))
    return bundle.model_copy(update={"checks": checks})


def report(
    bundle_dir: Optional[str] = typer.Argument(None, help="Bundle directory to display (default: latest)"),
    out_dir: Optional[str] = typer.Option(None, "--out-dir", help="Output root to search for bundles"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Benchmark project root"),
    failures_only: bool = typer.Option(False, "--failures", help="Show only failed attempts"),
    format_json: bool = typer.Option(False, "--json", help="Output the bundle as JSON to stdout"),
) -> None:
    """Display a stored evidence bundle."""
    console = Console()

    if bundle_dir is not None:
        target = Path(bundle_dir)
    else:
        try:
            config = resolve_run_configuration(
                {"out_dir": out_dir, "project_root": project_root}, os.environ
            )
        except HarnessError as exc:
            console.print(f"[bold red]Configuration error:[/bold red] {exc}")
            raise typer.Exit(code=1)
        found = latest_bundle_dir(config.out_dir)
        if found is None:
            console.print(f"[dim]No bundles found under {config.out_dir}. Run 'launchgate run' first.[/dim]")
            raise typer.Exit(code=0)
        target = found

    try:
        bundle = load_bundle(target)
    except FileNotFoundError:
        console.print(f"Bundle '{target}' not found.")
        raise typer.Exit(code=1)
    except ValidationError as exc:
        console.print(f"[bold red]Invalid bundle:[/bold red] {target}: {exc.error_count()} error(s)")
        raise typer.Exit(code=1)

    if format_json:
        output_json(bundle)
        return

    console.print()
    console.print(f"[bold]Bundle:[/bold] {target}")
    console.print(f"[bold]Generated:[/bold] {bundle.generated_at.isoformat()}")
    console.print(f"[bold]Node:[/bold] {bundle.node_url}  [bold]Chain:[/bold] {bundle.chain_id}")
    console.print(f"[bold]Verdict:[/bold] {verdict_markup(bundle.overall_pass)}")

    render_headline(bundle, console)
    shown = _failures_only(bundle) if failures_only else bundle
    if shown.checks:
        render_checks(shown, console)
    else:
        console.print("[dim]No failed attempts.[/dim]")
