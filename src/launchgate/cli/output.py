"""Rich terminal output layer for evidence runs.

Provides the preflight summary, per-attempt progress lines, the
headline verdict table, the per-attempt checks table, and JSON output
for EvidenceBundle display in terminal and CI.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.table import Table

from launchgate.execution.wallets import short_key

if TYPE_CHECKING:
    from launchgate.execution.harness import Preflight
    from launchgate.models.config import RunConfiguration
    from launchgate.models.result import Attempt, EvidenceBundle
    from launchgate.models.scenario import ScenarioSpec


# Verdict styling map: verdict value -> (symbol, Rich markup style)
_VERDICT_STYLES: dict[str, tuple[str, str]] = {
    "PASS": ("✓ PASS", "bold green"),
    "FAIL": ("✗ FAIL", "bold red"),
}


def verdict_markup(passed: bool) -> str:
    symbol, style = _VERDICT_STYLES["PASS" if passed else "FAIL"]
    return f"[{style}]{symbol}[/{style}]"


def render_preflight(preflight: Preflight, config: RunConfiguration, console: Console) -> None:
    """Print what readiness and provisioning established.

    Args:
        preflight: Result of EvidenceHarness.preflight().
        config: The resolved run configuration.
        console: Rich Console for output.
    """
    chain_id = preflight.discovery.chain_id
    exec_descriptor = preflight.provision.exec_descriptor

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Node URL", preflight.node_url)
    table.add_row("Chain ID", f"{chain_id} ({short_key(chain_id)})")
    table.add_row("Chain discovery", preflight.discovery.strategy)
    table.add_row("Runner", config.runner.value)
    image = preflight.provision.image
    if image is not None:
        table.add_row("Docker image", f"{config.docker_image} ({'built' if image.built else 'reused'})")
        table.add_row("Docker server", image.server_version or "unknown")
    if exec_descriptor.mode == "binary":
        exec_text = f"prebuilt binary ({exec_descriptor.binary_path})"
        if exec_descriptor.recovered_after_cache_reset:
            exec_text += " [yellow](recovered after cache reset)[/yellow]"
    else:
        exec_text = "go run"
    table.add_row("Benchmark exec", exec_text)
    table.add_row("Bundle dir", str(preflight.store.bundle_dir))

    console.print(table)


def render_attempt(spec: ScenarioSpec, attempt: Attempt, console: Console) -> None:
    """One progress line per evaluated attempt."""
    run = attempt.run
    retry_note = " [yellow](recovered after cache reset)[/yellow]" if run.recovered_after_cache_reset else ""
    console.print(
        f"  {verdict_markup(attempt.evaluation.passed)} {spec.name} "
        f"[dim]({run.duration_ms / 1000:.1f}s)[/dim] {attempt.evaluation.reason}{retry_note}"
    )


def render_headline(bundle: EvidenceBundle, console: Console) -> None:
    """Render a compact headline verdict table for the bundle.

    Args:
        bundle: The EvidenceBundle to display.
        console: Rich Console for output.
    """
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Verdict", verdict_markup(bundle.overall_pass))
    required = [c for c in bundle.checks if c.required]
    passed = sum(1 for c in required if c.passed)
    table.add_row("Checks", f"{passed}/{len(required)} required checks passed")

    failing = [c.id for c in required if not c.passed]
    if failing:
        table.add_row("Failing", ", ".join(failing))

    attempts = sum(len(c.attempts) for c in bundle.checks)
    table.add_row("Attempts", str(attempts))

    recovered = sum(1 for c in bundle.checks for a in c.attempts if a.run.recovered_after_cache_reset)
    if recovered:
        table.add_row("Cache resets", f"{recovered} attempt(s) recovered after cache reset")

    if bundle.setup_runs:
        table.add_row("Setup runs", ", ".join(r.name for r in bundle.setup_runs))

    console.print()
    console.print(table)


def render_checks(bundle: EvidenceBundle, console: Console) -> None:
    """Render one row per attempt, mirroring the bundle.md checks table."""
    table = Table(box=box.SIMPLE_HEAD, show_lines=False)
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Duration (s)", justify="right")
    table.add_column("Accepted", justify="right")
    table.add_column("Rejected", justify="right")
    table.add_column("Missed", justify="right")
    table.add_column("Notes", overflow="fold")

    for check in bundle.checks:
        for attempt in check.attempts:
            run = attempt.run
            counters = run.counters
            table.add_row(
                run.name,
                verdict_markup(attempt.evaluation.passed),
                f"{run.duration_ms / 1000:.1f}",
                str(counters.accepted if counters else 0),
                str(counters.rejected if counters else 0),
                str(counters.missed_deadlines if counters else 0),
                attempt.evaluation.reason,
            )

    console.print(table)


def output_json(bundle: EvidenceBundle) -> None:
    """Write the bundle as JSON to stdout, bypassing Rich."""
    sys.stdout.write(bundle.model_dump_json(indent=2, by_alias=True))
    sys.stdout.write("\n")
    sys.stdout.flush()
