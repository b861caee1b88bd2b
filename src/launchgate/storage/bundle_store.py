"""Evidence bundle storage: bundle directory layout, JSON and Markdown output.

Each harness invocation gets its own timestamped directory under the
output root:

    <out_dir>/
        <YYYYMMDD-HHMMSS>-launch-gate-evidence/
            bundle.json      # Machine-readable EvidenceBundle
            bundle.md        # Human-readable summary
            logs/            # <case>.stdout.log / <case>.stderr.log

bundle.json is written once, atomically (write to .tmp, then rename).
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from launchgate.models.result import Attempt, EvidenceBundle

BUNDLE_SUFFIX = "-launch-gate-evidence"
BUNDLE_JSON = "bundle.json"
BUNDLE_MD = "bundle.md"

MARKDOWN_TITLE = "# VEIL Launch-Gate Evidence Bundle"
CHECKS_HEADER = "| Check | Status | Duration (s) | Accepted | Rejected | Missed | Output Dir | Notes |"
CHECKS_ALIGN = "|---|---|---:|---:|---:|---:|---|---|"


def bundle_stamp(now: datetime | None = None) -> str:
    """Compact UTC timestamp used for bundle and per-case output names."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y%m%d-%H%M%S")


def _relative(path: str, root: Path) -> str:
    if not path:
        return ""
    rel = os.path.relpath(path, root)
    return rel or "."


def _attempt_row(attempt: Attempt) -> str:
    run, evaluation = attempt.run, attempt.evaluation
    counters = run.counters
    accepted = counters.accepted if counters else 0
    rejected = counters.rejected if counters else 0
    missed = counters.missed_deadlines if counters else 0
    status = "PASS" if evaluation.passed else "FAIL"
    return (
        f"| {run.name} | {status} | {run.duration_ms / 1000:.1f} | {accepted} | {rejected} "
        f"| {missed} | `{run.output_dir}` | {evaluation.reason} |"
    )


def render_markdown(bundle: EvidenceBundle, project_root: Path) -> str:
    """Render the human-readable bundle summary.

    One table row per attempt (so multi-attempt checks show every
    attempt), followed by an artifact index with paths relative to
    project_root.
    """
    lines = [
        MARKDOWN_TITLE,
        "",
        f"- Generated: {bundle.generated_at.isoformat()}",
        f"- Node URL: `{bundle.node_url}`",
        f"- Chain ID: `{bundle.chain_id}`",
        f"- Verdict: **{'PASS' if bundle.overall_pass else 'FAIL'}**",
        "",
        "## Checks",
        "",
        CHECKS_HEADER,
        CHECKS_ALIGN,
    ]
    for check in bundle.checks:
        for attempt in check.attempts:
            lines.append(_attempt_row(attempt))

    lines.extend(["", "## Artifacts", ""])
    for check in bundle.checks:
        for attempt in check.attempts:
            run = attempt.run
            lines.append(f"- {run.name}")
            lines.append(f"  - summary: `{_relative(run.summary_path, project_root)}`")
            lines.append(f"  - stdout: `{_relative(run.stdout_log, project_root)}`")
            lines.append(f"  - stderr: `{_relative(run.stderr_log, project_root)}`")
    lines.append("")
    return "\n".join(lines) + "\n"


class BundleStore:
    """Owns one evidence bundle directory and writes its artifacts.

    Args:
        out_dir: Output root holding all bundles.
        stamp: Timestamp for this bundle (default: now, UTC).
    """

    def __init__(self, out_dir: Path, stamp: str | None = None) -> None:
        self.out_dir = out_dir
        self.stamp = stamp or bundle_stamp()
        self.bundle_dir = out_dir / f"{self.stamp}{BUNDLE_SUFFIX}"
        self.logs_dir = self.bundle_dir / "logs"
        self.json_path = self.bundle_dir / BUNDLE_JSON
        self.md_path = self.bundle_dir / BUNDLE_MD

    def ensure_dirs(self) -> None:
        """Create the bundle directory and its logs/ subdirectory."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def save(self, bundle: EvidenceBundle, project_root: Path) -> tuple[Path, Path]:
        """Write bundle.json (atomically) and bundle.md.

        Returns:
            (json_path, md_path)
        """
        self.ensure_dirs()

        data = bundle.model_dump(mode="json", by_alias=True)
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

        # Atomic write: write to .tmp then rename
        tmp_file = self.bundle_dir / f"{BUNDLE_JSON}.tmp"
        tmp_file.write_text(content, encoding="utf-8")
        tmp_file.replace(self.json_path)

        self.md_path.write_text(render_markdown(bundle, project_root), encoding="utf-8")
        return self.json_path, self.md_path


def load_bundle(bundle_dir: Path) -> EvidenceBundle:
    """Load an EvidenceBundle from a bundle directory or a bundle.json path.

    Raises:
        FileNotFoundError: If no bundle.json exists there.
    """
    path = bundle_dir if bundle_dir.suffix == ".json" else bundle_dir / BUNDLE_JSON
    return EvidenceBundle.model_validate_json(path.read_text(encoding="utf-8"))


def latest_bundle_dir(out_dir: Path) -> Path | None:
    """Newest bundle directory under out_dir (stamps sort chronologically)."""
    if not out_dir.exists():
        return None
    candidates = sorted(
        p for p in out_dir.glob(f"*{BUNDLE_SUFFIX}") if (p / BUNDLE_JSON).exists()
    )
    return candidates[-1] if candidates else None
