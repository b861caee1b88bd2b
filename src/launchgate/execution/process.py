"""Subprocess supervisor for toolchain, container, and benchmark commands.

Commands run to completion with captured output and an optional hard
timeout, after which the child is killed. Results are plain dataclasses
(not Pydantic) since they never leave the process unconverted.
"""

from __future__ import annotations

import logging
import signal as signal_module
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one supervised command.

    returncode is None when the command could not be started or was
    killed on timeout; negative values mean the child died on a signal.
    """

    argv: list[str]
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    error: str = ""
    timed_out: bool = False

    @property
    def failed(self) -> bool:
        return bool(self.error) or self.returncode != 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, trimmed."""
        return f"{self.stdout}\n{self.stderr}".strip()

    @property
    def exit_code(self) -> int:
        """Exit status for records: -1 when not started, killed, or signalled."""
        if self.returncode is None or self.returncode < 0:
            return -1
        return self.returncode

    @property
    def signal(self) -> str:
        if self.timed_out:
            return "SIGKILL"
        if self.returncode is not None and self.returncode < 0:
            try:
                return signal_module.Signals(-self.returncode).name
            except ValueError:
                return f"SIG{-self.returncode}"
        return ""

    def failure_details(self, label: str) -> str:
        if self.error:
            return f"{label}: {self.error}"
        return f"{label}: exit {self.exit_code}\n{self.output}"


CommandExecutor = Callable[..., CommandResult]


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def run_command(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run argv to completion, capturing output.

    Args:
        argv: Command and arguments.
        cwd: Working directory.
        env: Full environment for the child (None inherits the parent's).
        timeout: Hard timeout in seconds; the child is killed on expiry.

    Returns:
        CommandResult; never raises for non-zero exits, missing
        executables, or timeouts.
    """
    args = [str(a) for a in argv]
    logger.debug("exec %s (cwd=%s, timeout=%s)", " ".join(args), cwd, timeout)
    try:
        completed = subprocess.run(
            args,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        logger.warning("command timed out after %ss: %s", timeout, args[0])
        return CommandResult(
            argv=args,
            returncode=None,
            stdout=_text(exc.stdout),
            stderr=_text(exc.stderr),
            error=f"timed out after {timeout:g}s",
            timed_out=True,
        )
    except OSError as exc:
        return CommandResult(argv=args, returncode=None, error=str(exc))

    return CommandResult(
        argv=args,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
