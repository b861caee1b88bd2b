"""Run configuration model for launchgate.

Resolves flags, environment variables, an optional launchgate.yaml
project file, and built-in defaults into a single immutable
RunConfiguration. This module is the only place that reads the
process environment; every other component receives the resolved
configuration by reference.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from launchgate.errors import ConfigurationError

DEFAULT_NODE_URL = "http://127.0.0.1:9660"
FALLBACK_NODE_URL = "http://127.0.0.1:9650"
DEFAULT_PK_PATH = "./zk-fixture-new/groth16_shielded_ledger_pk.bin"
DEFAULT_DOCKER_IMAGE = "veilvm-zkbench-evidence:local"
DEFAULT_DOCKERFILE = "scripts/zkbench-runner.Dockerfile"
DEFAULT_PREFUND_AMOUNT = 35_000_001
DEFAULT_VM_IDS = ("u9GgvekeunSwK4TPF4jj7xLsW1LKkd1Uv9VQZo2SGfrwkejsK",)
DEFAULT_BENCH_PRIVATE_KEY = (
    "637404e6722a0e55a27fd82dcd29f3f0faa6f13d930f32f759e3b8412c4956ae"
    "ee9d3919f004304c2d44dbc9121f6559fefb9b9c25daec749b0f18f605614461"
)

_PRIVATE_KEY_RE = re.compile(r"^[0-9a-fA-F]{128}$")
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

# Setting name -> environment variable consulted when the flag is absent
ENV_VARS: dict[str, str] = {
    "node_url": "NODE_URL",
    "chain_id": "CHAIN_ID",
    "pk_path": "GROTH16_PK_PATH",
    "out_dir": "VEIL_EVIDENCE_OUT_DIR",
    "batch_size": "VEIL_EVIDENCE_BATCH_SIZE",
    "windows_per_size": "VEIL_EVIDENCE_WINDOWS_PER_SIZE",
    "timeout_minutes": "VEIL_EVIDENCE_TIMEOUT_MINUTES",
    "timeout_batches": "VEIL_EVIDENCE_TIMEOUT_BATCHES",
    "private_key": "PRIVATE_KEY",
    "faucet_private_key": "VEIL_EVIDENCE_FAUCET_PRIVATE_KEY",
    "backup_private_key": "VEIL_EVIDENCE_BACKUP_PRIVATE_KEY",
    "proof_config_private_key": "VEIL_EVIDENCE_PROOF_CONFIG_PRIVATE_KEY",
    "prefund_amount": "VEIL_EVIDENCE_PREFUND_AMOUNT",
    "skip_prefund_backup": "VEIL_EVIDENCE_SKIP_PREFUND_BACKUP",
    "runner": "VEIL_EVIDENCE_RUNNER",
    "docker_image": "VEIL_EVIDENCE_DOCKER_IMAGE",
    "dockerfile": "VEIL_EVIDENCE_DOCKERFILE",
    "docker_bin": "VEIL_EVIDENCE_DOCKER_BIN",
    "skip_image_build": "VEIL_EVIDENCE_SKIP_IMAGE_BUILD",
    "skip_prebuild": "VEIL_EVIDENCE_SKIP_ZKBENCH_PREBUILD",
    "skip_negative": "VEIL_EVIDENCE_SKIP_NEGATIVE",
    "skip_malformed": "VEIL_EVIDENCE_SKIP_MALFORMED",
    "skip_backup_takeover": "VEIL_EVIDENCE_SKIP_BACKUP_TAKEOVER",
    "skip_timeout": "VEIL_EVIDENCE_SKIP_TIMEOUT",
    "vm_ids": "VEIL_EVIDENCE_VM_IDS",
    "project_root": "VEIL_EVIDENCE_PROJECT_ROOT",
    "mount_root": "VEIL_EVIDENCE_MOUNT_ROOT",
}

_INT_FIELDS = ("batch_size", "windows_per_size", "timeout_minutes", "prefund_amount")
_BOOL_FIELDS = (
    "skip_prefund_backup",
    "skip_image_build",
    "skip_prebuild",
    "skip_negative",
    "skip_malformed",
    "skip_backup_takeover",
    "skip_timeout",
)


class RunnerMode(str, Enum):
    """How the benchmark executable is built and launched."""

    docker = "docker"
    local = "local"


class ProjectDefaults(BaseModel):
    """Optional defaults loaded from launchgate.yaml at the project root.

    Sits between environment variables and built-in defaults in the
    precedence chain. Keys mirror the long flag names with underscores.
    """

    model_config = {"extra": "forbid"}

    node_url: str | None = None
    chain_id: str | None = None
    pk_path: str | None = None
    out_dir: str | None = None
    batch_size: int | None = None
    windows_per_size: int | None = None
    timeout_minutes: int | None = None
    timeout_batches: list[int] | str | None = None
    prefund_amount: int | None = None
    runner: str | None = None
    docker_image: str | None = None
    dockerfile: str | None = None
    docker_bin: str | None = None
    vm_ids: list[str] | str | None = None
    mount_root: str | None = None
    skip_prefund_backup: bool | None = None
    skip_image_build: bool | None = None
    skip_prebuild: bool | None = None
    skip_negative: bool | None = None
    skip_malformed: bool | None = None
    skip_backup_takeover: bool | None = None
    skip_timeout: bool | None = None


class RunConfiguration(BaseModel):
    """Resolved settings for one harness invocation. Immutable once built."""

    model_config = {"extra": "forbid", "frozen": True}

    project_root: Path
    mount_root: Path
    node_url: str = DEFAULT_NODE_URL
    node_url_explicit: bool = False
    chain_id: str = ""
    vm_ids: tuple[str, ...] = DEFAULT_VM_IDS
    pk_path: Path
    out_dir: Path
    batch_size: int = Field(default=8, gt=0)
    windows_per_size: int = Field(default=1, gt=0)
    timeout_minutes: int = Field(default=20, gt=0)
    timeout_batches: tuple[int, ...] = (8, 32)
    private_key: str = DEFAULT_BENCH_PRIVATE_KEY
    proof_config_private_key: str = DEFAULT_BENCH_PRIVATE_KEY
    faucet_private_key: str = ""
    backup_private_key: str = ""
    prefund_amount: int = Field(default=DEFAULT_PREFUND_AMOUNT, gt=0)
    skip_prefund_backup: bool = False
    runner: RunnerMode = RunnerMode.docker
    docker_image: str = DEFAULT_DOCKER_IMAGE
    dockerfile: Path
    docker_bin: str = "docker"
    skip_image_build: bool = False
    skip_prebuild: bool = False
    preflight_only: bool = False
    skip_negative: bool = False
    skip_malformed: bool = False
    skip_backup_takeover: bool = False
    skip_timeout: bool = False

    @property
    def cache_root(self) -> Path:
        """Directory holding the shared module/build caches and prebuilt binary."""
        return self.project_root / ".cache" / "evidence-zkbench"

    @property
    def go_mod_cache_dir(self) -> Path:
        return self.cache_root / "go-mod"

    @property
    def go_build_cache_dir(self) -> Path:
        return self.cache_root / "go-build"

    @property
    def bin_dir(self) -> Path:
        return self.cache_root / "bin"

    def node_candidates(self) -> list[str]:
        """Ordered endpoints to probe for a healthy node.

        The legacy port is only tried when the user did not pick an
        endpoint and the default is in use.
        """
        candidates = [self.node_url]
        if not self.node_url_explicit and self.node_url == DEFAULT_NODE_URL:
            candidates.append(FALLBACK_NODE_URL)
        return candidates


def parse_bool(raw: Any, fallback: bool = False) -> bool:
    """Interpret an environment-style boolean (1/true/yes/on, case-insensitive)."""
    if raw is None:
        return fallback
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value == "":
        return fallback
    return value in _TRUE_VALUES


def parse_positive_int(raw: Any, name: str) -> int:
    """Parse a strictly positive integer or raise ConfigurationError."""
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ConfigurationError(name, raw) from None
    if value <= 0:
        raise ConfigurationError(name, raw)
    return value


def parse_batch_list(raw: Any, name: str = "timeout batch list") -> tuple[int, ...]:
    """Parse a comma-separated list of positive batch sizes.

    Non-numeric and non-positive entries are dropped; duplicates are
    removed keeping first-seen order. An empty result is an error.
    """
    items = raw if isinstance(raw, (list, tuple)) else str(raw).split(",")
    sizes: list[int] = []
    for item in items:
        try:
            size = int(str(item).strip())
        except ValueError:
            continue
        if size > 0 and size not in sizes:
            sizes.append(size)
    if not sizes:
        raise ConfigurationError(name, raw)
    return tuple(sizes)


def parse_csv(raw: Any) -> tuple[str, ...]:
    items = raw if isinstance(raw, (list, tuple)) else str(raw).split(",")
    return tuple(s for s in (str(x).strip() for x in items) if s)


def is_private_key_hex(value: str | None) -> bool:
    return bool(_PRIVATE_KEY_RE.match(str(value or "").strip()))


def require_private_key_hex(name: str, value: str) -> str:
    """Return the trimmed key or raise ConfigurationError if it is not 128 hex chars."""
    if not is_private_key_hex(value):
        raise ConfigurationError(name, "<redacted>", f"{name} must be 128 hex chars")
    return str(value).strip()


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start (default: cwd) looking for launchgate.yaml or go.mod.

    Args:
        start: Starting path (file or directory). Defaults to cwd.

    Returns:
        The first directory containing either marker, or cwd if none is found.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while current != current.parent:
        if (current / "launchgate.yaml").exists() or (current / "go.mod").exists():
            return current
        current = current.parent
    return Path.cwd()


def load_project_defaults(project_root: Path) -> ProjectDefaults:
    """Load ProjectDefaults from launchgate.yaml. Returns empty defaults if absent.

    Raises:
        ConfigurationError: If the file is not valid YAML or has unknown keys.
    """
    config_path = project_root / "launchgate.yaml"
    if not config_path.exists():
        return ProjectDefaults()
    import yaml

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(config_path), "<yaml>", f"invalid {config_path}: {exc}") from exc
    if raw is None:
        return ProjectDefaults()
    try:
        return ProjectDefaults.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise ConfigurationError(field, first.get("input"), f"{config_path}: {field}: {first['msg']}") from exc


def resolve_run_configuration(
    flags: Mapping[str, Any],
    environ: Mapping[str, str],
    cwd: Path | None = None,
) -> RunConfiguration:
    """Build the RunConfiguration from flags, environment, project file, defaults.

    Precedence per setting: explicit flag (non-None) > environment variable
    (non-empty) > launchgate.yaml > built-in default.

    Args:
        flags: Flag values keyed by setting name; None means "not given".
        environ: Environment mapping (normally os.environ).
        cwd: Directory used to locate the project root when not given.

    Returns:
        The validated, frozen RunConfiguration.

    Raises:
        ConfigurationError: On any invalid value. No I/O beyond reading
            launchgate.yaml happens before this returns.
    """

    def from_env(name: str) -> str | None:
        value = environ.get(ENV_VARS[name], "")
        return value if str(value).strip() != "" else None

    root_raw = flags.get("project_root") or from_env("project_root")
    project_root = Path(root_raw).resolve() if root_raw else find_project_root(cwd)
    file_defaults = load_project_defaults(project_root).model_dump(exclude_none=True)

    def pick(name: str, default: Any = None) -> Any:
        if flags.get(name) is not None:
            return flags[name]
        env_value = from_env(name)
        if env_value is not None:
            return env_value
        return file_defaults.get(name, default)

    values: dict[str, Any] = {}

    node_flag = flags.get("node_url")
    node_env = from_env("node_url")
    values["node_url"] = str(node_flag or node_env or file_defaults.get("node_url") or DEFAULT_NODE_URL).rstrip("/")
    values["node_url_explicit"] = bool(node_flag or node_env)

    values["chain_id"] = str(pick("chain_id", "") or "").strip()
    values["vm_ids"] = parse_csv(pick("vm_ids", ",".join(DEFAULT_VM_IDS)))

    for name in _INT_FIELDS:
        raw = pick(name)
        if raw is not None:
            flag_name = ENV_VARS[name] if flags.get(name) is None else f"--{name.replace('_', '-')}"
            values[name] = parse_positive_int(raw, flag_name)

    batches = pick("timeout_batches")
    if batches is not None:
        values["timeout_batches"] = parse_batch_list(batches)

    for name in _BOOL_FIELDS:
        values[name] = parse_bool(pick(name), False)
    values["preflight_only"] = bool(flags.get("preflight_only"))

    runner = str(pick("runner", RunnerMode.docker.value)).strip().lower()
    if runner not in {m.value for m in RunnerMode}:
        raise ConfigurationError(
            "--runner", runner, f"invalid --runner value: {runner} (expected docker|local)"
        )
    values["runner"] = RunnerMode(runner)

    values["docker_image"] = str(pick("docker_image", DEFAULT_DOCKER_IMAGE))
    values["docker_bin"] = str(pick("docker_bin", "docker"))
    values["dockerfile"] = _resolve_path(project_root, pick("dockerfile", DEFAULT_DOCKERFILE))
    values["pk_path"] = _resolve_path(project_root, pick("pk_path", DEFAULT_PK_PATH))
    values["out_dir"] = _resolve_path(project_root, pick("out_dir", "evidence-bundles"))
    mount_raw = pick("mount_root")
    values["mount_root"] = _resolve_path(project_root, mount_raw) if mount_raw else project_root

    values["private_key"] = require_private_key_hex(
        "primary private key", pick("private_key", DEFAULT_BENCH_PRIVATE_KEY)
    )
    values["proof_config_private_key"] = require_private_key_hex(
        "proof-config private key", pick("proof_config_private_key", DEFAULT_BENCH_PRIVATE_KEY)
    )
    faucet = pick("faucet_private_key")
    values["faucet_private_key"] = require_private_key_hex("faucet private key", faucet) if faucet else ""
    backup = pick("backup_private_key")
    values["backup_private_key"] = require_private_key_hex("backup private key", backup) if backup else ""

    try:
        return RunConfiguration(project_root=project_root, **values)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise ConfigurationError(field, first.get("input"), f"invalid {field}: {first['msg']}") from exc


def _resolve_path(root: Path, raw: Any) -> Path:
    path = Path(str(raw)).expanduser()
    if not path.is_absolute():
        path = root / path
    return path.resolve()
