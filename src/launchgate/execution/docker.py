"""Container runtime helpers: path translation and `docker run` argument building.

The mount root is bind-mounted at /workspace; the shared Go module and
build caches are mounted at their in-image locations so builds and
benchmark runs reuse them across scenarios.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit, urlunsplit

from launchgate.errors import ConfigurationError
from launchgate.models.config import RunConfiguration

CONTAINER_WORKSPACE = PurePosixPath("/workspace")
CONTAINER_GO_MOD = "/go/pkg/mod"
CONTAINER_GO_BUILD = "/root/.cache/go-build"
TOOLCHAIN_PATH_EXPORT = "export PATH=/usr/local/go/bin:$PATH"
HOST_GATEWAY = "host.docker.internal"
_LOOPBACK_HOSTS = frozenset({"127.0.0.1", "localhost", "::1"})


def to_container_path(host_path: Path, mount_root: Path) -> str:
    """Translate a host path under mount_root to its /workspace path.

    Raises:
        ConfigurationError: If host_path lies outside mount_root.
    """
    try:
        rel = Path(host_path).resolve().relative_to(Path(mount_root).resolve())
    except ValueError:
        raise ConfigurationError(
            "path",
            str(host_path),
            f"path is outside the mount root and cannot be mounted: {host_path}",
        ) from None
    return str(CONTAINER_WORKSPACE.joinpath(*rel.parts))


def docker_reachable_url(url: str) -> str:
    """Origin of a node URL as seen from inside a container.

    Loopback hosts become the host gateway; path, query and fragment are
    always dropped.
    """
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    netloc = parts.netloc
    if host in _LOOPBACK_HOSTS:
        netloc = HOST_GATEWAY if parts.port is None else f"{HOST_GATEWAY}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, "", "", ""))


def toolchain_run_args(
    config: RunConfiguration,
    env_pairs: Mapping[str, str] | None = None,
) -> list[str]:
    """Arguments for `docker run` up to (not including) the image name.

    Mounts the workspace and both caches, sets the working directory to
    the project root inside the container, and passes env_pairs as -e.
    """
    args = [
        "run",
        "--rm",
        "-v",
        f"{config.mount_root}:{CONTAINER_WORKSPACE}",
        "-v",
        f"{config.go_mod_cache_dir}:{CONTAINER_GO_MOD}",
        "-v",
        f"{config.go_build_cache_dir}:{CONTAINER_GO_BUILD}",
        "-w",
        to_container_path(config.project_root, config.mount_root),
    ]
    for key, value in (env_pairs or {}).items():
        args.extend(["-e", f"{key}={value}"])
    args.extend(
        [
            "-e",
            "CGO_ENABLED=1",
            "-e",
            f"GOMODCACHE={CONTAINER_GO_MOD}",
            "-e",
            f"GOCACHE={CONTAINER_GO_BUILD}",
        ]
    )
    return args


def shell_command(*steps: str) -> list[str]:
    """`bash -lc` invocation running steps with the Go toolchain on PATH."""
    return ["bash", "-lc", " && ".join([TOOLCHAIN_PATH_EXPORT, *steps])]
