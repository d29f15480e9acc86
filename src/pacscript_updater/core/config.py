"""
Runtime configuration for an updater run.

A single frozen UpdaterConfig is built by the CLI and passed explicitly to
every component; nothing reads process-wide option state.
"""

import platform
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from pacscript_updater import __version__

DEFAULT_HASH_TYPES = ("sha256", "sha512", "b2", "md5")

# platform.machine() -> Debian architecture name
MACHINE_TO_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armhf",
    "armv6l": "armel",
    "i386": "i386",
    "i686": "i386",
    "ppc64le": "ppc64el",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def host_arch() -> str:
    """Debian architecture name of the running machine."""
    machine = platform.machine().lower()
    return MACHINE_TO_ARCH.get(machine, machine)


@dataclass(frozen=True)
class UpdaterConfig:
    """Options threaded through parsing, resolution and rewriting."""

    hash_types: tuple[str, ...] = DEFAULT_HASH_TYPES
    arch: str = field(default_factory=host_arch)
    repology_url: str = "https://repology.org"
    user_agent: str = f"pacscript-updater/{__version__}"
    catalog_timeout: float = 30.0
    fetch_timeout: float = 120.0
    eval_timeout: float = 10.0
    request_interval: float = 1.0  # Repology asks for at most 1 req/s
    failure_threshold: int = 3
    work_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()) / "pacscript-updater")
    dry_run: bool = False
    ship: bool = False
    base_branch: str = "master"
    upstream_repo: str = "pacstall/pacstall-programs"
    github_token: str | None = None
