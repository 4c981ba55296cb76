"""Runtime settings for ifcraft.

Settings come from an optional YAML file and are then overridden by
environment variables:

- IFCRAFT_NETPLAN_DIR: Netplan configuration directory (default: /etc/netplan)
- IFCRAFT_STAGING_DIR: Where documents are staged before promotion
- IFCRAFT_APPLY_COMMAND: Command that applies the configuration
- IFCRAFT_HELPER: Privileged helper executable (default: ifcraft-helper)
- IFCRAFT_USE_HELPER: Set to "1" to route operations through the helper
- IFCRAFT_SERVICES: Comma-separated list of managed services
- IFCRAFT_LOG_DIR: Directory for the audit log (default: ~/.ifcraft)
"""
import logging
import os
import shlex
import tempfile
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_NETPLAN_DIR = Path("/etc/netplan")
DEFAULT_NETPLAN_YAML = "01-netcfg.yaml"
DEFAULT_HELPER_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"

_PATH_FIELDS = {"netplan_dir", "staging_dir", "ntp_conf", "sshd_config", "log_dir"}


@dataclass
class Settings:
    """Where configuration lives and which commands apply it."""
    netplan_dir: Path = DEFAULT_NETPLAN_DIR
    staging_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    default_filename: str = DEFAULT_NETPLAN_YAML
    file_suffixes: tuple[str, ...] = (".yaml",)
    apply_command: list[str] = field(default_factory=lambda: ["netplan", "apply"])
    helper_program: str = "ifcraft-helper"
    helper_path: str = DEFAULT_HELPER_PATH
    use_helper: bool = False
    ntp_conf: Path = Path("/etc/ntp.conf")
    sshd_config: Path = Path("/etc/ssh/sshd_config")
    managed_services: list[str] = field(default_factory=list)
    log_dir: Path = field(default_factory=lambda: Path.home() / ".ifcraft")

    @classmethod
    def from_file(cls, path: Path) -> "Settings":
        """Load settings from a YAML file. Unknown keys are ignored."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown setting '{key}' in {path}")
                continue
            if key in _PATH_FIELDS:
                value = Path(value).expanduser()
            elif key == "file_suffixes":
                value = tuple(value)
            elif key == "apply_command" and isinstance(value, str):
                value = shlex.split(value)
            values[key] = value

        return cls(**values)

    @classmethod
    def from_env(cls, base: Optional["Settings"] = None) -> "Settings":
        """Apply IFCRAFT_* environment overrides on top of ``base``."""
        settings = base or cls()
        overrides = {}

        if "IFCRAFT_NETPLAN_DIR" in os.environ:
            overrides["netplan_dir"] = Path(os.environ["IFCRAFT_NETPLAN_DIR"])
        if "IFCRAFT_STAGING_DIR" in os.environ:
            overrides["staging_dir"] = Path(os.environ["IFCRAFT_STAGING_DIR"])
        if "IFCRAFT_APPLY_COMMAND" in os.environ:
            overrides["apply_command"] = shlex.split(os.environ["IFCRAFT_APPLY_COMMAND"])
        if "IFCRAFT_HELPER" in os.environ:
            overrides["helper_program"] = os.environ["IFCRAFT_HELPER"]
        if "IFCRAFT_USE_HELPER" in os.environ:
            overrides["use_helper"] = os.environ["IFCRAFT_USE_HELPER"] == "1"
        if "IFCRAFT_LOG_DIR" in os.environ:
            overrides["log_dir"] = Path(os.environ["IFCRAFT_LOG_DIR"]).expanduser()

        services_str = os.environ.get("IFCRAFT_SERVICES", "")
        if services_str:
            overrides["managed_services"] = [s.strip() for s in services_str.split(",") if s.strip()]

        return replace(settings, **overrides)


def find_settings_file() -> Optional[Path]:
    """Find the ifcraft.yaml settings file, if any."""
    search_paths = [
        Path.cwd() / "configs" / "ifcraft.yaml",
        Path.cwd() / "ifcraft.yaml",
        Path.home() / ".config" / "ifcraft" / "ifcraft.yaml",
        Path("/etc/ifcraft/ifcraft.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return path
    return None


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from ``path`` (or the first file found), then the environment."""
    path = path or find_settings_file()
    if path is not None:
        logger.debug(f"Loading settings from {path}")
        base = Settings.from_file(Path(path))
    else:
        base = Settings()
    return Settings.from_env(base)
