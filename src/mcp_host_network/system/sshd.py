"""SSH daemon port configuration (/etc/ssh/sshd_config)."""
import logging
from pathlib import Path
from typing import Callable, Union

from . import services
from .commands import run_command

logger = logging.getLogger(__name__)

SSHD_CONFIG = Path("/etc/ssh/sshd_config")
SSHD_DEFAULT_PORT = 22


def get_port(config: Path = SSHD_CONFIG) -> int:
    """Return the first valid ``Port`` setting, or 22."""
    for line in Path(config).read_text().splitlines():
        if line.startswith("Port "):
            parts = line.split()
            if len(parts) > 1 and parts[1].isdigit() and 0 < int(parts[1]) < 65536:
                return int(parts[1])
    return SSHD_DEFAULT_PORT


def set_port(
    port: Union[int, str],
    config: Path = SSHD_CONFIG,
    runner: Callable = run_command,
) -> None:
    """
    Set the sshd port and restart sshd.

    Raises:
        ValueError: If ``port`` is not a valid TCP port
    """
    port = int(port)
    if not 0 < port < 65536:
        raise ValueError(f"invalid port number: {port}")

    config = Path(config)
    kept = [line for line in config.read_text().splitlines() if not line.startswith("Port ")]
    kept.append(f"Port {port}")
    config.write_text("\n".join(kept) + "\n")
    logger.info(f"sshd port set to {port}")

    services.restart("sshd", runner)
