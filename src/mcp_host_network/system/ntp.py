"""NTP client configuration (/etc/ntp.conf)."""
import logging
import re
from pathlib import Path
from typing import Callable, Optional

from . import services
from .commands import run_command, run_command_output

logger = logging.getLogger(__name__)

NTP_CONF = Path("/etc/ntp.conf")
NTP_SERVICE = "ntp"

SERVER_RE = re.compile(r"server\s+([A-Za-z0-9.:-]+)\s+iburst")


def get_servers(conf: Path = NTP_CONF) -> Optional[list[str]]:
    """
    Get the configured NTP servers.

    Returns:
        Server names, or None if none are configured
    """
    servers = []
    for line in Path(conf).read_text().splitlines():
        if line.startswith("server "):
            match = SERVER_RE.search(line)
            if match:
                servers.append(match.group(1))
    return servers or None


def set_servers(
    servers: list[str],
    conf: Path = NTP_CONF,
    runner: Callable = run_command,
) -> None:
    """
    Replace every ``server`` line with the given servers and restart ntp.

    Example:
        set_servers(["time.bora.net", "time2.kriss.re.kr"])
    """
    conf = Path(conf)
    kept = [line for line in conf.read_text().splitlines() if not line.startswith("server ")]
    kept.extend(f"server {server} iburst" for server in servers)
    conf.write_text("\n".join(kept) + "\n")
    logger.info(f"NTP servers set to {servers}")

    services.restart(NTP_SERVICE, runner)


def is_active(output: Callable = run_command_output) -> bool:
    return services.is_active(NTP_SERVICE, output)


def enable(runner: Callable = run_command) -> None:
    """Start the ntp client service."""
    services.restart(NTP_SERVICE, runner)


def disable(runner: Callable = run_command) -> None:
    """Stop the ntp client service."""
    services.stop(NTP_SERVICE, runner)
