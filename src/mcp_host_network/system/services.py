"""systemd service control and service reachability checks."""
import ipaddress
import logging
import socket
from typing import Callable, Iterable, Optional

from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from .commands import run_command, run_command_output

logger = logging.getLogger(__name__)


def start(service: str, runner: Callable = run_command) -> None:
    runner("systemctl", ["start", service])


def stop(service: str, runner: Callable = run_command) -> None:
    runner("systemctl", ["stop", service])


def restart(service: str, runner: Callable = run_command) -> None:
    runner("systemctl", ["restart", service])


def is_active(service: str, output: Callable = run_command_output) -> bool:
    return output("systemctl", ["is-active", service]) == "active"


def status(
    services: Iterable[str],
    output: Callable = run_command_output,
) -> list[tuple[str, str]]:
    """
    Report the state of each service.

    ``systemctl is-active`` exits non-zero for inactive units, so
    ``is-failed`` is asked as a fallback. Services neither command
    reports on are left out.

    Returns:
        (service, state) pairs, e.g. ("ntp", "active")
    """
    result = []
    for service in services:
        state = output("systemctl", ["is-active", service])
        if state is None:
            state = output("systemctl", ["is-failed", service])
        if state is not None:
            result.append((service, state))
    return result


def stop_all(
    services: Iterable[str],
    runner: Callable = run_command,
    output: Callable = run_command_output,
) -> list[str]:
    """
    Stop every active service among ``services``.

    Returns:
        Names of the services that were stopped
    """
    stopped = []
    for service, state in status(services, output):
        if state == "active":
            stop(service, runner)
            stopped.append(service)
            logger.info(f"Stopped {service}")
    return stopped


def _port_open(address: str, port: int) -> bool:
    try:
        with socket.create_connection((address, port), timeout=1):
            return True
    except OSError:
        return False


def waitfor_up(
    address: str,
    port: int,
    timeout: float,
    probe: Optional[Callable[[str, int], bool]] = None,
    interval: float = 1.0,
) -> bool:
    """
    Wait until a TCP port accepts connections.

    An open port does not always mean the service is ready; services in
    containers may need longer.

    Args:
        address: IP address to connect to
        port: TCP port
        timeout: Give up after this many seconds
        probe: Connection check, ``probe(address, port)``
        interval: Seconds between attempts

    Returns:
        True once the port is reachable, False on timeout

    Raises:
        ValueError: If address or port is invalid
    """
    ipaddress.ip_address(address)
    port = int(port)
    if not 0 < port < 65536:
        raise ValueError(f"invalid port number: {port}")

    probe = probe or _port_open

    @retry(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda up: not up),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
    )
    def attempt() -> bool:
        return probe(address, port)

    try:
        return attempt()
    except RetryError:
        logger.warning(f"{address}:{port} still unreachable after {timeout}s")
        return False
