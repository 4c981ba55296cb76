"""Client side of the privileged helper.

Runs the helper executable once per request. Offers the same interface
operations as NetplanEngine, so callers can switch between running the
engine in-process (as root) and delegating to the helper.
"""
import logging
import os
from typing import Any, Callable, Optional

from ..config.settings import Settings
from ..netplan.errors import TransportFailure
from ..netplan.schema import InterfaceView
from ..system.commands import CommandError, run_duplex
from .protocol import HelperRequest, Node, SubCommand, parse_response

logger = logging.getLogger(__name__)


class HelperClient:
    """Send requests to the privileged helper process."""

    def __init__(self, settings: Optional[Settings] = None, runner: Callable = run_duplex):
        """
        Args:
            settings: Helper program and PATH (default: Settings())
            runner: Duplex command runner, ``runner(program, args, payload, env)``
        """
        self.settings = settings or Settings()
        self.runner = runner

    def call(self, node: Node, command: SubCommand, arg: Any = None) -> Any:
        """
        Run one request through the helper.

        Raises:
            TransportFailure: The helper could not be run or its response
                could not be decoded
            HelperError: The helper reported an error
        """
        request = HelperRequest(node, command, arg)
        env = dict(os.environ)
        env["PATH"] = self.settings.helper_path

        logger.debug(f"Helper request: {node.value} {command.value}")
        try:
            result = self.runner(self.settings.helper_program, [], request.to_json(), env)
        except CommandError as e:
            raise TransportFailure(f"failed to execute helper: {e}") from e

        if not result.stdout.strip():
            raise TransportFailure(
                f"helper exited with status {result.returncode} without a response"
            )
        return parse_response(result.stdout)

    # --- interface operations ---

    def list_interfaces(self, prefix: Optional[str] = None) -> list[str]:
        return self.call(Node.INTERFACE, SubCommand.LIST, prefix)

    def get(self, ifname: Optional[str] = None) -> Optional[list[tuple[str, InterfaceView]]]:
        found = self.call(Node.INTERFACE, SubCommand.GET, ifname)
        if found is None:
            return None
        return [(name, InterfaceView.from_dict(view)) for name, view in found]

    def set(self, ifname: str, view: InterfaceView) -> str:
        return self.call(Node.INTERFACE, SubCommand.SET, [ifname, view.to_dict()])

    def delete(self, ifname: str, view: InterfaceView) -> str:
        return self.call(Node.INTERFACE, SubCommand.DELETE, [ifname, view.to_dict()])

    def init(self, ifname: str) -> str:
        return self.call(Node.INTERFACE, SubCommand.INIT, ifname)

    # --- ntp / sshd ---

    def ntp_servers(self) -> Optional[list[str]]:
        return self.call(Node.NTP, SubCommand.GET)

    def set_ntp_servers(self, servers: list[str]) -> str:
        return self.call(Node.NTP, SubCommand.SET, servers)

    def enable_ntp(self) -> str:
        return self.call(Node.NTP, SubCommand.ENABLE)

    def disable_ntp(self) -> str:
        return self.call(Node.NTP, SubCommand.DISABLE)

    def sshd_port(self) -> int:
        return self.call(Node.SSHD, SubCommand.GET)

    def set_sshd_port(self, port: int) -> str:
        return self.call(Node.SSHD, SubCommand.SET, port)

    def service_status(self, services: Optional[list[str]] = None) -> list[tuple[str, str]]:
        return [tuple(item) for item in self.call(Node.SERVICE, SubCommand.STATUS, services)]
