"""Privileged side of the helper protocol (``ifcraft-helper``).

Reads one request from stdin, runs it, writes one response to stdout.
Failures of the requested operation are reported as ``Err`` responses;
the process itself still exits 0.
"""
import logging
import sys
from typing import IO, Any, Optional

from ..config.settings import Settings, load_settings
from ..netplan.engine import NetplanEngine
from ..netplan.schema import InterfaceView
from ..system import ntp, services, sshd
from ..utils.audit_log import setup_audit_logging
from ..utils.logging_config import setup_logging
from .protocol import HelperRequest, Node, SubCommand, err_response, ok_response

logger = logging.getLogger(__name__)


class HelperDispatcher:
    """Route helper requests to the engine and system modules."""

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[NetplanEngine] = None):
        self.settings = settings or Settings()
        self.engine = engine or NetplanEngine(self.settings)

    def handle(self, request: HelperRequest) -> Any:
        """
        Run one request and return its JSON-compatible result.

        Raises:
            ValueError: If the node/command pair is not supported
        """
        handlers = {
            Node.INTERFACE: self._interface,
            Node.NTP: self._ntp,
            Node.SSHD: self._sshd,
            Node.SERVICE: self._service,
        }
        return handlers[request.node](request.command, request.arg)

    def _interface(self, command: SubCommand, arg: Any) -> Any:
        if command == SubCommand.LIST:
            return self.engine.list_interfaces(arg)
        if command == SubCommand.GET:
            found = self.engine.get(arg)
            if found is None:
                return None
            return [[name, view.to_dict()] for name, view in found]
        if command == SubCommand.SET:
            ifname, view = arg
            result = self.engine.set(ifname, InterfaceView.from_dict(view))
            return str(result.primary)
        if command == SubCommand.DELETE:
            ifname, view = arg
            result = self.engine.delete(ifname, InterfaceView.from_dict(view))
            return str(result.primary)
        if command == SubCommand.INIT:
            result = self.engine.init(arg)
            return str(result.primary)
        raise ValueError(f"unsupported interface command: {command.value}")

    def _ntp(self, command: SubCommand, arg: Any) -> Any:
        conf = self.settings.ntp_conf
        if command == SubCommand.GET:
            return ntp.get_servers(conf)
        if command == SubCommand.SET:
            ntp.set_servers(list(arg), conf, self.engine.runner)
            return "ok"
        if command == SubCommand.ENABLE:
            ntp.enable(self.engine.runner)
            return "ok"
        if command == SubCommand.DISABLE:
            ntp.disable(self.engine.runner)
            return "ok"
        raise ValueError(f"unsupported ntp command: {command.value}")

    def _sshd(self, command: SubCommand, arg: Any) -> Any:
        if command == SubCommand.GET:
            return sshd.get_port(self.settings.sshd_config)
        if command == SubCommand.SET:
            sshd.set_port(arg, self.settings.sshd_config, self.engine.runner)
            return "ok"
        raise ValueError(f"unsupported sshd command: {command.value}")

    def _service(self, command: SubCommand, arg: Any) -> Any:
        if command == SubCommand.STATUS:
            names = arg or self.settings.managed_services
            return [list(item) for item in services.status(names)]
        raise ValueError(f"unsupported service command: {command.value}")

    def serve(self, stdin: IO[bytes], stdout: IO[bytes]) -> int:
        """Read one request, write one response."""
        try:
            request = HelperRequest.from_json(stdin.read())
        except ValueError as e:
            logger.error(f"Invalid helper request: {e}")
            stdout.write(err_response(f"invalid request: {e}"))
            stdout.flush()
            return 0

        try:
            response = ok_response(self.handle(request))
        except Exception as e:
            logger.exception(f"Helper request {request.node.value} {request.command.value} failed")
            response = err_response(str(e))

        stdout.write(response)
        stdout.flush()
        return 0


def main() -> int:
    """Entry point for the ifcraft-helper executable."""
    # stdout carries the response; log to file (and stderr) only
    setup_logging()
    settings = load_settings()
    setup_audit_logging(settings.log_dir)
    return HelperDispatcher(settings).serve(sys.stdin.buffer, sys.stdout.buffer)


if __name__ == "__main__":
    sys.exit(main())
