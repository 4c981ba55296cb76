"""Host-level collaborators: commands, live interfaces, services, ntp, sshd."""
from .commands import CommandError, CommandResult, run_command, run_command_output, run_duplex
from .interfaces import list_interface_names

__all__ = [
    "CommandError",
    "CommandResult",
    "run_command",
    "run_command_output",
    "run_duplex",
    "list_interface_names",
]
