"""Error taxonomy for netplan document handling.

Validation errors are raised before anything touches the disk; commit
errors may leave the configuration directory in a mixed state.
"""
from pathlib import Path
from typing import Optional


class NetplanError(Exception):
    """Base class for all interface configuration errors."""
    pass


class MalformedConfig(NetplanError):
    """A configuration file failed to parse or violates the schema."""

    def __init__(self, message: str, path: Optional[Path] = None, key: Optional[str] = None):
        self.path = path
        self.key = key
        where = f"{path}: " if path else ""
        at = f" (at {key})" if key else ""
        super().__init__(f"{where}{message}{at}")


class ConfigNotFound(NetplanError):
    """The configuration directory holds no configuration file."""

    def __init__(self, directory: Path):
        self.directory = directory
        super().__init__(f"Netplan configuration not found in {directory}")


class InterfaceNotFound(NetplanError):
    """An operation targets an interface that does not exist."""

    def __init__(self, name: str, where: str = "configuration"):
        self.name = name
        super().__init__(f'interface "{name}" not found in {where}')


class ValidationError(NetplanError):
    """A proposed interface edit was rejected."""

    def __init__(self, message: str, interface: Optional[str] = None):
        self.interface = interface
        super().__init__(message)


class InvalidAddress(ValidationError):
    """An address, gateway or nameserver value is not a valid IP."""

    def __init__(self, field: str, value: str, interface: Optional[str] = None, reason: str = ""):
        self.field = field
        self.value = value
        detail = f". {reason}" if reason else ""
        super().__init__(f"invalid {field} address: {value}{detail}", interface)


class GatewayConflict(ValidationError):
    """Another interface already owns the default gateway."""

    def __init__(self, interface: str, owner: str, gateway: str):
        self.owner = owner
        self.gateway = gateway
        super().__init__(
            f"only one interface can have gateway: {owner} already has {gateway}",
            interface,
        )


class ConflictingAddressMode(ValidationError):
    """dhcp4 was requested together with static addressing."""

    def __init__(self, interface: str):
        super().__init__(
            "dhcp4 and static address cannot be set in the same interface",
            interface,
        )


class CommitFailure(NetplanError):
    """A step of the commit/apply pipeline failed.

    Steps that completed before the failure are not undone.
    """

    def __init__(self, step, path: Optional[Path], cause: Exception):
        self.step = step
        self.path = path
        self.cause = cause
        target = f" ({path})" if path else ""
        super().__init__(f"commit failed at step {step.value}{target}: {cause}")


class TransportFailure(NetplanError):
    """Communication with the privileged helper broke down."""
    pass


class HelperError(NetplanError):
    """The privileged helper ran the request and reported an error."""
    pass
