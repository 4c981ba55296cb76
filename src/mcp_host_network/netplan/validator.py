"""Pre-flight validation for interface edits.

Catches invalid addresses and document-wide conflicts before anything
is written to disk. Validation performs no I/O.
"""
import ipaddress
from dataclasses import dataclass, field

from .errors import (
    ConflictingAddressMode,
    GatewayConflict,
    InvalidAddress,
    ValidationError,
)
from .schema import InterfaceView, NetplanDocument


@dataclass
class ValidationResult:
    """Result of validating one interface edit."""
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0

    def raise_for_errors(self) -> None:
        """Raise the first collected error, if any."""
        if self.errors:
            raise self.errors[0]


def validate_ip_network(value: str) -> None:
    """Validate an IPv4/IPv6 network such as ``192.168.0.5/24``.

    Raises:
        ValueError: If the value is not address/prefix notation
    """
    if "/" not in value:
        raise ValueError("missing prefix length")
    address, _, prefix = value.partition("/")
    # ip_network also takes netmask and hostmask suffixes
    if not (prefix.isascii() and prefix.isdigit()):
        raise ValueError(f"prefix length must be a decimal number: {prefix!r}")
    validate_ip_address(address)
    ipaddress.ip_network(value, strict=False)


def validate_ip_address(value: str) -> None:
    """Validate a bare IPv4/IPv6 address.

    Scoped IPv6 addresses (``fe80::1%eth0``) are rejected.

    Raises:
        ValueError: If the value is not an IP address
    """
    if "%" in value:
        raise ValueError("scoped addresses are not supported")
    ipaddress.ip_address(value)


class InterfaceValidator:
    """Validate a proposed interface edit against the current document."""

    def validate(
        self,
        document: NetplanDocument,
        ifname: str,
        proposed: InterfaceView,
    ) -> ValidationResult:
        """
        Validate ``proposed`` settings for ``ifname``.

        Checks, in order:
        - every address is a valid IP network with prefix length
        - the gateway is a valid IP address
        - no other interface already has a gateway
        - every nameserver is a valid IP address
        - dhcp4 is not combined with static addresses or nameservers

        Args:
            document: The currently loaded, merged document
            ifname: Interface the edit targets
            proposed: The requested settings

        Returns:
            ValidationResult holding every error found
        """
        errors: list[ValidationError] = []

        self._check_addresses(ifname, proposed, errors)
        self._check_gateway(document, ifname, proposed, errors)
        self._check_nameservers(ifname, proposed, errors)
        self._check_address_mode(ifname, proposed, errors)

        return ValidationResult(errors=errors)

    def _check_addresses(
        self,
        ifname: str,
        proposed: InterfaceView,
        errors: list[ValidationError],
    ) -> None:
        for network in proposed.addresses or []:
            try:
                validate_ip_network(network)
            except ValueError as e:
                errors.append(InvalidAddress("interface", network, ifname, str(e)))

    def _check_gateway(
        self,
        document: NetplanDocument,
        ifname: str,
        proposed: InterfaceView,
        errors: list[ValidationError],
    ) -> None:
        gateway = proposed.gateway4
        if gateway is None:
            return

        try:
            validate_ip_address(gateway)
        except ValueError as e:
            errors.append(InvalidAddress("gateway4", gateway, ifname, str(e)))

        if not gateway:
            return

        # Only one interface may own the default route
        for name, config in document.ethernets:
            if name != ifname and config.has_gateway():
                errors.append(GatewayConflict(ifname, name, config.gateway4))
                break

    def _check_nameservers(
        self,
        ifname: str,
        proposed: InterfaceView,
        errors: list[ValidationError],
    ) -> None:
        for server in proposed.nameservers or []:
            try:
                validate_ip_address(server)
            except ValueError as e:
                errors.append(InvalidAddress("nameserver", server, ifname, str(e)))

    def _check_address_mode(
        self,
        ifname: str,
        proposed: InterfaceView,
        errors: list[ValidationError],
    ) -> None:
        if proposed.dhcp4 is True and (
            proposed.addresses is not None or proposed.nameservers is not None
        ):
            errors.append(ConflictingAddressMode(ifname))
