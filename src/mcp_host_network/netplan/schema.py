"""Schema definitions for netplan documents.

Every optional field uses None as the "unset" marker. Unset fields are
never written back to disk, so an untouched document re-serializes to
the same text.
"""
from dataclasses import dataclass, field
from typing import Any, Optional

NAMESERVER_ADDRESSES = "addresses"
NAMESERVER_SEARCH = "search"


def _has_values(values: Optional[list]) -> bool:
    return bool(values)


@dataclass
class InterfaceConfig:
    """Full-fidelity settings of one ethernet interface."""
    addresses: Optional[list[str]] = None
    dhcp4: Optional[bool] = None
    gateway4: Optional[str] = None
    # role ("addresses" / "search") -> values
    nameservers: Optional[dict[str, list[str]]] = None
    optional: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        """Serializable form; unset and empty fields are omitted."""
        data: dict[str, Any] = {}
        if _has_values(self.addresses):
            data["addresses"] = list(self.addresses)
        if self.dhcp4 is not None:
            data["dhcp4"] = self.dhcp4
        if self.gateway4 is not None:
            data["gateway4"] = self.gateway4
        if self.nameservers is not None:
            roles = {
                role: list(values)
                for role, values in self.nameservers.items()
                if _has_values(values)
            }
            if roles:
                data["nameservers"] = roles
        if self.optional is not None:
            data["optional"] = self.optional
        return data

    def has_gateway(self) -> bool:
        return bool(self.gateway4)


@dataclass
class InterfaceView:
    """Simplified interface settings exchanged with callers.

    Nameservers are a flat address list; search domains are not exposed.
    """
    addresses: Optional[list[str]] = None
    dhcp4: Optional[bool] = None
    gateway4: Optional[str] = None
    nameservers: Optional[list[str]] = None

    @classmethod
    def from_config(cls, config: InterfaceConfig) -> "InterfaceView":
        nameservers = None
        if config.nameservers is not None:
            found = config.nameservers.get(NAMESERVER_ADDRESSES)
            nameservers = list(found) if found is not None else None
        return cls(
            addresses=list(config.addresses) if config.addresses is not None else None,
            dhcp4=config.dhcp4,
            gateway4=config.gateway4,
            nameservers=nameservers,
        )

    def to_config(self) -> InterfaceConfig:
        """Expand into an InterfaceConfig with an empty search list."""
        nameservers = None
        if self.nameservers is not None:
            nameservers = {
                NAMESERVER_ADDRESSES: list(self.nameservers),
                NAMESERVER_SEARCH: [],
            }
        return InterfaceConfig(
            addresses=list(self.addresses) if self.addresses is not None else None,
            dhcp4=self.dhcp4,
            gateway4=self.gateway4,
            nameservers=nameservers,
            optional=None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "addresses": self.addresses,
            "dhcp4": self.dhcp4,
            "gateway4": self.gateway4,
            "nameservers": self.nameservers,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InterfaceView":
        return cls(
            addresses=data.get("addresses"),
            dhcp4=data.get("dhcp4"),
            gateway4=data.get("gateway4"),
            nameservers=data.get("nameservers"),
        )


@dataclass
class NameserverBlock:
    """Nameserver settings of a bridge."""
    addresses: Optional[list[str]] = None
    search: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.search is not None:
            data["search"] = list(self.search)
        if self.addresses is not None:
            data["addresses"] = list(self.addresses)
        return data


@dataclass
class BridgeConfig:
    """A bridge; its name is the key it is stored under."""
    interfaces: list[str] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    gateway4: Optional[str] = None
    nameservers: NameserverBlock = field(default_factory=NameserverBlock)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "interfaces": list(self.interfaces),
            "addresses": list(self.addresses),
        }
        if self.gateway4 is not None:
            data["gateway4"] = self.gateway4
        data["nameservers"] = self.nameservers.to_dict()
        return data


@dataclass
class NetplanDocument:
    """One netplan document (or the merged view of several).

    Ethernets are kept as ordered (name, config) pairs sorted by name.
    Only ethernets and bridges are supported.
    """
    version: Optional[int] = None
    renderer: Optional[str] = None
    ethernets: list[tuple[str, InterfaceConfig]] = field(default_factory=list)
    bridges: Optional[dict[str, BridgeConfig]] = None

    def interface(self, name: str) -> Optional[InterfaceConfig]:
        """Look up an interface config by name."""
        for ifname, config in self.ethernets:
            if ifname == name:
                return config
        return None

    def interface_names(self) -> list[str]:
        return [name for name, _ in self.ethernets]

    def upsert_interface(self, name: str, config: InterfaceConfig) -> None:
        """Replace the named interface wholesale, or insert it."""
        for index, (ifname, _) in enumerate(self.ethernets):
            if ifname == name:
                self.ethernets[index] = (name, config)
                break
        else:
            self.ethernets.append((name, config))
        self.sort_interfaces()

    def sort_interfaces(self) -> None:
        self.ethernets.sort(key=lambda item: item[0])

    def to_dict(self) -> dict[str, Any]:
        network: dict[str, Any] = {}
        if self.version is not None:
            network["version"] = self.version
        if self.renderer is not None:
            network["renderer"] = self.renderer
        network["ethernets"] = {
            name: config.to_dict() for name, config in self.ethernets
        }
        if self.bridges is not None:
            network["bridges"] = {
                name: bridge.to_dict() for name, bridge in self.bridges.items()
            }
        return {"network": network}
