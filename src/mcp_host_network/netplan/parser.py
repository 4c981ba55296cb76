"""Parser and serializer for netplan YAML documents.

The schema is closed: unknown keys are rejected instead of ignored so a
typo in a configuration file does not silently drop settings.
"""
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .errors import MalformedConfig
from .schema import (
    BridgeConfig,
    InterfaceConfig,
    NameserverBlock,
    NetplanDocument,
)

ROOT_KEYS = {"network"}
NETWORK_KEYS = {"version", "renderer", "ethernets", "bridges"}
INTERFACE_KEYS = {"addresses", "dhcp4", "gateway4", "nameservers", "optional"}
NAMESERVER_KEYS = {"addresses", "search"}
BRIDGE_KEYS = {"interfaces", "addresses", "gateway4", "nameservers"}


class DocumentParser:
    """Convert netplan YAML text into NetplanDocument objects."""

    def __init__(self, path: Optional[Path] = None):
        """
        Args:
            path: Source file, used only to give errors some context
        """
        self.path = path

    def parse(self, text: Union[str, bytes]) -> NetplanDocument:
        """
        Parse the full contents of a configuration file.

        Raises:
            MalformedConfig: On YAML syntax errors, unknown keys or
                values of the wrong type
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedConfig(f"YAML syntax error: {e}", self.path)

        root = self._mapping(data, "document")
        self._check_keys(root, ROOT_KEYS, "")
        if "network" not in root:
            raise MalformedConfig("missing field `network`", self.path)

        network = self._mapping(root["network"], "network")
        self._check_keys(network, NETWORK_KEYS, "network")

        if "ethernets" not in network:
            raise MalformedConfig("missing field `ethernets`", self.path, "network")

        document = NetplanDocument(
            version=self._optional_int(network, "version", "network"),
            renderer=self._optional_str(network, "renderer", "network"),
            ethernets=self._parse_ethernets(network["ethernets"]),
            bridges=self._parse_bridges(network.get("bridges")),
        )
        return document

    def _parse_ethernets(self, value: Any) -> list[tuple[str, InterfaceConfig]]:
        ethernets = self._mapping(value, "network.ethernets")
        return [
            (str(name), self._parse_interface(str(name), config))
            for name, config in ethernets.items()
        ]

    def _parse_interface(self, name: str, value: Any) -> InterfaceConfig:
        where = f"network.ethernets.{name}"
        if value is None:
            return InterfaceConfig()

        config = self._mapping(value, where)
        self._check_keys(config, INTERFACE_KEYS, where)

        nameservers = None
        if config.get("nameservers") is not None:
            raw = self._mapping(config["nameservers"], f"{where}.nameservers")
            self._check_keys(raw, NAMESERVER_KEYS, f"{where}.nameservers")
            nameservers = {
                role: self._str_list(values, f"{where}.nameservers.{role}")
                for role, values in raw.items()
            }

        return InterfaceConfig(
            addresses=self._optional_str_list(config, "addresses", where),
            dhcp4=self._optional_bool(config, "dhcp4", where),
            gateway4=self._optional_str(config, "gateway4", where),
            nameservers=nameservers,
            optional=self._optional_bool(config, "optional", where),
        )

    def _parse_bridges(self, value: Any) -> Optional[dict[str, BridgeConfig]]:
        if value is None:
            return None

        bridges = {}
        for name, raw in self._mapping(value, "network.bridges").items():
            where = f"network.bridges.{name}"
            config = self._mapping(raw, where)
            self._check_keys(config, BRIDGE_KEYS, where)
            for required in ("interfaces", "addresses", "nameservers"):
                if required not in config:
                    raise MalformedConfig(f"missing field `{required}`", self.path, where)

            ns = self._mapping(config["nameservers"], f"{where}.nameservers")
            self._check_keys(ns, NAMESERVER_KEYS, f"{where}.nameservers")

            bridges[str(name)] = BridgeConfig(
                interfaces=self._str_list(config["interfaces"], f"{where}.interfaces"),
                addresses=self._str_list(config["addresses"], f"{where}.addresses"),
                gateway4=self._optional_str(config, "gateway4", where),
                nameservers=NameserverBlock(
                    addresses=self._optional_str_list(ns, "addresses", f"{where}.nameservers"),
                    search=self._optional_str_list(ns, "search", f"{where}.nameservers"),
                ),
            )
        return bridges

    # --- type checks ---

    def _mapping(self, value: Any, where: str) -> dict:
        if not isinstance(value, dict):
            raise MalformedConfig(
                f"expected a mapping, found {type(value).__name__}", self.path, where
            )
        return value

    def _check_keys(self, data: dict, allowed: set[str], where: str) -> None:
        for key in data:
            if key not in allowed:
                expected = ", ".join(sorted(allowed))
                raise MalformedConfig(
                    f"unknown field `{key}`, expected one of {expected}",
                    self.path,
                    where or None,
                )

    def _str_list(self, value: Any, where: str) -> list[str]:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise MalformedConfig("expected a list of strings", self.path, where)
        return list(value)

    def _optional_str_list(self, data: dict, key: str, where: str) -> Optional[list[str]]:
        if data.get(key) is None:
            return None
        return self._str_list(data[key], f"{where}.{key}")

    def _optional_str(self, data: dict, key: str, where: str) -> Optional[str]:
        value = data.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise MalformedConfig("expected a string", self.path, f"{where}.{key}")
        return value

    def _optional_bool(self, data: dict, key: str, where: str) -> Optional[bool]:
        value = data.get(key)
        if value is None:
            return None
        if not isinstance(value, bool):
            raise MalformedConfig("expected a boolean", self.path, f"{where}.{key}")
        return value

    def _optional_int(self, data: dict, key: str, where: str) -> Optional[int]:
        value = data.get(key)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise MalformedConfig("expected a non-negative integer", self.path, f"{where}.{key}")
        return value


def parse_document(text: Union[str, bytes], path: Optional[Path] = None) -> NetplanDocument:
    """Parse netplan YAML text into a NetplanDocument."""
    return DocumentParser(path).parse(text)


def load_document(path: Path) -> NetplanDocument:
    """Read and parse one configuration file."""
    path = Path(path)
    return parse_document(path.read_bytes(), path)


def dump_document(document: NetplanDocument) -> str:
    """Serialize a document back to netplan YAML."""
    return yaml.safe_dump(
        document.to_dict(),
        default_flow_style=False,
        sort_keys=False,
    )
