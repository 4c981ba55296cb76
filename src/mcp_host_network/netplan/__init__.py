"""Netplan - declarative ethernet interface configuration.

Manages the interface settings (addresses, DHCP, default gateway, DNS)
stored as netplan YAML documents:
- Merge every document in the directory into one view
- Validate edits against document-wide rules
- Write the result back as a single file and apply it

Usage:
    from mcp_host_network.netplan import NetplanEngine, InterfaceView

    engine = NetplanEngine()
    engine.set("eno3", InterfaceView(addresses=["192.168.0.205/24"]))
    engine.get("eno3")
"""

from .engine import NetplanEngine
from .schema import (
    InterfaceConfig,
    InterfaceView,
    BridgeConfig,
    NameserverBlock,
    NetplanDocument,
)
from .parser import DocumentParser, parse_document, load_document, dump_document
from .merge import merge_documents, set_interface, init_interface, subtract_interface
from .validator import InterfaceValidator, ValidationResult
from .loader import list_config_files, load_directory
from .commit import CommitPipeline, CommitResult, CommitStep
from .errors import (
    NetplanError,
    MalformedConfig,
    ConfigNotFound,
    InterfaceNotFound,
    ValidationError,
    InvalidAddress,
    GatewayConflict,
    ConflictingAddressMode,
    CommitFailure,
    TransportFailure,
    HelperError,
)

__all__ = [
    # Main engine
    "NetplanEngine",
    # Schema classes
    "InterfaceConfig",
    "InterfaceView",
    "BridgeConfig",
    "NameserverBlock",
    "NetplanDocument",
    # Parser
    "DocumentParser",
    "parse_document",
    "load_document",
    "dump_document",
    # Merge
    "merge_documents",
    "set_interface",
    "init_interface",
    "subtract_interface",
    # Components (for advanced use)
    "InterfaceValidator",
    "ValidationResult",
    "list_config_files",
    "load_directory",
    "CommitPipeline",
    "CommitResult",
    "CommitStep",
    # Errors
    "NetplanError",
    "MalformedConfig",
    "ConfigNotFound",
    "InterfaceNotFound",
    "ValidationError",
    "InvalidAddress",
    "GatewayConflict",
    "ConflictingAddressMode",
    "CommitFailure",
    "TransportFailure",
    "HelperError",
]
