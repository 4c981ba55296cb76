"""MCP Server for host network interface configuration.

Exposes the host's netplan-managed ethernet settings, plus a few related
host services, as MCP tools:
- list_interfaces: List live network interfaces
- get_interface: Get configured settings of one or all interfaces
- set_interface: Replace an interface's addresses, gateway, nameservers
- delete_interface: Remove addresses/gateway/nameservers from an interface
- init_interface: Clear an interface's settings and reset it
- get_audit_log: Recent configuration changes
- ntp_get / ntp_set: NTP servers
- ntp_enable: Start or stop the NTP service
- sshd_get_port / sshd_set_port: SSH daemon port
- service_status: State of managed services
- wait_for_port: Wait until a TCP port is reachable

Operations run in-process, or through the privileged helper when
IFCRAFT_USE_HELPER=1.
"""
import asyncio
import json
import logging
from typing import Optional, Union

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
    Resource,
)
from pydantic import AnyUrl

from .config.settings import Settings, load_settings
from .helper.client import HelperClient
from .netplan.engine import NetplanEngine
from .netplan.schema import InterfaceView
from .system import ntp, services, sshd
from .utils.audit_log import get_recent_changes, setup_audit_logging
from .utils.logging_config import setup_logging, timed_section

logger = logging.getLogger(__name__)

# Global state (initialized on first use)
settings: Optional[Settings] = None
backend: Optional[Union[NetplanEngine, HelperClient]] = None


def get_settings() -> Settings:
    """Get or load the settings."""
    global settings
    if settings is None:
        settings = load_settings()
    return settings


def get_backend() -> Union[NetplanEngine, HelperClient]:
    """Get or create the engine (or helper client) that runs operations."""
    global backend
    if backend is None:
        cfg = get_settings()
        backend = HelperClient(cfg) if cfg.use_helper else NetplanEngine(cfg)
    return backend


# Create MCP server
server = Server("mcp-host-network")


_INTERFACE_SETTINGS = {
    "addresses": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Addresses in CIDR notation (e.g., ['192.168.0.205/24'])"
    },
    "dhcp4": {
        "type": "boolean",
        "description": "Enable DHCPv4 (cannot be combined with addresses or nameservers)"
    },
    "gateway4": {
        "type": "string",
        "description": "Default gateway (only one interface may have one)"
    },
    "nameservers": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Nameserver IP addresses"
    },
}


# === TOOLS ===

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_interfaces",
            description="List the host's live network interfaces",
            inputSchema={
                "type": "object",
                "properties": {
                    "prefix": {
                        "type": "string",
                        "description": "Only interfaces whose name starts with this (e.g., 'en')"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="get_interface",
            description="Get configured settings of one interface, or all interfaces",
            inputSchema={
                "type": "object",
                "properties": {
                    "interface": {
                        "type": "string",
                        "description": "Interface name; omit for all interfaces"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="set_interface",
            description=(
                "Set an interface's addresses, dhcp4, gateway and nameservers. "
                "OVERWRITES all existing settings of the interface."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "interface": {"type": "string", "description": "Interface name"},
                    **_INTERFACE_SETTINGS,
                },
                "required": ["interface"]
            }
        ),
        Tool(
            name="delete_interface",
            description=(
                "Remove addresses, the gateway or nameservers from an interface. "
                "The gateway is only removed if it matches the configured one."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "interface": {"type": "string", "description": "Interface name"},
                    "addresses": _INTERFACE_SETTINGS["addresses"],
                    "gateway4": _INTERFACE_SETTINGS["gateway4"],
                    "nameservers": _INTERFACE_SETTINGS["nameservers"],
                },
                "required": ["interface"]
            }
        ),
        Tool(
            name="init_interface",
            description="Clear all settings of a live interface and reset its running addresses",
            inputSchema={
                "type": "object",
                "properties": {
                    "interface": {"type": "string", "description": "Interface name"}
                },
                "required": ["interface"]
            }
        ),
        Tool(
            name="get_audit_log",
            description="Get recent interface configuration changes from the audit log",
            inputSchema={
                "type": "object",
                "properties": {
                    "interface": {"type": "string", "description": "Filter by interface"},
                    "operation": {
                        "type": "string",
                        "enum": ["init", "set", "delete"],
                        "description": "Filter by operation"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of records",
                        "default": 20
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="ntp_get",
            description="Get configured NTP servers",
            inputSchema={"type": "object", "properties": {}, "required": []}
        ),
        Tool(
            name="ntp_set",
            description="Replace the NTP servers and restart the ntp service",
            inputSchema={
                "type": "object",
                "properties": {
                    "servers": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "NTP server names or addresses"
                    }
                },
                "required": ["servers"]
            }
        ),
        Tool(
            name="ntp_enable",
            description="Start (restart) or stop the ntp service",
            inputSchema={
                "type": "object",
                "properties": {
                    "enabled": {"type": "boolean", "description": "True to start, false to stop"}
                },
                "required": ["enabled"]
            }
        ),
        Tool(
            name="sshd_get_port",
            description="Get the SSH daemon port",
            inputSchema={"type": "object", "properties": {}, "required": []}
        ),
        Tool(
            name="sshd_set_port",
            description="Set the SSH daemon port and restart sshd",
            inputSchema={
                "type": "object",
                "properties": {
                    "port": {"type": "integer", "description": "TCP port (1-65535)"}
                },
                "required": ["port"]
            }
        ),
        Tool(
            name="service_status",
            description="Get the systemd state of managed services",
            inputSchema={
                "type": "object",
                "properties": {
                    "services": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Service names (default: configured managed services)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="wait_for_port",
            description="Wait until a TCP port accepts connections (polls once per second)",
            inputSchema={
                "type": "object",
                "properties": {
                    "address": {"type": "string", "description": "IP address"},
                    "port": {"type": "integer", "description": "TCP port"},
                    "timeout": {
                        "type": "integer",
                        "description": "Seconds to wait",
                        "default": 30
                    }
                },
                "required": ["address", "port"]
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    interface = arguments.get("interface")

    async with timed_section(f"tool:{name}", subject=interface):
        try:
            if name == "list_interfaces":
                return await handle_list_interfaces(get_backend(), arguments.get("prefix"))

            elif name == "get_interface":
                return await handle_get_interface(get_backend(), interface)

            elif name == "set_interface":
                return await handle_set_interface(get_backend(), arguments)

            elif name == "delete_interface":
                return await handle_delete_interface(get_backend(), arguments)

            elif name == "init_interface":
                return await handle_init_interface(get_backend(), arguments["interface"])

            elif name == "get_audit_log":
                return await handle_get_audit_log(
                    interface,
                    arguments.get("operation"),
                    arguments.get("limit", 20)
                )

            elif name == "ntp_get":
                return await handle_ntp_get(get_settings())

            elif name == "ntp_set":
                return await handle_ntp_set(get_settings(), arguments["servers"])

            elif name == "ntp_enable":
                return await handle_ntp_enable(bool(arguments["enabled"]))

            elif name == "sshd_get_port":
                return await handle_sshd_get_port(get_settings())

            elif name == "sshd_set_port":
                return await handle_sshd_set_port(get_settings(), arguments["port"])

            elif name == "service_status":
                return await handle_service_status(get_settings(), arguments.get("services"))

            elif name == "wait_for_port":
                return await handle_wait_for_port(
                    arguments["address"],
                    arguments["port"],
                    arguments.get("timeout", 30)
                )

            else:
                return [TextContent(type="text", text=f"Unknown tool: {name}")]

        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return [TextContent(type="text", text=f"Error: {str(e)}")]


# === TOOL HANDLERS ===

def _text(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


def _view_from_args(args: dict) -> InterfaceView:
    return InterfaceView(
        addresses=args.get("addresses"),
        dhcp4=args.get("dhcp4"),
        gateway4=args.get("gateway4"),
        nameservers=args.get("nameservers"),
    )


async def handle_list_interfaces(backend, prefix: Optional[str]) -> list[TextContent]:
    """List live interface names."""
    names = await asyncio.to_thread(backend.list_interfaces, prefix)
    return _text({"interfaces": names})


async def handle_get_interface(backend, interface: Optional[str]) -> list[TextContent]:
    """Get configured interface settings."""
    found = await asyncio.to_thread(backend.get, interface)
    if found is None:
        return _text({"interface": interface, "found": False})

    return _text({
        "interfaces": {name: view.to_dict() for name, view in found}
    })


async def handle_set_interface(backend, args: dict) -> list[TextContent]:
    """Replace interface settings."""
    interface = args["interface"]
    view = _view_from_args(args)
    await asyncio.to_thread(backend.set, interface, view)

    return _text({
        "success": True,
        "interface": interface,
        "settings": view.to_dict(),
    })


async def handle_delete_interface(backend, args: dict) -> list[TextContent]:
    """Remove settings from an interface."""
    interface = args["interface"]
    view = InterfaceView(
        addresses=args.get("addresses"),
        gateway4=args.get("gateway4"),
        nameservers=args.get("nameservers"),
    )
    await asyncio.to_thread(backend.delete, interface, view)

    return _text({
        "success": True,
        "interface": interface,
        "removed": view.to_dict(),
    })


async def handle_init_interface(backend, interface: str) -> list[TextContent]:
    """Clear an interface."""
    await asyncio.to_thread(backend.init, interface)
    return _text({"success": True, "interface": interface})


async def handle_get_audit_log(
    interface: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 20
) -> list[TextContent]:
    """Get recent configuration changes from the audit log."""
    records = get_recent_changes(
        log_file=get_settings().log_dir / "audit.log",
        interface=interface,
        operation=operation,
        limit=limit
    )

    formatted_records = []
    for r in records:
        formatted_records.append({
            "timestamp": r.timestamp,
            "interface": r.interface,
            "operation": r.operation,
            "user": r.user,
            "success": r.success,
            "parameters": r.parameters,
            "before": r.before_state,
            "after": r.after_state,
            "error": r.error,
        })

    return _text({
        "total_records": len(formatted_records),
        "filters": {
            "interface": interface,
            "operation": operation,
            "limit": limit,
        },
        "records": formatted_records,
    })


def _helper() -> Optional[HelperClient]:
    """The helper client, when operations are delegated to the helper."""
    current = get_backend()
    return current if isinstance(current, HelperClient) else None


async def handle_ntp_get(cfg: Settings) -> list[TextContent]:
    helper = _helper()
    if helper:
        servers = await asyncio.to_thread(helper.ntp_servers)
    else:
        servers = await asyncio.to_thread(ntp.get_servers, cfg.ntp_conf)
    return _text({"servers": servers or []})


async def handle_ntp_set(cfg: Settings, servers: list[str]) -> list[TextContent]:
    helper = _helper()
    if helper:
        await asyncio.to_thread(helper.set_ntp_servers, servers)
    else:
        await asyncio.to_thread(ntp.set_servers, servers, cfg.ntp_conf)
    return _text({"success": True, "servers": servers})


async def handle_ntp_enable(enabled: bool) -> list[TextContent]:
    helper = _helper()
    if helper:
        await asyncio.to_thread(helper.enable_ntp if enabled else helper.disable_ntp)
    else:
        await asyncio.to_thread(ntp.enable if enabled else ntp.disable)
    return _text({"success": True, "enabled": enabled})


async def handle_sshd_get_port(cfg: Settings) -> list[TextContent]:
    helper = _helper()
    if helper:
        port = await asyncio.to_thread(helper.sshd_port)
    else:
        port = await asyncio.to_thread(sshd.get_port, cfg.sshd_config)
    return _text({"port": port})


async def handle_sshd_set_port(cfg: Settings, port: int) -> list[TextContent]:
    helper = _helper()
    if helper:
        await asyncio.to_thread(helper.set_sshd_port, int(port))
    else:
        await asyncio.to_thread(sshd.set_port, port, cfg.sshd_config)
    return _text({"success": True, "port": int(port)})


async def handle_service_status(cfg: Settings, names: Optional[list[str]]) -> list[TextContent]:
    helper = _helper()
    if helper:
        states = await asyncio.to_thread(helper.service_status, names)
    else:
        states = await asyncio.to_thread(services.status, names or cfg.managed_services)
    return _text({"services": dict(states)})


async def handle_wait_for_port(address: str, port: int, timeout: int) -> list[TextContent]:
    reachable = await asyncio.to_thread(services.waitfor_up, address, port, timeout)
    return _text({"address": address, "port": port, "reachable": reachable})


# === RESOURCES ===

@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("netplan://interfaces"),
            name="Configured interfaces",
            description="Merged netplan settings of every configured ethernet interface",
            mimeType="application/json",
        )
    ]


@server.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource."""
    if str(uri) == "netplan://interfaces":
        result = await handle_get_interface(get_backend(), None)
        return result[0].text

    return json.dumps({"error": f"Unknown resource: {uri}"})


def main():
    """Run the MCP server."""
    setup_logging()
    setup_audit_logging(get_settings().log_dir)

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
