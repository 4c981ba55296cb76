#!/usr/bin/env python3
"""Command-line front end for interface configuration.

Usage:
    ifcraft list [--prefix PREFIX]
    ifcraft get [INTERFACE]
    ifcraft set INTERFACE [--address CIDR ...] [--dhcp4 | --no-dhcp4]
                          [--gateway4 IP] [--nameserver IP ...]
    ifcraft delete INTERFACE [--address CIDR ...] [--gateway4 IP] [--nameserver IP ...]
    ifcraft init INTERFACE

Environment variables:
    IFCRAFT_NETPLAN_DIR   Netplan directory (default: /etc/netplan)
    IFCRAFT_USE_HELPER=1  Run operations through the privileged helper
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config.settings import load_settings
from .helper.client import HelperClient
from .netplan.engine import NetplanEngine
from .netplan.schema import InterfaceView
from .utils.audit_log import setup_audit_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ifcraft",
        description="Manage netplan ethernet interface settings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Static address with gateway and DNS (overwrites existing settings)
    ifcraft set eno3 --address 192.168.0.205/24 --gateway4 192.168.0.1 \\
        --nameserver 164.124.101.1

    # Remove one address and one nameserver
    ifcraft delete eno3 --address 192.168.0.205/24 --nameserver 164.124.101.1

    # Interfaces whose name starts with "en"
    ifcraft list --prefix en
""",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        help="Settings file (default: first ifcraft.yaml found)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List live interfaces")
    list_cmd.add_argument("--prefix", help="Only names starting with PREFIX")

    get_cmd = commands.add_parser("get", help="Show configured settings")
    get_cmd.add_argument("interface", nargs="?", help="Interface (default: all)")

    set_cmd = commands.add_parser("set", help="Replace an interface's settings")
    set_cmd.add_argument("interface")
    _add_setting_options(set_cmd)
    set_cmd.add_argument(
        "--dhcp4",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable DHCPv4",
    )

    delete_cmd = commands.add_parser("delete", help="Remove settings from an interface")
    delete_cmd.add_argument("interface")
    _add_setting_options(delete_cmd)

    init_cmd = commands.add_parser("init", help="Clear an interface's settings")
    init_cmd.add_argument("interface")

    return parser


def _add_setting_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--address",
        dest="addresses",
        action="append",
        help="Address in CIDR notation (repeatable)",
    )
    parser.add_argument("--gateway4", help="Default gateway address")
    parser.add_argument(
        "--nameserver",
        dest="nameservers",
        action="append",
        help="Nameserver address (repeatable)",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the ifcraft CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-5s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        settings = load_settings(args.settings)
        if settings.use_helper:
            backend = HelperClient(settings)
        else:
            setup_audit_logging(settings.log_dir)
            backend = NetplanEngine(settings)

        if args.command == "list":
            for name in backend.list_interfaces(args.prefix):
                print(name)

        elif args.command == "get":
            found = backend.get(args.interface)
            if found is None:
                logger.error(f"Interface not configured: {args.interface}")
                return 1
            print(json.dumps({name: view.to_dict() for name, view in found}, indent=2))

        elif args.command == "set":
            backend.set(args.interface, InterfaceView(
                addresses=args.addresses,
                dhcp4=args.dhcp4,
                gateway4=args.gateway4,
                nameservers=args.nameservers,
            ))

        elif args.command == "delete":
            backend.delete(args.interface, InterfaceView(
                addresses=args.addresses,
                gateway4=args.gateway4,
                nameservers=args.nameservers,
            ))

        elif args.command == "init":
            backend.init(args.interface)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
