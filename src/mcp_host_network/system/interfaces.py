"""Enumerate the host's live network interfaces."""
import socket
from typing import Optional


def list_interface_names(prefix: Optional[str] = None) -> list[str]:
    """Return live interface names, optionally only those starting with ``prefix``."""
    names = [name for _, name in socket.if_nameindex()]
    if prefix:
        names = [name for name in names if name.startswith(prefix)]
    return names
