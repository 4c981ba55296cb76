"""Merge operations on netplan documents.

All operations mutate the base document in place and keep the ethernet
list sorted by interface name.
"""
import logging

from .errors import InterfaceNotFound
from .schema import InterfaceConfig, InterfaceView, NetplanDocument

logger = logging.getLogger(__name__)


def merge_documents(base: NetplanDocument, incoming: NetplanDocument) -> NetplanDocument:
    """
    Fold ``incoming`` into ``base`` (later documents win).

    - version/renderer: taken from ``incoming`` only when set there
    - ethernets: an incoming interface replaces the whole entry of the
      same name, or is added
    - bridges: replace-or-insert per bridge, but only when ``base``
      already has a bridges mapping

    Returns:
        ``base``, for chaining
    """
    if incoming.version is not None:
        base.version = incoming.version
    if incoming.renderer is not None:
        base.renderer = incoming.renderer

    for name, config in incoming.ethernets:
        for index, (existing, _) in enumerate(base.ethernets):
            if existing == name:
                base.ethernets[index] = (name, config)
                break
        else:
            base.ethernets.append((name, config))
    base.sort_interfaces()

    if incoming.bridges is not None and base.bridges is not None:
        for name, bridge in incoming.bridges.items():
            base.bridges[name] = bridge

    return base


def set_interface(document: NetplanDocument, name: str, config: InterfaceConfig) -> None:
    """Replace the named interface's settings entirely (insert if new)."""
    document.upsert_interface(name, config)


def init_interface(document: NetplanDocument, name: str) -> None:
    """Reset the named interface to all-unset settings."""
    set_interface(document, name, InterfaceConfig())


def subtract_interface(document: NetplanDocument, name: str, removal: InterfaceView) -> None:
    """
    Remove addresses, gateway and nameservers from one interface.

    The gateway is cleared only if ``removal.gateway4`` equals the current
    one. The interface entry itself always stays, even when empty.

    Raises:
        InterfaceNotFound: If the interface is not in the document
    """
    config = document.interface(name)
    if config is None:
        raise InterfaceNotFound(name)

    if removal.addresses and config.addresses is not None:
        config.addresses = [a for a in config.addresses if a not in removal.addresses]

    if removal.gateway4 is not None and config.gateway4 == removal.gateway4:
        config.gateway4 = None

    if removal.nameservers and config.nameservers is not None:
        for role, values in config.nameservers.items():
            config.nameservers[role] = [v for v in values if v not in removal.nameservers]

    logger.debug(f"Subtracted {removal} from {name}")
