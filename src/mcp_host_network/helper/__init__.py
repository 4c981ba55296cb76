"""Privileged helper: run interface operations in a separate root process."""
from .client import HelperClient
from .dispatch import HelperDispatcher
from .protocol import (
    HelperRequest,
    Node,
    SubCommand,
    decode_payload,
    encode_payload,
    err_response,
    ok_response,
    parse_response,
)

__all__ = [
    "HelperClient",
    "HelperDispatcher",
    "HelperRequest",
    "Node",
    "SubCommand",
    "decode_payload",
    "encode_payload",
    "err_response",
    "ok_response",
    "parse_response",
]
