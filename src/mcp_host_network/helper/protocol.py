"""Wire format between the unprivileged client and the privileged helper.

Request (helper stdin), one JSON object:
    {"node": "interface", "command": "set", "arg": "<base64 JSON>"}

Response (helper stdout), one JSON object:
    {"Ok": "<base64 JSON>"}    on success
    {"Err": "<message>"}       when the operation failed

Arguments and results are JSON wrapped in base64 so arbitrary values
travel safely inside the envelope.
"""
import base64
import binascii
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ..netplan.errors import HelperError, TransportFailure


class Node(str, Enum):
    """Subsystem a request is addressed to."""
    INTERFACE = "interface"
    NTP = "ntp"
    SSHD = "sshd"
    SERVICE = "service"


class SubCommand(str, Enum):
    """Operation requested from a node."""
    LIST = "list"
    GET = "get"
    SET = "set"
    DELETE = "delete"
    INIT = "init"
    STATUS = "status"
    ENABLE = "enable"
    DISABLE = "disable"


def encode_payload(value: Any) -> str:
    return base64.b64encode(json.dumps(value).encode("utf-8")).decode("ascii")


def decode_payload(data: str) -> Any:
    """
    Raises:
        ValueError: If ``data`` is not base64-encoded JSON
    """
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"fail to decode payload: {e}") from e
    return json.loads(raw)


@dataclass
class HelperRequest:
    """One request to the helper."""
    node: Node
    command: SubCommand
    arg: Any = None

    def to_json(self) -> bytes:
        return json.dumps({
            "node": self.node.value,
            "command": self.command.value,
            "arg": encode_payload(self.arg),
        }).encode("utf-8")

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "HelperRequest":
        """
        Raises:
            ValueError: If the request is malformed or names an unknown
                node or command
        """
        message = json.loads(data)
        if not isinstance(message, dict):
            raise ValueError("request must be a JSON object")
        try:
            return cls(
                node=Node(message["node"]),
                command=SubCommand(message["command"]),
                arg=decode_payload(message["arg"]),
            )
        except KeyError as e:
            raise ValueError(f"missing request field {e}") from e


def ok_response(value: Any) -> bytes:
    return json.dumps({"Ok": encode_payload(value)}).encode("utf-8")


def err_response(message: str) -> bytes:
    return json.dumps({"Err": message}).encode("utf-8")


def parse_response(data: Union[str, bytes]) -> Any:
    """
    Decode a helper response.

    Raises:
        TransportFailure: If the response is not valid JSON, not a known
            envelope, or its payload cannot be decoded
        HelperError: If the helper reported an error
    """
    try:
        message = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise TransportFailure(f"fail to parse response. {e}") from e

    if isinstance(message, dict) and len(message) == 1:
        if "Ok" in message and isinstance(message["Ok"], str):
            try:
                return decode_payload(message["Ok"])
            except ValueError as e:
                raise TransportFailure("fail to decode response.") from e
        if "Err" in message:
            raise HelperError(str(message["Err"]))

    raise TransportFailure(f"fail to parse response. unexpected message: {message!r}")
