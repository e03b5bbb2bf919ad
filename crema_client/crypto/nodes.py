"""Tagged view of a JSON-like value.

Every value in a snapshot is exactly one of four node kinds. ``classify`` is the
only place that inspects shapes, so the decrypt walk never has to guess.
"""

from dataclasses import dataclass
from typing import Any

from crema_client.errors import DecryptionError

ENCRYPTION_KEY = "_encryption"
ENCRYPTED_FLAG = "_encrypted"
DATA_KEY = "_data"

METADATA_KEYS = frozenset({ENCRYPTION_KEY, ENCRYPTED_FLAG, DATA_KEY})


@dataclass(frozen=True)
class ScalarNode:
    value: str | int | float | bool | None


@dataclass(frozen=True)
class SequenceNode:
    items: list


@dataclass(frozen=True)
class MappingNode:
    fields: dict


@dataclass(frozen=True)
class EnvelopeNode:
    data: str


Node = ScalarNode | SequenceNode | MappingNode | EnvelopeNode


def is_envelope(value: Any) -> bool:
    """True for a mapping whose ``_encrypted`` flag is truthy."""
    return isinstance(value, dict) and bool(value.get(ENCRYPTED_FLAG))


def classify(value: Any) -> Node:
    """Tag a JSON-like value with its node kind."""
    if is_envelope(value):
        data = value.get(DATA_KEY)
        if not isinstance(data, str) or not data:
            raise DecryptionError("Malformed encrypted envelope: '_data' must be a non-empty string")
        return EnvelopeNode(data)
    if isinstance(value, dict):
        return MappingNode(value)
    if isinstance(value, (list, tuple)):
        return SequenceNode(list(value))
    if value is None or isinstance(value, (str, int, float, bool)):
        return ScalarNode(value)
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def contains_envelope(value: Any) -> bool:
    """True if any node below ``value`` is an encrypted envelope."""
    node = classify(value)
    if isinstance(node, EnvelopeNode):
        return True
    if isinstance(node, SequenceNode):
        return any(contains_envelope(item) for item in node.items)
    if isinstance(node, MappingNode):
        return any(contains_envelope(v) for k, v in node.fields.items() if k not in METADATA_KEYS)
    return False
