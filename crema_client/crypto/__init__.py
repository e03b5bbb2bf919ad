"""Snapshot decryption."""

from crema_client.crypto.engine import (
    decrypt_document,
    decrypt_tree,
    decrypt_value,
    derive_key,
    is_encrypted,
)
from crema_client.crypto.nodes import (
    EnvelopeNode,
    MappingNode,
    ScalarNode,
    SequenceNode,
    classify,
    contains_envelope,
)
from crema_client.crypto.schemas import EncryptionMetaSchema

__all__ = [
    # Engine
    "derive_key",
    "decrypt_value",
    "decrypt_tree",
    "decrypt_document",
    "is_encrypted",
    "EncryptionMetaSchema",
    # Nodes
    "ScalarNode",
    "SequenceNode",
    "MappingNode",
    "EnvelopeNode",
    "classify",
    "contains_envelope",
]
