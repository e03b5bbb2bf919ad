"""Selective snapshot decryption.

Envelopes are AES-256-GCM ciphertexts, base64 encoded as

    nonce (12 bytes) || ciphertext || tag (16 bytes)

under a key derived with PBKDF2-HMAC-SHA256 from the passphrase and the salt and
iteration count in the document's ``_encryption`` block. The plaintext of each
envelope is a UTF-8 JSON value that replaces the envelope wholesale.
"""

import asyncio
import base64
import binascii
import json
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from loguru import logger
from pydantic import ValidationError

from crema_client.crypto.nodes import (
    ENCRYPTION_KEY,
    METADATA_KEYS,
    EnvelopeNode,
    MappingNode,
    ScalarNode,
    SequenceNode,
    classify,
)
from crema_client.crypto.schemas import EncryptionMetaSchema
from crema_client.errors import DecryptionError
from settings import DEFAULT_ITERATIONS

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16


def _b64decode(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Malformed {what}: not valid base64") from e


def _iteration_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecryptionError(f"Invalid key derivation iterations: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise DecryptionError(f"Invalid key derivation iterations: {value!r}")
    if value < 1:
        raise DecryptionError(f"Invalid key derivation iterations: {value!r}")
    return int(value)


def derive_key(secret: str, salt_b64: str, iterations: int = DEFAULT_ITERATIONS) -> bytes:
    """Derive the 256-bit AES key for a passphrase."""
    if not secret:
        raise DecryptionError("Decryption key required but not provided")
    iterations = _iteration_count(iterations)
    if not isinstance(salt_b64, str):
        raise DecryptionError("Malformed salt: expected a base64 string")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=_b64decode(salt_b64, "salt"),
        iterations=iterations,
    )
    return kdf.derive(secret.encode("utf-8"))


def decrypt_value(data_b64: str, key: bytes) -> Any:
    """Decrypt one envelope payload into its JSON value."""
    try:
        blob = base64.b64decode(data_b64, validate=True)
        if len(blob) < NONCE_LENGTH + TAG_LENGTH:
            raise ValueError("ciphertext too short")
        plaintext = AESGCM(key).decrypt(blob[:NONCE_LENGTH], blob[NONCE_LENGTH:], None)
        return json.loads(plaintext.decode("utf-8"))
    except (InvalidTag, binascii.Error, ValueError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
        logger.error("Decryption failed: {}", type(e).__name__)
        raise DecryptionError() from e


async def decrypt_tree(value: Any, key: bytes) -> Any:
    """Replace every envelope below ``value`` with its plaintext.

    Mappings lose their encryption metadata keys. Sequence elements are
    decrypted concurrently; result order matches input order.
    """
    node = classify(value)
    if isinstance(node, EnvelopeNode):
        return await asyncio.to_thread(decrypt_value, node.data, key)
    if isinstance(node, SequenceNode):
        return list(await asyncio.gather(*(decrypt_tree(item, key) for item in node.items)))
    if isinstance(node, MappingNode):
        names = [k for k in node.fields if k not in METADATA_KEYS]
        values = await asyncio.gather(*(decrypt_tree(node.fields[k], key) for k in names))
        return dict(zip(names, values))
    if isinstance(node, ScalarNode):
        return node.value
    raise TypeError(f"Unhandled node: {node!r}")


def encryption_params(document: dict) -> tuple[str, int]:
    """Salt and iteration count from a document's ``_encryption`` block."""
    meta = document.get(ENCRYPTION_KEY)
    if isinstance(meta, dict) and meta.get("iterations") is None:
        meta = {k: v for k, v in meta.items() if k != "iterations"}
    try:
        params = EncryptionMetaSchema.model_validate(meta)
    except ValidationError as e:
        raise DecryptionError("Malformed encryption metadata") from e
    return params.salt, params.iterations


def is_encrypted(document: Any) -> bool:
    return isinstance(document, dict) and bool(document.get(ENCRYPTION_KEY))


async def decrypt_document(document: dict, secret: str | None) -> dict:
    """Decrypt a whole snapshot. Unencrypted documents are returned as-is."""
    if not is_encrypted(document):
        logger.debug("Snapshot is not encrypted, returning as-is")
        return document
    if not secret:
        raise DecryptionError("Decryption key required but not provided")

    salt, iterations = encryption_params(document)
    key = await asyncio.to_thread(derive_key, secret, salt, iterations)
    decrypted = await decrypt_tree(document, key)
    logger.info("Snapshot decrypted")
    return decrypted
