"""Encryption metadata schema."""

from pydantic import BaseModel

from settings import DEFAULT_ITERATIONS


class EncryptionMetaSchema(BaseModel):
    """Key derivation parameters (``_encryption``).

    ``iterations`` accepts integral floats such as ``100000.0``.
    """

    salt: str
    iterations: int = DEFAULT_ITERATIONS
