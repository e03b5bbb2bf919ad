"""Decryption secret acquisition."""

from crema_client.secret.provider import SecretProvider, env_token, no_prompt, terminal_prompt
from crema_client.secret.stores import (
    FileSecretStore,
    NullSecretStore,
    RetentionPolicy,
    SessionSecretStore,
    session_store,
    store_for,
)

__all__ = [
    "SecretProvider",
    "env_token",
    "terminal_prompt",
    "no_prompt",
    "RetentionPolicy",
    "NullSecretStore",
    "SessionSecretStore",
    "FileSecretStore",
    "session_store",
    "store_for",
]
