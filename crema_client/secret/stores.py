"""Where an interactively entered passphrase is retained."""

import os
from enum import StrEnum
from pathlib import Path

from loguru import logger

from crema_client.errors import ConfigurationError
from settings import SECRET_FILE


class RetentionPolicy(StrEnum):
    """How long a prompted passphrase is kept."""

    NONE = "none"
    SESSION = "session"
    PERSISTENT = "persistent"


def parse_retention(value: str | RetentionPolicy) -> RetentionPolicy:
    try:
        return RetentionPolicy(value)
    except ValueError:
        allowed = ", ".join(p.value for p in RetentionPolicy)
        raise ConfigurationError(f"Invalid secret retention: {value!r}. Must be one of {allowed}") from None


class NullSecretStore:
    """Retains nothing."""

    def get(self) -> str | None:
        return None

    def set(self, secret: str) -> None:
        pass

    def clear(self) -> None:
        pass


class SessionSecretStore:
    """Process-scoped slot; gone when the process exits."""

    def __init__(self):
        self._secret: str | None = None

    def get(self) -> str | None:
        return self._secret

    def set(self, secret: str) -> None:
        self._secret = secret
        logger.debug("Secret retained for this session")

    def clear(self) -> None:
        self._secret = None


class FileSecretStore:
    """Durable store: a single owner-readable file."""

    def __init__(self, path: Path = SECRET_FILE):
        self.path = Path(path)

    def get(self) -> str | None:
        if not self.path.exists():
            return None
        secret = self.path.read_text(encoding="utf-8").strip()
        return secret or None

    def set(self, secret: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Recreate so the file is owner-only before any byte is written
        self.path.unlink(missing_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(secret)
        logger.debug("Secret persisted to {}", self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


SecretStore = NullSecretStore | SessionSecretStore | FileSecretStore

# Shared by every client in the process
session_store = SessionSecretStore()


def store_for(policy: str | RetentionPolicy, path: Path = SECRET_FILE) -> SecretStore:
    """Store implementing a retention policy."""
    policy = parse_retention(policy)
    if policy is RetentionPolicy.NONE:
        return NullSecretStore()
    if policy is RetentionPolicy.SESSION:
        return session_store
    return FileSecretStore(path)
