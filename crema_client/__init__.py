"""Encrypted time-range metrics client."""

from crema_client.base import BaseClient
from crema_client.cache import CremaClient, MetricsRecord, Mode
from crema_client.errors import (
    ConfigurationError,
    CremaDataAbsentError,
    CremaError,
    DecryptionError,
    FetchError,
    InvalidSnapshotError,
    PathResolutionError,
    PeriodNotFoundError,
)
from crema_client.paths import PathResolver
from crema_client.secret import RetentionPolicy, SecretProvider

__version__ = "0.1.0"

__all__ = [
    # Clients
    "BaseClient",
    "CremaClient",
    "Mode",
    "MetricsRecord",
    # Collaborators
    "PathResolver",
    "SecretProvider",
    "RetentionPolicy",
    # Errors
    "CremaError",
    "ConfigurationError",
    "PathResolutionError",
    "FetchError",
    "InvalidSnapshotError",
    "PeriodNotFoundError",
    "DecryptionError",
    "CremaDataAbsentError",
]
