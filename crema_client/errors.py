"""Client errors."""


class CremaError(Exception):
    """Base error for the metrics access layer."""

    def __init__(self, message: str = "Crema client error"):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(CremaError):
    """Invalid client configuration (mode, retention policy)."""


class PathResolutionError(CremaError):
    """Snapshot path could not be resolved.

    Never raised by ``PathResolver``: resolution degrades to a default root and
    the failure surfaces as a ``FetchError`` instead.
    """


class FetchError(CremaError):
    """Non-success HTTP response or network failure."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class InvalidSnapshotError(CremaError):
    """Snapshot or API response body has the wrong shape."""


class PeriodNotFoundError(CremaError):
    """Requested period and all its fallbacks are absent from the snapshot."""

    def __init__(self, period: str, available: list[str]):
        self.period = period
        self.available = available
        listed = ", ".join(available) if available else "none"
        super().__init__(f"Time range '{period}' not found in snapshot (available: {listed})")


class DecryptionError(CremaError):
    """Encrypted data could not be decrypted."""

    def __init__(self, message: str = "Failed to decrypt data. Invalid key or corrupted data."):
        super().__init__(message)


class CremaDataAbsentError(CremaError):
    """Snapshot carries no crema discovery data."""

    def __init__(self, message: str = "Crema data not found in snapshot"):
        super().__init__(message)
