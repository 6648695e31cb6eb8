from __future__ import annotations


class CatalogSyncError(Exception):
    pass


class DecodingError(CatalogSyncError):
    def __init__(self, message: str = "The catalog response could not be decoded.") -> None:
        super().__init__(message)


class NotFound(CatalogSyncError):
    def __init__(self, message: str = "No catalog items matched the query.") -> None:
        super().__init__(message)


class TransportError(CatalogSyncError):
    def __init__(self, reason: str, *, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class SyncCancelledError(CatalogSyncError):
    def __init__(self, message: str = "The catalog request was cancelled.") -> None:
        super().__init__(message)


class ConfigurationError(CatalogSyncError):
    pass
