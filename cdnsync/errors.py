"""Error kinds raised by the sync engine.

Backend adapters translate SDK exceptions into these before they reach the
orchestrator, so nothing above the adapter layer imports boto3 or
huggingface_hub error types.
"""

from __future__ import annotations

from typing import Iterable


class CdnSyncError(Exception):
    """Base class for every failure surfaced by cdnsync."""


class ConfigError(CdnSyncError):
    def __init__(self, message: str, *, missing: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing = tuple(missing)

    @classmethod
    def for_missing(cls, keys: Iterable[str], *, provider: str | None = None) -> "ConfigError":
        keys = tuple(keys)
        scope = f" for provider '{provider}'" if provider else ""
        return cls(
            f"Missing required configuration{scope}: {', '.join(keys)}",
            missing=keys,
        )


class ConnectError(CdnSyncError):
    pass


class UploadError(CdnSyncError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.reason = message


class DeleteError(CdnSyncError):
    pass
