from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Mapping, Protocol

from cdnsync.config import ProviderConfig
from cdnsync.errors import ConnectError
from cdnsync.models import ObjectHeaders, RemoteObject


logger = logging.getLogger(__name__)


class RemoteClient(Protocol):
    def list_objects(self, bucket: str) -> list[RemoteObject]: ...

    def upload(self, bucket: str, key: str, content: BinaryIO, headers: ObjectHeaders) -> None: ...

    def delete_all(self, bucket: str) -> int: ...


CredentialResolver = Callable[[str | None, str | None], tuple[str | None, str | None]]


@dataclass(frozen=True, slots=True)
class BackendSpec:
    """Everything that differs between storage backends."""

    name: str
    defaults: Mapping[str, Any]
    rules: tuple[str, ...]
    connect: Callable[[ProviderConfig], RemoteClient]
    url_for: Callable[[ProviderConfig, str], str]
    resolve_credentials: CredentialResolver


class Provider:
    def __init__(
        self,
        config: ProviderConfig,
        backend: BackendSpec,
        *,
        client_factory: Callable[[ProviderConfig], RemoteClient] | None = None,
    ) -> None:
        self._config = config
        self._backend = backend
        self._client_factory = client_factory or backend.connect
        self._client: RemoteClient | None = None

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def bucket_name(self) -> str:
        return self._config.bucket

    @property
    def acl_policy(self) -> str | None:
        return self._config.acl

    @property
    def cdn_enabled(self) -> bool:
        return self._config.cdn_enabled

    @property
    def cdn_base_url(self) -> str | None:
        return self._config.cdn.cdn_url

    @property
    def threshold(self) -> int:
        return self._config.threshold

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> RemoteClient:
        if self._client is None:
            raise ConnectError(f"Provider '{self.name}' is not connected")
        return self._client

    def connect(self) -> bool:
        """Open a backend session. Connection details stay in the log."""
        try:
            self._client = self._client_factory(self._config)
        except ConnectError as exc:
            logger.warning("Connection to %s failed: %s", self.name, exc)
            self._client = None
            return False
        return True

    def headers_for(self, key: str) -> ObjectHeaders:
        content_type, _ = mimetypes.guess_type(key)
        return ObjectHeaders(
            acl=self._config.acl,
            cache_control=self._config.cache_control,
            metadata=dict(self._config.metadata),
            expires=self._config.expires,
            content_type=content_type,
        )

    def url_for(self, path: str) -> str:
        return self._backend.url_for(self._config, path)
