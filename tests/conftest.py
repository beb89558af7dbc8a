from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import pytest

from cdnsync.errors import UploadError
from cdnsync.models import Asset, ObjectHeaders, RemoteObject
from cdnsync.registry import init_provider


class FakeRemoteClient:
    """In-memory stand-in for a backend client."""

    def __init__(
        self,
        objects: list[RemoteObject] | None = None,
        *,
        fail_on: set[str] | None = None,
        list_error: Exception | None = None,
        delete_error: Exception | None = None,
    ) -> None:
        self.objects = list(objects or [])
        self.fail_on = set(fail_on or ())
        self.list_error = list_error
        self.delete_error = delete_error
        self.attempts: list[str] = []
        self.uploads: list[tuple[str, str, bytes, ObjectHeaders]] = []
        self.delete_calls = 0
        self.before_upload = None
        self.after_upload = None
        self._lock = threading.Lock()

    def list_objects(self, bucket: str) -> list[RemoteObject]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.objects)

    def upload(self, bucket: str, key: str, content, headers: ObjectHeaders) -> None:
        with self._lock:
            self.attempts.append(key)
        if self.before_upload is not None:
            self.before_upload(key)
        if key in self.fail_on:
            raise UploadError(key, "simulated failure")
        data = content.read()
        with self._lock:
            self.uploads.append((bucket, key, data, headers))
        if self.after_upload is not None:
            self.after_upload(key)

    def delete_all(self, bucket: str) -> int:
        self.delete_calls += 1
        if self.delete_error is not None:
            raise self.delete_error
        count = len(self.objects)
        self.objects = []
        return count

    @property
    def uploaded_keys(self) -> list[str]:
        return [key for _, key, _, _ in self.uploads]


def s3_settings(**overrides: Any) -> dict[str, Any]:
    section: dict[str, Any] = {
        "version": "latest",
        "region": "us-east-1",
        "credentials": {"key": "AKIAEXAMPLE", "secret": "secret-example"},
        "buckets": {"assets": "*"},
        "acl": "public-read",
        "cache-control": "max-age=3600",
        "metadata": {"team": "web"},
        "expires": None,
        "cloudfront": {"use": False, "cdn_url": ""},
    }
    section.update(overrides)
    return {
        "default": "aws.s3",
        "url": "https://cdn.example.com",
        "threshold": 10,
        "providers": {"aws": {"s3": section}},
    }


@pytest.fixture
def fake_client() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def make_provider():
    def _make(client: FakeRemoteClient, **overrides: Any):
        return init_provider(s3_settings(**overrides), client_factory=lambda config: client)

    return _make


@pytest.fixture
def asset_files(tmp_path: Path):
    """Create real files and return Asset records pointing at them."""

    def _make(*names: str, size: int = 10, mtime: int = 1_700_000_000) -> list[Asset]:
        assets = []
        for name in names:
            source = tmp_path / name
            source.parent.mkdir(parents=True, exist_ok=True)
            source.write_bytes(f"content of {name}".encode())
            assets.append(Asset(path=name, source=source, size=size, mtime=mtime))
        return assets

    return _make
