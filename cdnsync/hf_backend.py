"""Hugging Face Hub repository used as an asset bucket."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, BinaryIO

from cdnsync.config import ProviderConfig
from cdnsync.errors import ConnectError, DeleteError, UploadError
from cdnsync.models import ObjectHeaders, RemoteObject


logger = logging.getLogger(__name__)

HF_DEFAULTS: dict[str, Any] = {
    "url": "https://huggingface.co",
    "repo_type": "model",
    "revision": "main",
}
HF_RULES = ("secret", "buckets", "url")
# Every Hub repo carries this file; it is repo plumbing, not an asset.
REMOTE_EXCLUDED_PATHS = {".gitattributes"}


def _load_hf_symbols():
    try:
        from huggingface_hub import CommitOperationDelete, HfApi  # type: ignore
    except ImportError as exc:
        raise ConnectError(
            "huggingface_hub is required for the hf.hub provider. Install dependencies first."
        ) from exc
    return HfApi, CommitOperationDelete


@contextmanager
def _quiet_progress_bars():
    """Keep huggingface_hub's own tqdm bars out of the event stream."""
    try:
        from huggingface_hub.utils import (  # type: ignore
            are_progress_bars_disabled,
            disable_progress_bars,
            enable_progress_bars,
        )
    except ImportError:
        yield
        return

    was_disabled = bool(are_progress_bars_disabled())
    if not was_disabled:
        disable_progress_bars()
    try:
        yield
    finally:
        if not was_disabled:
            enable_progress_bars()


def _normalize_remote_path(path: str) -> str:
    return path.replace("\\", "/").lstrip("/")


def _commit_timestamp(entry: Any) -> int:
    last_commit = getattr(entry, "last_commit", None)
    date = getattr(last_commit, "date", None)
    if isinstance(date, datetime):
        return int(date.timestamp())
    return 0


class HubClient:
    """Remote client over ``huggingface_hub.HfApi``. The bucket is a repo id."""

    def __init__(self, api: Any, *, repo_type: str = "model", revision: str = "main") -> None:
        self._api = api
        self._repo_type = repo_type
        self._revision = revision

    def _list_files(self, bucket: str) -> list[Any]:
        entries = self._api.list_repo_tree(
            repo_id=bucket,
            recursive=True,
            expand=True,
            revision=self._revision,
            repo_type=self._repo_type,
        )
        files = []
        for entry in entries:
            # Folders come back without a size.
            if getattr(entry, "size", None) is None:
                continue
            path = _normalize_remote_path(str(entry.path))
            if not path or path in REMOTE_EXCLUDED_PATHS:
                continue
            files.append(entry)
        return files

    def list_objects(self, bucket: str) -> list[RemoteObject]:
        try:
            entries = self._list_files(bucket)
        except Exception as exc:
            raise ConnectError(f"Could not list repo '{bucket}': {exc}") from exc
        return [
            RemoteObject(
                key=_normalize_remote_path(str(entry.path)),
                size=int(entry.size),
                last_modified=_commit_timestamp(entry),
            )
            for entry in entries
        ]

    def upload(self, bucket: str, key: str, content: BinaryIO, headers: ObjectHeaders) -> None:
        if headers.acl or headers.cache_control or headers.expires:
            logger.debug("Hub uploads ignore ACL/cache headers for %s", key)
        try:
            with _quiet_progress_bars():
                self._api.upload_file(
                    path_or_fileobj=content,
                    path_in_repo=key,
                    repo_id=bucket,
                    repo_type=self._repo_type,
                    revision=self._revision,
                    commit_message=f"cdnsync upload: {key}",
                )
        except Exception as exc:
            raise UploadError(key, str(exc)) from exc

    def delete_all(self, bucket: str) -> int:
        _, CommitOperationDelete = _load_hf_symbols()
        try:
            paths = [_normalize_remote_path(str(entry.path)) for entry in self._list_files(bucket)]
            if not paths:
                return 0
            self._api.create_commit(
                repo_id=bucket,
                operations=[CommitOperationDelete(path_in_repo=path) for path in paths],
                commit_message=f"cdnsync: empty {len(paths)} file(s)",
                repo_type=self._repo_type,
                revision=self._revision,
            )
        except Exception as exc:
            raise DeleteError(f"Could not empty repo '{bucket}': {exc}") from exc
        return len(paths)


def connect_hub(config: ProviderConfig) -> HubClient:
    HfApi, _ = _load_hf_symbols()
    endpoint = config.endpoint_url or config.url
    api = HfApi(endpoint=endpoint, token=config.credential_secret)
    try:
        api.repo_info(repo_id=config.bucket, repo_type=config.repo_type, revision=config.revision)
    except Exception as exc:
        raise ConnectError(
            f"Failed to access {config.repo_type} repo '{config.bucket}': {exc}"
        ) from exc

    logger.info("Connected to hub repo %s (%s)", config.bucket, config.repo_type)
    return HubClient(api, repo_type=config.repo_type, revision=config.revision)
