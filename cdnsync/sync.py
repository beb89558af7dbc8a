from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Sequence

from cdnsync.diff import CompareMode, asset_key, compute_upload_set, index_remote
from cdnsync.errors import CdnSyncError, ConnectError, DeleteError, UploadError
from cdnsync.events import EventSink, LoggingSink
from cdnsync.models import Asset
from cdnsync.provider import Provider


logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[Sequence[Asset]], bool]


@dataclass(slots=True)
class UploadSummary:
    provider: str
    bucket: str
    planned_paths: list[str] = field(default_factory=list)
    uploaded_paths: list[str] = field(default_factory=list)
    skipped_paths: list[str] = field(default_factory=list)
    error: CdnSyncError | None = None
    declined: bool = False
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled

    @property
    def uploaded_count(self) -> int:
        return len(self.uploaded_paths)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_paths)


@dataclass(slots=True)
class _RunOutcome:
    uploaded: list[str] = field(default_factory=list)
    failure: UploadError | None = None
    cancelled: bool = False


def _upload_one(provider: Provider, asset: Asset) -> str:
    key = asset_key(asset)
    try:
        fh = asset.source.open("rb")
    except OSError as exc:
        raise UploadError(key, f"cannot read local file: {exc}") from exc
    with fh:
        provider.client.upload(provider.bucket_name, key, fh, provider.headers_for(key))
    logger.debug("Uploaded %s to %s", key, provider.bucket_name)
    return key


def _run_sequential(
    upload: Callable[[Asset], str],
    plan: Sequence[Asset],
    *,
    sink: EventSink,
    cancel: threading.Event | None,
) -> _RunOutcome:
    outcome = _RunOutcome()
    for asset in plan:
        if cancel is not None and cancel.is_set():
            outcome.cancelled = True
            break
        sink.emit("info", f"Uploading file path: {asset.source}")
        try:
            outcome.uploaded.append(upload(asset))
        except UploadError as exc:
            outcome.failure = exc
            break
    return outcome


def _run_pooled(
    upload: Callable[[Asset], str],
    plan: Sequence[Asset],
    *,
    sink: EventSink,
    cancel: threading.Event | None,
    workers: int,
) -> _RunOutcome:
    """Bounded pool: a new upload is only submitted while nothing has failed."""
    outcome = _RunOutcome()
    pending = deque(plan)
    in_flight: dict[Future[str], Asset] = {}

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cdnsync-upload") as executor:

        def fill() -> None:
            while pending and len(in_flight) < workers and outcome.failure is None:
                if cancel is not None and cancel.is_set():
                    outcome.cancelled = True
                    return
                asset = pending.popleft()
                sink.emit("info", f"Uploading file path: {asset.source}")
                in_flight[executor.submit(upload, asset)] = asset

        fill()
        while in_flight:
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for future in done:
                in_flight.pop(future)
                try:
                    outcome.uploaded.append(future.result())
                except UploadError as exc:
                    if outcome.failure is None:
                        outcome.failure = exc
            if not outcome.cancelled:
                fill()

    return outcome


def upload_assets(
    provider: Provider,
    assets: Sequence[Asset],
    *,
    sink: EventSink | None = None,
    confirm: ConfirmCallback | None = None,
    cancel: threading.Event | None = None,
    workers: int = 1,
    mode: CompareMode = "both",
) -> UploadSummary:
    """Upload the assets the bucket is missing or holds stale copies of.

    Stops at the first failed upload; files uploaded before that stay in the
    bucket. Declining ``confirm`` is reported as a successful no-op.
    """
    sink = sink or LoggingSink()
    summary = UploadSummary(provider=provider.name, bucket=provider.bucket_name)

    if not provider.connect():
        summary.error = ConnectError(
            f"Could not connect to {provider.name} bucket '{provider.bucket_name}'."
        )
        sink.emit("error", str(summary.error))
        return summary

    sink.emit("info", "Comparing local files and bucket...")
    try:
        remote = index_remote(provider.client.list_objects(provider.bucket_name))
    except ConnectError as exc:
        summary.error = exc
        sink.emit("error", str(exc))
        return summary

    plan = compute_upload_set(assets, remote, mode=mode)
    planned_keys = {asset_key(asset) for asset in plan}
    summary.planned_paths = [asset_key(asset) for asset in plan]
    summary.skipped_paths = [asset_key(a) for a in assets if asset_key(a) not in planned_keys]

    if not plan:
        sink.emit("info", "No new files to upload.")
        return summary

    if confirm is not None:
        sink.emit("success", "The files to be uploaded are....")
        for asset in plan:
            sink.emit("info", str(asset.source))
        if not confirm(plan):
            summary.declined = True
            sink.emit("error", "Upload cancelled.")
            return summary

    sink.emit("info", "Upload in progress......")

    def upload(asset: Asset) -> str:
        return _upload_one(provider, asset)

    if workers > 1:
        outcome = _run_pooled(upload, plan, sink=sink, cancel=cancel, workers=workers)
    else:
        outcome = _run_sequential(upload, plan, sink=sink, cancel=cancel)

    summary.uploaded_paths = outcome.uploaded
    summary.error = outcome.failure
    summary.cancelled = outcome.cancelled

    if outcome.failure is not None:
        sink.emit("error", f"Upload failed: {outcome.failure}")
    elif outcome.cancelled:
        sink.emit(
            "error",
            f"Upload interrupted after {len(outcome.uploaded)} of {len(plan)} file(s).",
        )
    else:
        sink.emit("success", "Upload completed successfully.")
    return summary


def empty_bucket(provider: Provider, *, sink: EventSink | None = None) -> bool:
    sink = sink or LoggingSink()
    bucket = provider.bucket_name

    if not provider.connect():
        sink.emit("error", f"Could not connect to {provider.name} bucket '{bucket}'.")
        return False

    sink.emit("info", "Emptying in progress...")
    try:
        contents = provider.client.list_objects(bucket)
        if not contents:
            sink.emit("success", f"The bucket {bucket} is already empty.")
            return True
        deleted = provider.client.delete_all(bucket)
    except (ConnectError, DeleteError) as exc:
        sink.emit("error", str(exc))
        return False

    logger.info("Deleted %d object(s) from %s", deleted, bucket)
    sink.emit("success", f"The bucket {bucket} is now empty.")
    return True
