from __future__ import annotations

from typing import Iterable, Literal, Mapping, Sequence

from cdnsync.models import Asset, RemoteObject


CompareMode = Literal["both", "either"]
COMPARE_MODES = ("both", "either")


def normalize_key(path: str) -> str:
    value = path.replace("\\", "/")
    while value.startswith("./"):
        value = value[2:]
    return value.lstrip("/")


def asset_key(asset: Asset) -> str:
    return normalize_key(asset.path)


def index_remote(objects: Iterable[RemoteObject]) -> dict[str, RemoteObject]:
    return {normalize_key(obj.key): obj for obj in objects}


def is_stale(asset: Asset, remote: RemoteObject, mode: CompareMode = "both") -> bool:
    """Decide whether a local asset should replace its remote copy.

    ``both`` only reports a change when size *and* mtime differ, so a
    same-size edit (or an edit that keeps its mtime) is skipped. ``either``
    treats any difference as stale.
    """
    mtime_differs = asset.mtime != remote.last_modified
    size_differs = asset.size != remote.size
    if mode == "either":
        return mtime_differs or size_differs
    return mtime_differs and size_differs


def compute_upload_set(
    local_assets: Sequence[Asset],
    remote_objects: Mapping[str, RemoteObject],
    *,
    mode: CompareMode = "both",
) -> list[Asset]:
    if mode not in COMPARE_MODES:
        raise ValueError(f"compare mode must be one of {', '.join(COMPARE_MODES)}")

    # Fresh bucket: everything is new.
    if not remote_objects:
        return list(local_assets)

    selected: list[Asset] = []
    for asset in local_assets:
        remote = remote_objects.get(asset_key(asset))
        if remote is None or is_stale(asset, remote, mode):
            selected.append(asset)
    return selected
