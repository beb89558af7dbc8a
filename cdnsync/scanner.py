from __future__ import annotations

from pathlib import Path

from cdnsync.config import SETTINGS_FILENAME
from cdnsync.filters import PathFilter
from cdnsync.models import Asset


EXCLUDED_FILENAMES = {SETTINGS_FILENAME}


def scan_assets(root: Path, path_filter: PathFilter | None = None) -> list[Asset]:
    """Enumerate files under ``root`` in a stable, sorted order."""
    root = root.resolve()
    path_filter = path_filter or PathFilter()
    assets: list[Asset] = []

    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file():
            continue
        if file_path.name in EXCLUDED_FILENAMES:
            continue
        rel_parts = file_path.relative_to(root).parts
        if not path_filter.matches("/".join(rel_parts)):
            continue

        stat = file_path.stat()
        assets.append(
            Asset(
                path=str(Path(*rel_parts)),
                source=file_path,
                size=stat.st_size,
                mtime=int(stat.st_mtime),
            )
        )

    return assets
