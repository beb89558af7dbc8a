from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class Asset:
    path: str
    source: Path
    size: int
    mtime: int


@dataclass(frozen=True, slots=True)
class RemoteObject:
    key: str
    size: int
    last_modified: int


@dataclass(frozen=True, slots=True)
class ObjectHeaders:
    acl: str | None = None
    cache_control: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    expires: Any = None
    content_type: str | None = None
