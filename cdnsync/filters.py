from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath


def _normalize_pattern(pattern: str) -> str:
    normalized = pattern.strip().replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _normalize_extension(extension: str) -> str:
    value = extension.strip().lower()
    if value and not value.startswith("."):
        value = f".{value}"
    return value


def _directory_pattern(directory: str) -> str:
    value = _normalize_pattern(directory).strip("/")
    return f"{value}/" if value else ""


def _match_pattern(path: str, pattern: str) -> bool:
    if not pattern:
        return False
    if pattern.endswith("/"):
        return path.startswith(pattern)
    path_obj = PurePosixPath(path)
    # Anchored to the scan root, or matched at any depth.
    return path_obj.match(pattern) or path_obj.match(f"**/{pattern}")


def _is_hidden(path: str) -> bool:
    return any(part.startswith(".") for part in path.split("/"))


@dataclass(slots=True)
class PathFilter:
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    include_extensions: tuple[str, ...] = ()
    exclude_extensions: tuple[str, ...] = ()
    exclude_hidden: bool = True

    def matches(self, path: str) -> bool:
        """``path`` is a forward-slash path relative to the scan root."""
        suffix = PurePosixPath(path).suffix.lower()
        if self.exclude_hidden and _is_hidden(path):
            return False
        if self.include_patterns and not any(
            _match_pattern(path, pattern) for pattern in self.include_patterns
        ):
            return False
        if self.include_extensions and suffix not in self.include_extensions:
            return False
        if suffix and suffix in self.exclude_extensions:
            return False
        if any(_match_pattern(path, pattern) for pattern in self.exclude_patterns):
            return False
        return True


def build_path_filter(
    include: dict | None = None,
    exclude: dict | None = None,
) -> PathFilter:
    """Build a filter from the ``include``/``exclude`` sections of the settings file."""
    include = include or {}
    exclude = exclude or {}

    include_patterns = [_directory_pattern(d) for d in include.get("directories") or []]
    include_patterns += [_normalize_pattern(p) for p in include.get("patterns") or []]
    exclude_patterns = [_directory_pattern(d) for d in exclude.get("directories") or []]
    exclude_patterns += [_normalize_pattern(p) for p in exclude.get("patterns") or []]
    exclude_patterns += [_normalize_pattern(f) for f in exclude.get("files") or []]

    return PathFilter(
        include_patterns=tuple(p for p in include_patterns if p),
        exclude_patterns=tuple(p for p in exclude_patterns if p),
        include_extensions=tuple(
            e for e in (_normalize_extension(x) for x in include.get("extensions") or []) if e
        ),
        exclude_extensions=tuple(
            e for e in (_normalize_extension(x) for x in exclude.get("extensions") or []) if e
        ),
        exclude_hidden=bool(exclude.get("hidden", True)),
    )
