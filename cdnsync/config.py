from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from cdnsync.diff import COMPARE_MODES
from cdnsync.errors import ConfigError


SETTINGS_FILENAME = ".cdnsync.json"
DEFAULT_PROVIDER = "aws.s3"
DEFAULT_THRESHOLD = 10


@dataclass(frozen=True, slots=True)
class CdnSettings:
    use: bool = False
    cdn_url: str | None = None


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    name: str
    url: str | None
    threshold: int = DEFAULT_THRESHOLD
    version: str | None = None
    region: str | None = None
    credential_key: str | None = None
    credential_secret: str | None = None
    buckets: Mapping[str, Any] | str | None = None
    acl: str | None = None
    cache_control: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    expires: Any = None
    cdn: CdnSettings = field(default_factory=CdnSettings)
    endpoint_url: str | None = None
    repo_type: str = "model"
    revision: str = "main"

    @property
    def bucket(self) -> str:
        buckets = self.buckets
        if isinstance(buckets, Mapping):
            name = next(iter(buckets), "")
        else:
            name = buckets or ""
        return str(name).rstrip("/")

    @property
    def cdn_enabled(self) -> bool:
        # Anything but a real boolean (e.g. the string "true") keeps the CDN off.
        return self.cdn.use is True

    def rule_values(self) -> dict[str, Any]:
        """Values checked by the required-key validator, under their settings names."""
        return {
            "version": self.version,
            "region": self.region,
            "key": self.credential_key,
            "secret": self.credential_secret,
            "buckets": self.buckets,
            "url": self.url,
        }


@dataclass(slots=True)
class SyncSettings:
    root: str = "."
    default_provider: str = DEFAULT_PROVIDER
    compare: str = "both"
    include: dict[str, Any] = field(default_factory=dict)
    exclude: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    def root_path(self, base_dir: Path | None = None) -> Path:
        return ((base_dir or Path.cwd()) / self.root).resolve()


def settings_path(base_dir: Path | None = None) -> Path:
    return (base_dir or Path.cwd()).resolve() / SETTINGS_FILENAME


def load_settings(base_dir: Path | None = None) -> SyncSettings:
    path = settings_path(base_dir)
    if not path.exists():
        raise FileNotFoundError(
            f"Settings file not found: {path}. Run `cdnsync init` first."
        )

    with path.open("r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file must contain a JSON object: {path}")
    return settings_from_dict(data)


def settings_from_dict(data: Mapping[str, Any]) -> SyncSettings:
    compare = str(data.get("compare") or "both").strip().lower()
    if compare not in COMPARE_MODES:
        raise ConfigError(
            f"compare must be one of {', '.join(COMPARE_MODES)}, got {compare!r}"
        )
    return SyncSettings(
        root=str(data.get("root") or "."),
        default_provider=str(data.get("default") or DEFAULT_PROVIDER),
        compare=compare,
        include=dict(data.get("include") or {}),
        exclude=dict(data.get("exclude") or {}),
        raw=dict(data),
    )


def save_settings(data: Mapping[str, Any], base_dir: Path | None = None) -> Path:
    path = settings_path(base_dir)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
        fh.write("\n")
    return path


def starter_settings(provider: str = DEFAULT_PROVIDER, bucket: str | None = None) -> dict[str, Any]:
    """Settings written by ``cdnsync init``; credentials stay out of the file."""
    data: dict[str, Any] = {
        "default": provider,
        "url": "https://s3.amazonaws.com",
        "threshold": DEFAULT_THRESHOLD,
        "compare": "both",
        "root": ".",
        "include": {"directories": ["public"], "extensions": [], "patterns": []},
        "exclude": {"directories": [], "extensions": [], "patterns": [], "hidden": True},
        "providers": {
            "aws": {
                "s3": {
                    "version": "latest",
                    "region": "us-east-1",
                    "buckets": {bucket or "my-assets-bucket": "*"},
                    "acl": "public-read",
                    "cache-control": "max-age=31536000",
                    "metadata": {},
                    "expires": None,
                    "cloudfront": {"use": False, "cdn_url": ""},
                }
            },
            "hf": {
                "hub": {
                    "buckets": {bucket or "namespace/assets": "*"},
                    "repo_type": "dataset",
                    "revision": "main",
                    "url": "https://huggingface.co",
                    "cdn": {"use": False, "cdn_url": ""},
                }
            },
        },
    }
    return data


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def provider_section(raw: Mapping[str, Any], name: str) -> dict[str, Any]:
    """Return ``providers.<a>.<b>`` for a provider named ``a.b``."""
    section: Any = raw.get("providers") or {}
    for part in name.split("."):
        section = section.get(part) if isinstance(section, Mapping) else None
        if section is None:
            return {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"Provider section '{name}' must be an object")
    return dict(section)


def build_provider_config(
    raw: Mapping[str, Any],
    name: str,
    defaults: Mapping[str, Any] | None = None,
) -> ProviderConfig:
    section = provider_section(raw, name)
    merged = deep_merge(defaults or {}, section)
    credentials = merged.get("credentials") or {}
    if not isinstance(credentials, Mapping):
        raise ConfigError(f"Provider '{name}': credentials must be an object")
    cdn = section.get("cloudfront") or section.get("cdn") or {}
    if not isinstance(cdn, Mapping):
        raise ConfigError(f"Provider '{name}': cloudfront/cdn section must be an object")

    threshold = raw.get("threshold", merged.get("threshold", DEFAULT_THRESHOLD))
    try:
        threshold = int(threshold)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"threshold must be an integer, got {threshold!r}") from exc

    return ProviderConfig(
        name=name,
        url=section.get("url") or raw.get("url") or merged.get("url"),
        threshold=threshold,
        version=merged.get("version"),
        region=merged.get("region"),
        credential_key=credentials.get("key"),
        credential_secret=credentials.get("secret"),
        buckets=merged.get("buckets"),
        acl=merged.get("acl"),
        cache_control=merged.get("cache-control"),
        metadata=dict(merged.get("metadata") or {}),
        expires=merged.get("expires"),
        cdn=CdnSettings(use=cdn.get("use", False), cdn_url=cdn.get("cdn_url") or None),
        endpoint_url=merged.get("endpoint_url") or None,
        repo_type=str(merged.get("repo_type") or "model"),
        revision=str(merged.get("revision") or "main"),
    )


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Mapping, list, tuple)):
        return len(value) == 0
    return False


def validate_required(
    values: Mapping[str, Any],
    rules: Iterable[str],
    *,
    provider: str | None = None,
) -> None:
    missing = [key for key in rules if _is_blank(values.get(key))]
    if missing:
        raise ConfigError.for_missing(missing, provider=provider)
