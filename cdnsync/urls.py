from __future__ import annotations

from urllib.parse import urlparse

from cdnsync.config import ProviderConfig
from cdnsync.errors import ConfigError


def split_base_url(url: str) -> tuple[str, str]:
    """Return ``(scheme, host)``; any path on the base URL is ignored."""
    parsed = urlparse((url or "").strip())
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError(f"Invalid URL (expected scheme://host): {url!r}")
    return parsed.scheme, parsed.netloc


def _clean_path(path: str) -> str:
    return path.replace("\\", "/").lstrip("/")


def join_url(scheme: str, host: str, path: str) -> str:
    return f"{scheme}://{host.rstrip('/')}/{_clean_path(path)}"


def cdn_url_for(config: ProviderConfig, path: str) -> str:
    scheme, host = split_base_url(config.cdn.cdn_url or "")
    return join_url(scheme, host, path)


def bucket_url_for(config: ProviderConfig, path: str) -> str:
    if config.cdn_enabled:
        return cdn_url_for(config, path)
    scheme, host = split_base_url(config.url or "")
    bucket = config.bucket
    if bucket:
        host = f"{bucket}.{host}"
    return join_url(scheme, host, path)


def hub_url_for(config: ProviderConfig, path: str) -> str:
    if config.cdn_enabled:
        return cdn_url_for(config, path)
    scheme, host = split_base_url(config.url or "")
    prefix = {"dataset": "datasets/", "space": "spaces/"}.get(config.repo_type, "")
    repo = config.bucket.strip("/")
    return join_url(scheme, host, f"{prefix}{repo}/resolve/{config.revision}/{_clean_path(path)}")
