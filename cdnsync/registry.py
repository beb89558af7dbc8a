from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping

from cdnsync.config import DEFAULT_PROVIDER, build_provider_config, validate_required
from cdnsync.credentials import resolve_aws_credentials, resolve_hf_credentials
from cdnsync.errors import ConfigError
from cdnsync.hf_backend import HF_DEFAULTS, HF_RULES, connect_hub
from cdnsync.provider import BackendSpec, Provider, RemoteClient
from cdnsync.s3_backend import S3_DEFAULTS, S3_RULES, connect_s3
from cdnsync.urls import bucket_url_for, hub_url_for, split_base_url


Validator = Callable[..., None]

BACKENDS: dict[str, BackendSpec] = {
    "aws.s3": BackendSpec(
        name="aws.s3",
        defaults=S3_DEFAULTS,
        rules=S3_RULES,
        connect=connect_s3,
        url_for=bucket_url_for,
        resolve_credentials=resolve_aws_credentials,
    ),
    "hf.hub": BackendSpec(
        name="hf.hub",
        defaults=HF_DEFAULTS,
        rules=HF_RULES,
        connect=connect_hub,
        url_for=hub_url_for,
        resolve_credentials=resolve_hf_credentials,
    ),
}


def available_providers() -> Iterable[str]:
    return sorted(BACKENDS)


def init_provider(
    raw_config: Mapping[str, Any],
    *,
    name: str | None = None,
    validator: Validator = validate_required,
    client_factory: Callable[..., RemoteClient] | None = None,
) -> Provider:
    """Build a validated provider. Never touches the network."""
    name = name or str(raw_config.get("default") or DEFAULT_PROVIDER)
    backend = BACKENDS.get(name)
    if backend is None:
        raise ConfigError(
            f"Unknown provider '{name}'. Available: {', '.join(available_providers())}"
        )

    config = build_provider_config(raw_config, name, backend.defaults)
    key, secret = backend.resolve_credentials(config.credential_key, config.credential_secret)
    config = replace(config, credential_key=key, credential_secret=secret)

    validator(config.rule_values(), backend.rules, provider=name)

    split_base_url(config.url or "")
    if config.endpoint_url:
        split_base_url(config.endpoint_url)
    if config.cdn_enabled:
        if not config.cdn.cdn_url:
            raise ConfigError.for_missing(["cdn_url"], provider=name)
        split_base_url(config.cdn.cdn_url)

    return Provider(config, backend, client_factory=client_factory)
