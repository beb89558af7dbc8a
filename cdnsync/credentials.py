from __future__ import annotations

import logging
import os


logger = logging.getLogger(__name__)

AWS_KEY_ENV = "AWS_ACCESS_KEY_ID"
AWS_SECRET_ENV = "AWS_SECRET_ACCESS_KEY"
HF_TOKEN_ENVS = ("HF_TOKEN", "HUGGING_FACE_HUB_TOKEN")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def resolve_aws_credentials(
    key: str | None = None, secret: str | None = None
) -> tuple[str | None, str | None]:
    """Prefer values from the settings file, then the standard AWS variables."""
    return (
        _clean(key) or _clean(os.getenv(AWS_KEY_ENV)),
        _clean(secret) or _clean(os.getenv(AWS_SECRET_ENV)),
    )


def resolve_hf_token(config_token: str | None = None) -> str | None:
    """Resolve a Hub token from settings, env, or the huggingface_hub login cache."""
    token = _clean(config_token)
    if token:
        return token

    for env_name in HF_TOKEN_ENVS:
        token = _clean(os.getenv(env_name))
        if token:
            return token

    # Same lookup `hf auth login` writes to.
    try:
        from huggingface_hub import get_token  # type: ignore
    except ImportError:
        logger.debug("huggingface_hub is not installed; skipping cached token lookup")
        return None
    return _clean(get_token())


def resolve_hf_credentials(
    key: str | None = None, secret: str | None = None
) -> tuple[str | None, str | None]:
    # The Hub has no key/secret pair; the token travels as the secret.
    return _clean(key), resolve_hf_token(secret)
