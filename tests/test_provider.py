"""Tests for provider initialization, validation and connection."""

import pytest

from cdnsync import credentials, s3_backend
from cdnsync.config import validate_required
from cdnsync.errors import ConfigError, ConnectError
from cdnsync.registry import init_provider
from tests.conftest import FakeRemoteClient, s3_settings


@pytest.fixture
def no_aws_env(monkeypatch):
    monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("AWS_SECRET_ACCESS_KEY", raising=False)


def _without(settings, *keys):
    section = settings["providers"]["aws"]["s3"]
    for key in keys:
        section.pop(key, None)
    return settings


class TestInitProvider:
    def test_missing_region_fails_before_connect(self):
        calls = []

        with pytest.raises(ConfigError) as excinfo:
            init_provider(
                _without(s3_settings(), "region"),
                client_factory=lambda config: calls.append(config),
            )

        assert excinfo.value.missing == ("region",)
        assert "region" in str(excinfo.value)
        assert calls == []

    def test_every_missing_key_is_named(self, no_aws_env):
        settings = _without(s3_settings(), "version", "buckets", "credentials")
        settings.pop("url")

        with pytest.raises(ConfigError) as excinfo:
            init_provider(settings)

        assert set(excinfo.value.missing) == {"version", "key", "secret", "buckets", "url"}

    def test_credentials_fall_back_to_environment(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAENV")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "env-secret")

        provider = init_provider(_without(s3_settings(), "credentials"))

        assert provider.config.credential_key == "AKIAENV"
        assert provider.config.credential_secret == "env-secret"

    def test_unknown_provider(self):
        with pytest.raises(ConfigError, match="Unknown provider"):
            init_provider(s3_settings(), name="gcs.bucket")

    def test_cdn_enabled_without_url_is_rejected(self):
        with pytest.raises(ConfigError) as excinfo:
            init_provider(s3_settings(cloudfront={"use": True, "cdn_url": ""}))

        assert excinfo.value.missing == ("cdn_url",)

    def test_invalid_base_url_is_rejected(self):
        settings = s3_settings()
        settings["url"] = "cdn.example.com"

        with pytest.raises(ConfigError, match="Invalid URL"):
            init_provider(settings)

    def test_custom_validator_is_used(self):
        seen = {}

        def validator(values, rules, *, provider=None):
            seen["rules"] = tuple(rules)
            seen["provider"] = provider

        init_provider(s3_settings(), validator=validator)

        assert seen == {
            "rules": ("version", "region", "key", "secret", "buckets", "url"),
            "provider": "aws.s3",
        }


class TestProviderAccessors:
    def test_reads_parsed_configuration(self):
        provider = init_provider(
            s3_settings(
                buckets={"assets/": "*"},
                acl="private",
                cloudfront={"use": True, "cdn_url": "https://d123.cloudfront.net/"},
            )
        )

        assert provider.name == "aws.s3"
        assert provider.bucket_name == "assets"
        assert provider.acl_policy == "private"
        assert provider.cdn_enabled is True
        assert provider.cdn_base_url == "https://d123.cloudfront.net/"
        assert provider.threshold == 10
        assert provider.url_for("img/a.png") == "https://d123.cloudfront.net/img/a.png"

    def test_defaults_fill_unset_values(self):
        provider = init_provider(_without(s3_settings(), "acl", "cloudfront"))

        assert provider.acl_policy == "public-read"
        assert provider.cdn_enabled is False
        assert provider.url_for("img/a.png") == "https://assets.cdn.example.com/img/a.png"

    def test_string_cdn_flag_keeps_cdn_off(self):
        provider = init_provider(
            s3_settings(cloudfront={"use": "yes", "cdn_url": "https://d123.cloudfront.net"})
        )

        assert provider.cdn_enabled is False

    def test_headers_follow_config(self):
        provider = init_provider(s3_settings(expires="Thu, 01 Dec 2030 16:00:00 GMT"))

        headers = provider.headers_for("css/site.css")

        assert headers.acl == "public-read"
        assert headers.cache_control == "max-age=3600"
        assert headers.expires == "Thu, 01 Dec 2030 16:00:00 GMT"
        assert headers.content_type == "text/css"


class TestConnect:
    def test_connect_returns_true_and_exposes_client(self):
        client = FakeRemoteClient()
        provider = init_provider(s3_settings(), client_factory=lambda config: client)

        assert provider.connect() is True
        assert provider.client is client

    def test_connect_failure_is_swallowed(self):
        def factory(config):
            raise ConnectError("InvalidAccessKeyId")

        provider = init_provider(s3_settings(), client_factory=factory)

        assert provider.connect() is False
        assert provider.connected is False
        with pytest.raises(ConnectError):
            provider.client


class TestHubProvider:
    def _settings(self, **overrides):
        section = {
            "credentials": {"secret": "hf_example"},
            "buckets": {"acme/site-assets": "*"},
            "repo_type": "dataset",
        }
        section.update(overrides)
        return {"default": "hf.hub", "providers": {"hf": {"hub": section}}}

    def test_hub_provider_has_its_own_url_rule(self):
        provider = init_provider(self._settings())

        assert provider.name == "hf.hub"
        assert provider.bucket_name == "acme/site-assets"
        assert (
            provider.url_for("a.js")
            == "https://huggingface.co/datasets/acme/site-assets/resolve/main/a.js"
        )

    def test_hub_provider_requires_a_token(self, monkeypatch):
        monkeypatch.setattr(credentials, "resolve_hf_token", lambda token=None: None)

        with pytest.raises(ConfigError) as excinfo:
            init_provider(self._settings(credentials={}))

        assert excinfo.value.missing == ("secret",)


def test_validate_required_treats_blank_values_as_missing():
    with pytest.raises(ConfigError) as excinfo:
        validate_required({"a": "", "b": {}, "c": "x", "d": None}, ["a", "b", "c", "d"])

    assert excinfo.value.missing == ("a", "b", "d")


class TestMalformedSettings:
    def test_non_object_cdn_section_is_a_config_error(self):
        with pytest.raises(ConfigError, match="cloudfront/cdn"):
            init_provider(s3_settings(cloudfront=True))

    def test_non_object_credentials_is_a_config_error(self):
        with pytest.raises(ConfigError, match="credentials"):
            init_provider(s3_settings(credentials="AKIAEXAMPLE:secret"))

    def test_endpoint_without_scheme_is_rejected(self):
        with pytest.raises(ConfigError, match="Invalid URL"):
            init_provider(s3_settings(endpoint_url="localhost:9000"))

    def test_connect_reports_rejected_endpoint_as_false(self, monkeypatch):
        def _reject(*args, **kwargs):
            raise ValueError("Invalid endpoint: localhost:9000")

        monkeypatch.setattr(s3_backend.boto3, "client", _reject)
        provider = init_provider(s3_settings())

        assert provider.connect() is False
        assert not provider.connected


class TestUrlPrecedence:
    def _hub_settings(self, **top_level):
        settings = {
            "default": "hf.hub",
            "providers": {
                "hf": {
                    "hub": {
                        "credentials": {"secret": "hf_example"},
                        "buckets": {"acme/site-assets": "*"},
                    }
                }
            },
        }
        settings.update(top_level)
        return settings

    def test_top_level_url_beats_backend_default(self):
        provider = init_provider(self._hub_settings(url="https://hub.internal.example"))

        assert provider.url_for("a.js") == (
            "https://hub.internal.example/acme/site-assets/resolve/main/a.js"
        )

    def test_provider_section_url_beats_top_level(self):
        settings = self._hub_settings(url="https://s3.amazonaws.com")
        settings["providers"]["hf"]["hub"]["url"] = "https://huggingface.co"

        provider = init_provider(settings)

        assert provider.url_for("a.js").startswith("https://huggingface.co/acme/site-assets/")
