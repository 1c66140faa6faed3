"""Tests for restclient/config/provider.py — config root and legacy source singletons."""

import restclient.config.provider as provider_mod
from restclient.config.dynamic import DynamicConfig
from restclient.config.models import RestClientConfigRoot


class TestGetConfigRoot:

    def test_loads_from_env_file(self, override_settings, tmp_path):
        env_file = tmp_path / "app.env"
        env_file.write_text(
            'rest-client."test-client".url=http://localhost:9000\n'
            "rest-client.multipart-post-encoder-mode=HTML5\n",
            encoding="utf-8",
        )
        override_settings(RESTCLIENT_ENV_FILE=str(env_file))
        root = provider_mod.get_config_root()
        assert isinstance(root, RestClientConfigRoot)
        assert root.get_config("test-client").url == "http://localhost:9000"
        assert root.multipart_post_encoder_mode == "HTML5"

    def test_loads_from_environment(self, override_settings, tmp_path):
        override_settings(**{
            "RESTCLIENT_ENV_FILE": str(tmp_path / "missing.env"),
            "rest-client.env-client.read-timeout": "750",
        })
        assert provider_mod.get_client_config("env-client").read_timeout == 750

    def test_unconfigured_prefix_is_none(self, override_settings, tmp_path):
        override_settings(RESTCLIENT_ENV_FILE=str(tmp_path / "missing.env"))
        assert provider_mod.get_client_config("nobody") is None

    def test_singleton_returns_same_instance(self, override_settings, tmp_path):
        override_settings(RESTCLIENT_ENV_FILE=str(tmp_path / "missing.env"))
        assert provider_mod.get_config_root() is provider_mod.get_config_root()

    def test_reset_reloads(self, override_settings, tmp_path):
        override_settings(RESTCLIENT_ENV_FILE=str(tmp_path / "missing.env"))
        first = provider_mod.get_config_root()
        provider_mod.reset()
        assert provider_mod.get_config_root() is not first


class TestGetDynamicConfig:

    def test_reads_legacy_keys(self, override_settings, tmp_path):
        env_file = tmp_path / "app.env"
        env_file.write_text("test-client/mp-rest/connectTimeout=42\n", encoding="utf-8")
        override_settings(RESTCLIENT_ENV_FILE=str(env_file))
        config = provider_mod.get_dynamic_config()
        assert isinstance(config, DynamicConfig)
        assert config.get_optional_value("test-client/mp-rest/connectTimeout", int) == 42
        assert provider_mod.get_dynamic_config() is config
