"""Tests for pnodes.config — YAML configuration loading."""

import textwrap

import pytest

from pnodes.config import (
    DEFAULT_API_PATHS,
    ENV_API_BASE_URL,
    ENV_PRIMARY_RPC_URL,
    ENV_SECONDARY_RPC_URL,
    ConfigError,
    PnodesConfig,
    apply_env_overrides,
    load_config,
)


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (ENV_PRIMARY_RPC_URL, ENV_SECONDARY_RPC_URL, ENV_API_BASE_URL):
        monkeypatch.delenv(key, raising=False)


class TestPnodesConfigDefaults:
    """PnodesConfig should provide sensible defaults for every field."""

    def test_endpoint_defaults(self) -> None:
        cfg = PnodesConfig()
        assert cfg.primary_rpc_url == "https://rpc.xandeum.network"
        assert cfg.secondary_rpc_url == "https://api.mainnet-beta.solana.com"
        assert cfg.api_base_url is None
        assert cfg.api_paths == DEFAULT_API_PATHS

    def test_timeout_defaults(self) -> None:
        cfg = PnodesConfig()
        assert cfg.primary_timeout == 10.0
        assert cfg.secondary_timeout == 10.0
        assert cfg.tertiary_timeout == 15.0
        assert cfg.api_timeout == 5.0

    def test_simulation_defaults(self) -> None:
        cfg = PnodesConfig()
        assert cfg.simulation_count == 50
        assert cfg.force_simulation is False
        assert cfg.maxmind_city_db is None


class TestLoadConfigExplicitPath:
    """load_config(path=...) with an explicit file path."""

    def test_full_config(self, tmp_path: pytest.TempPathFactory) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            textwrap.dedent("""\
                primary_rpc_url: http://rpc.example.com
                secondary_rpc_url: http://gossip.example.com
                api_base_url: http://api.example.com
                api_paths: [/nodes]
                primary_timeout: 3
                secondary_timeout: 4.5
                tertiary_timeout: 6
                api_timeout: 2
                simulation_count: 12
                force_simulation: true
                maxmind_city_db: /data/GeoLite2-City.mmdb
            """),
            encoding="utf-8",
        )

        cfg = load_config(cfg_file)

        assert cfg.primary_rpc_url == "http://rpc.example.com"
        assert cfg.secondary_rpc_url == "http://gossip.example.com"
        assert cfg.api_base_url == "http://api.example.com"
        assert cfg.api_paths == ("/nodes",)
        assert cfg.primary_timeout == 3
        assert cfg.secondary_timeout == 4.5
        assert cfg.tertiary_timeout == 6
        assert cfg.api_timeout == 2
        assert cfg.simulation_count == 12
        assert cfg.force_simulation is True
        assert cfg.maxmind_city_db == "/data/GeoLite2-City.mmdb"

    def test_partial_config_uses_defaults(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("simulation_count: 5\n", encoding="utf-8")

        cfg = load_config(cfg_file)

        assert cfg.simulation_count == 5
        assert cfg.primary_rpc_url == "https://rpc.xandeum.network"
        assert cfg.tertiary_timeout == 15.0

    def test_empty_file_returns_defaults(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("", encoding="utf-8")

        assert load_config(cfg_file) == PnodesConfig()

    def test_unknown_keys_are_ignored(
        self, tmp_path: pytest.TempPathFactory, caplog: pytest.LogCaptureFixture
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            textwrap.dedent("""\
                simulation_count: 9
                some_future_key: true
            """),
            encoding="utf-8",
        )

        cfg = load_config(cfg_file)

        assert cfg.simulation_count == 9
        assert "some_future_key" in caplog.text

    def test_accepts_string_path(self, tmp_path: pytest.TempPathFactory) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("simulation_count: 1\n", encoding="utf-8")

        assert load_config(str(cfg_file)).simulation_count == 1


class TestLoadConfigMissingFile:
    """Behavior when the config file doesn't exist."""

    def test_explicit_path_not_found_raises(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "nonexistent.yaml")

    def test_no_default_file_returns_defaults(
        self, tmp_path: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import pnodes.config as config_mod

        monkeypatch.setattr(
            config_mod, "DEFAULT_CONFIG_PATH", tmp_path / "nope" / "config.yaml"
        )

        assert load_config() == PnodesConfig()


class TestLoadConfigInvalid:
    """load_config should raise ConfigError on malformed input."""

    def test_invalid_yaml_raises_config_error(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "bad.yaml"
        cfg_file.write_text(":\n  - :\n    bad: [", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(cfg_file)

    def test_non_mapping_top_level_raises(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "list.yaml"
        cfg_file.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_config(cfg_file)

    @pytest.mark.parametrize(
        "line",
        [
            "primary_timeout: 0",
            "tertiary_timeout: -1",
            "api_timeout: soon",
            "simulation_count: -3",
            "simulation_count: 2.5",
            "api_paths: /nodes",
        ],
    )
    def test_invalid_values_raise(
        self, tmp_path: pytest.TempPathFactory, line: str
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(line + "\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(cfg_file)


class TestEnvironmentOverrides:
    """Endpoint URLs can be overridden from the environment."""

    def test_env_beats_file(
        self, tmp_path: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("primary_rpc_url: http://file.example\n", encoding="utf-8")
        monkeypatch.setenv(ENV_PRIMARY_RPC_URL, "http://env.example")

        assert load_config(cfg_file).primary_rpc_url == "http://env.example"

    def test_explicit_environ_mapping(self) -> None:
        cfg = apply_env_overrides(
            PnodesConfig(),
            {
                ENV_SECONDARY_RPC_URL: "http://gossip.example",
                ENV_API_BASE_URL: "http://api.example",
            },
        )
        assert cfg.secondary_rpc_url == "http://gossip.example"
        assert cfg.api_base_url == "http://api.example"
        assert cfg.primary_rpc_url == "https://rpc.xandeum.network"

    def test_blank_values_ignored(self) -> None:
        cfg = apply_env_overrides(PnodesConfig(), {ENV_PRIMARY_RPC_URL: "   "})
        assert cfg == PnodesConfig()

    def test_original_not_mutated(self) -> None:
        original = PnodesConfig()
        apply_env_overrides(original, {ENV_PRIMARY_RPC_URL: "http://x"})
        assert original.primary_rpc_url == "https://rpc.xandeum.network"
