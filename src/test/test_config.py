"""Tests for YAML configuration loading and the command line."""

import pytest
from pydantic import ValidationError

from office_whisperer.config import ServerConfig, build_config, load_config
from office_whisperer.run import create_dispatcher


class TestLoadConfig:

    def test_default_file(self):
        config = load_config()
        assert config["server"]["name"] == "office-whisperer"
        assert config["log_level"] == "INFO"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_invalid_yaml(self, tmp_path):
        import yaml

        path = tmp_path / "bad.yaml"
        path.write_text("server: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_config(str(path))


class TestBuildConfig:

    def test_defaults(self):
        config = build_config()
        assert config.data_path is None
        assert config.max_workers == 8
        assert config.server.protocol_version == "2025-06-18"

    def test_overrides_win(self, tmp_path):
        config = build_config(log_level="debug", data_path=str(tmp_path))
        assert config.log_level == "DEBUG"
        assert config.data_path == str(tmp_path)

    def test_none_overrides_ignored(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("log_level: WARNING\nmax_workers: 2\n")
        config = build_config(str(path), log_level=None, data_path=None)
        assert config.log_level == "WARNING"
        assert config.max_workers == 2

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            ServerConfig(log_level="LOUD")

    def test_max_workers_positive(self):
        with pytest.raises(ValidationError):
            ServerConfig(max_workers=0)


class TestCreateDispatcher:

    def test_wires_every_tool(self, tmp_path):
        dispatcher = create_dispatcher(ServerConfig(data_path=str(tmp_path / "data")))
        assert len(dispatcher.registry) == 141
        assert (tmp_path / "data").is_dir()

    def test_server_info_from_config(self):
        config = ServerConfig(server={"name": "custom", "version": "9.9"})
        dispatcher = create_dispatcher(config)
        assert dispatcher.server_name == "custom"
        assert dispatcher.server_version == "9.9"


class TestMain:

    def test_bad_config_exits_with_code_2(self, tmp_path):
        from office_whisperer.run import main

        with pytest.raises(SystemExit) as exc:
            main(["--config", str(tmp_path / "nope.yaml")])
        assert exc.value.code == 2

    def test_rejects_unknown_log_level(self):
        from office_whisperer.run import main

        with pytest.raises(SystemExit):
            main(["--log-level", "LOUD"])
