"""
Unit Tests for Configuration Management

Tests cover:
- Connection parameter validation and normalization
- Stream/position/reconnect setting bounds
- YAML loading and saving
- Configuration lookup order
"""

import pytest
import yaml
import dataclasses

from ntrip_stream.common.config import (
    ConnectionConfig, StreamSettings, PositionConfig, ReconnectConfig,
    NtripClientConfig, get_config
)
from ntrip_stream.exceptions import ConfigurationError


class TestConnectionConfig:

    def test_valid(self):
        config = ConnectionConfig("caster.test", "2101", "TEST", "u", "p")
        config.validate()
        assert config.endpoint == "caster.test:2101/TEST"

    def test_int_port_normalized(self):
        assert ConnectionConfig(host="h", port=2101).port == "2101"

    def test_mountpoint_slash_stripped(self):
        assert ConnectionConfig(mountpoint="/RTCM3").mountpoint == "RTCM3"

    @pytest.mark.parametrize("field", ['host', 'port', 'mountpoint', 'username', 'password'])
    def test_empty_field_rejected(self, field):
        values = dict(host="h", port="2101", mountpoint="M", username="u", password="p")
        values[field] = ""

        with pytest.raises(ConfigurationError) as exc_info:
            ConnectionConfig(**values).validate()

        assert field in str(exc_info.value)

    # superscript and Arabic-Indic digits pass str.isdigit()
    @pytest.mark.parametrize("port", [
        "ntrip", "-1", "0", "70000", "21 01", "\u00b2", "\u0662\u0661\u0660\u0661"
    ])
    def test_bad_port_rejected(self, port):
        with pytest.raises(ConfigurationError):
            ConnectionConfig("h", port, "M", "u", "p").validate()

    def test_immutable(self):
        config = ConnectionConfig("h", "2101", "M", "u", "p")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.host = "other"

    def test_password_hidden_from_repr(self):
        config = ConnectionConfig("h", "2101", "M", "u", "hunter2")
        assert "hunter2" not in repr(config)
        assert "u" in repr(config)


class TestStreamSettings:

    def test_defaults(self):
        settings = StreamSettings()
        assert settings.handshake_attempts == 50
        assert settings.handshake_interval_ms == 100
        assert settings.buffer_size == 4096
        assert settings.reporting_interval_ms == 1000
        assert settings.loop_sleep_ms == 10
        assert settings.reporting_interval_sec == 1.0
        assert settings.user_agent == "NTRIP NTRIPClient/1.2.0.b431661"

    @pytest.mark.parametrize("overrides", [
        {'handshake_attempts': 0},
        {'buffer_size': 0},
        {'reporting_interval_ms': 0},
        {'stop_timeout_sec': 0},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            StreamSettings(**overrides)


class TestOtherSections:

    @pytest.mark.parametrize("lat,lon", [(91.0, 0.0), (-91.0, 0.0), (0.0, 181.0), (0.0, -181.0)])
    def test_position_bounds(self, lat, lon):
        with pytest.raises(ValueError):
            PositionConfig(latitude=lat, longitude=lon)

    def test_reconnect_factor_bound(self):
        with pytest.raises(ValueError):
            ReconnectConfig(backoff_factor=0.5)


class TestYaml:

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "client.yml"
        path.write_text(yaml.dump({
            'caster': {'host': 'caster.test', 'port': 2102, 'mountpoint': 'M',
                       'username': 'u', 'password': 'p'},
            'stream': {'reporting_interval_ms': 500, 'tcp_keepalive': True},
            'position': {'latitude': 31.2, 'longitude': 121.2, 'altitude': 10.0},
            'reconnect': {'enabled': True, 'max_attempts': 3},
            'logging': {'level': 'DEBUG', 'json_format': False}
        }))

        config = NtripClientConfig.from_yaml(str(path))

        assert config.caster.port == "2102"
        assert config.caster.password == "p"
        assert config.stream.reporting_interval_ms == 500
        assert config.stream.tcp_keepalive is True
        assert config.stream.buffer_size == 4096
        assert config.position.latitude == 31.2
        assert config.reconnect.max_attempts == 3
        assert config.logging.json_format is False

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")

        config = NtripClientConfig.from_yaml(str(path))
        assert config.stream == StreamSettings()

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text(yaml.dump({'stream': {'no_such_option': 1}}))

        with pytest.raises(TypeError):
            NtripClientConfig.from_yaml(str(path))

    def test_to_yaml_omits_password(self, tmp_path):
        config = NtripClientConfig(caster=ConnectionConfig("h", "2101", "M", "u", "secret"))
        path = tmp_path / "out.yml"

        config.to_yaml(str(path))
        loaded = NtripClientConfig.from_yaml(str(path))

        assert loaded.caster.host == "h"
        assert loaded.caster.password == ""
        assert "secret" not in path.read_text()

    def test_to_yaml_with_password(self, tmp_path):
        config = NtripClientConfig(caster=ConnectionConfig("h", "2101", "M", "u", "secret"))
        path = tmp_path / "out.yml"

        config.to_yaml(str(path), include_password=True)

        assert NtripClientConfig.from_yaml(str(path)).caster.password == "secret"


class TestGetConfig:

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "client.yml"
        path.write_text(yaml.dump({'caster': {'host': 'explicit'}}))

        assert get_config(str(path)).caster.host == "explicit"

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yml"
        path.write_text(yaml.dump({'caster': {'host': 'from-env'}}))
        monkeypatch.setenv('NTRIP_CLIENT_CONFIG', str(path))

        assert get_config().caster.host == "from-env"

    def test_missing_file_gives_defaults(self, tmp_path):
        config = get_config(str(tmp_path / "missing.yml"))
        assert config == NtripClientConfig()
