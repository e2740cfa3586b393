"""
Unit tests for the command line entry point
"""

import logging
import socket
import threading

import pytest

from ntrip_stream import main as cli
from ntrip_stream.common.config import NtripClientConfig


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """No config file lookup, no real signal handlers, logging restored afterwards"""
    monkeypatch.delenv('NTRIP_CLIENT_CONFIG', raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli.signal, 'signal', lambda *args: None)

    logger = logging.getLogger("ntrip_stream")
    level = logger.level
    yield
    logger.handlers.clear()
    logger.setLevel(level)


def closed_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class TestResolveConfig:

    def test_defaults(self, tmp_path):
        args = cli.build_parser().parse_args(['--config', str(tmp_path / "none.yml")])
        assert cli.resolve_config(args) == NtripClientConfig()

    def test_overrides(self, tmp_path):
        args = cli.build_parser().parse_args([
            '--config', str(tmp_path / "none.yml"),
            '--host', 'caster.test', '--port', '2102', '--mountpoint', '/RTCM3',
            '--user', 'u', '--password', 'p',
            '--lat', '31.2', '--lon', '121.5', '--alt', '12',
            '--reconnect', '--log-level', 'DEBUG', '--text-logs'
        ])

        config = cli.resolve_config(args)

        assert config.caster.host == 'caster.test'
        assert config.caster.port == '2102'
        assert config.caster.mountpoint == 'RTCM3'
        assert config.caster.username == 'u'
        assert config.position.latitude == 31.2
        assert config.position.altitude == 12.0
        assert config.position.enabled is True
        assert config.reconnect.enabled is True
        assert config.logging.level == 'DEBUG'
        assert config.logging.json_format is False

    def test_file_values_kept_without_overrides(self, tmp_path):
        path = tmp_path / "client.yml"
        path.write_text("caster:\n  host: from-file\n  mountpoint: M\n")

        args = cli.build_parser().parse_args(['--config', str(path), '--no-gga'])
        config = cli.resolve_config(args)

        assert config.caster.host == 'from-file'
        assert config.caster.mountpoint == 'M'
        assert config.position.enabled is False


def test_open_output(tmp_path):
    assert cli.open_output(None) is None

    target = tmp_path / "rtcm.bin"
    output = cli.open_output(str(target))
    output.write(b"\xd3")
    output.close()

    assert target.read_bytes() == b"\xd3"


def test_incomplete_configuration_exits_2():
    assert cli.main(['--host', '127.0.0.1', '--text-logs']) == 2


def test_unreachable_caster_exits_1():
    argv = [
        '--host', '127.0.0.1', '--port', str(closed_port()), '--mountpoint', 'TEST',
        '--user', 'u', '--password', 'p', '--text-logs'
    ]
    assert cli.main(argv) == 1


def test_streams_until_caster_drops(caster, tmp_path):
    output = tmp_path / "rtcm.bin"
    caster.payload = b"\xd3\x00\x13"
    argv = [
        '--host', caster.host, '--port', str(caster.port), '--mountpoint', 'TEST',
        '--user', 'u', '--password', 'p', '--lat', '31.2', '--lon', '121.5',
        '--output', str(output), '--text-logs'
    ]

    threading.Timer(0.3, caster.reset_clients).start()

    assert cli.main(argv) == 1
    assert output.read_bytes().startswith(b"\xd3\x00\x13")
    assert b"$GPGGA," in caster.all_received()
