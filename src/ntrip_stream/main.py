"""
NTRIP Stream Client command line entry point

Connects to a caster mountpoint, refreshes the GGA position report on a
short interval and forwards received correction bytes to the log, a file or
stdout until interrupted.
"""

import argparse
import dataclasses
import signal
import sys
import threading
from typing import BinaryIO, List, Optional

from . import __version__
from .client import StreamingClient, ReconnectingRunner
from .common.config import NtripClientConfig, get_config
from .common.logging_config import setup_logging, ServiceLogger
from .nmea import format_gga


def build_parser() -> argparse.ArgumentParser:
    """Command line options; caster/position options override the config file"""
    parser = argparse.ArgumentParser(
        prog='ntrip-stream',
        description='Stream RTCM corrections from an NTRIP caster'
    )
    parser.add_argument('--config', help='Path to YAML configuration file')
    parser.add_argument('--host', help='Caster host')
    parser.add_argument('--port', help='Caster port')
    parser.add_argument('--mountpoint', help='Caster mountpoint')
    parser.add_argument('--user', dest='username', help='Caster username')
    parser.add_argument('--password', help='Caster password')
    parser.add_argument('--lat', dest='latitude', type=float, help='Latitude (decimal degrees)')
    parser.add_argument('--lon', dest='longitude', type=float, help='Longitude (decimal degrees)')
    parser.add_argument('--alt', dest='altitude', type=float, help='Altitude (meters)')
    parser.add_argument('--no-gga', action='store_true', help='Do not send GGA reports')
    parser.add_argument('--output', help="Write raw correction bytes to FILE ('-' for stdout)")
    parser.add_argument('--reconnect', action='store_true',
                        help='Reconnect with backoff when the stream drops')
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--text-logs', action='store_true',
                        help='Plain text logs instead of JSON')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def _overrides(args: argparse.Namespace, names: List[str]) -> dict:
    return {
        name: getattr(args, name)
        for name in names
        if getattr(args, name, None) is not None
    }


def resolve_config(args: argparse.Namespace) -> NtripClientConfig:
    """Load the configuration file and apply command line overrides"""
    config = get_config(args.config)

    caster = dataclasses.replace(
        config.caster,
        **_overrides(args, ['host', 'port', 'mountpoint', 'username', 'password'])
    )
    position = dataclasses.replace(
        config.position,
        **_overrides(args, ['latitude', 'longitude', 'altitude'])
    )
    if args.no_gga:
        position = dataclasses.replace(position, enabled=False)

    reconnect = config.reconnect
    if args.reconnect:
        reconnect = dataclasses.replace(reconnect, enabled=True)

    logging_config = config.logging
    if args.log_level:
        logging_config = dataclasses.replace(logging_config, level=args.log_level)
    if args.text_logs:
        logging_config = dataclasses.replace(logging_config, json_format=False)

    return dataclasses.replace(
        config,
        caster=caster,
        position=position,
        reconnect=reconnect,
        logging=logging_config
    )


def open_output(target: Optional[str]) -> Optional[BinaryIO]:
    """Open the raw correction sink, if one was requested"""
    if not target:
        return None
    if target == '-':
        return sys.stdout.buffer
    return open(target, 'ab')


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    config = resolve_config(args)

    setup_logging(
        service_name="ntrip_stream",
        log_level=config.logging.level,
        log_file=config.logging.log_file,
        json_format=config.logging.json_format
    )
    logger = ServiceLogger("ntrip_stream", "main")
    logger.info(f"NTRIP stream client {__version__}")

    stop_event = threading.Event()

    def _handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    client = StreamingClient(settings=config.stream)
    if not client.init(config.caster):
        return 2

    output = open_output(args.output)
    if output is not None:
        def _write(data: bytes):
            output.write(data)
            output.flush()

        client.on_data = _write

    position = config.position

    def refresh_gga():
        if position.enabled:
            client.update_gga(
                format_gga(position.latitude, position.longitude, position.altitude)
            )

    refresh_gga()
    interval = position.update_interval_ms / 1000.0
    exit_code = 0

    try:
        if config.reconnect.enabled:
            runner = ReconnectingRunner(client, config.reconnect, poll_interval_sec=interval)
            if not runner.supervise(stop_event, on_tick=refresh_gga):
                exit_code = 1
        else:
            if not client.run():
                return 1

            logger.info("NtripClient is running. Press Ctrl+C to stop.")
            while not stop_event.is_set() and client.is_running:
                refresh_gga()
                stop_event.wait(interval)

            if not stop_event.is_set():
                logger.error(f"Stream ended: {client.last_error}")
                exit_code = 1
    finally:
        client.stop()
        if output is not None and output is not sys.stdout.buffer:
            output.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
