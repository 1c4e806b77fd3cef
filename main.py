#!/usr/bin/env python3
"""Main server for receiving, filtering, and displaying Linksys router connection logs."""
import argparse
import logging
import os
import signal
import socket
import sys
from typing import Optional, Sequence

from config import load_config, Config, DEFAULT_TEMPLATE
from output import OutputWriter
from processor import EventProcessor
from renderer import TOKEN_HELP


# Configure logging (stderr, so rendered events on stdout stay clean)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


class SyslogServer:
    """UDP server for Linksys connection logs."""

    def __init__(self, config: Config, processor: Optional[EventProcessor] = None,
                 writer: Optional[OutputWriter] = None):
        """
        Initialize the server.

        Args:
            config: Config object with all configuration
            processor: Event pipeline, built from config if omitted
            writer: Output sink, built from config.output if omitted

        Raises:
            ValueError: If the configured filters are invalid
        """
        self.config = config
        self.processor = processor or EventProcessor(config)
        self.writer = writer or OutputWriter(config.output)
        self.socket = None
        self.running = False

    def _setup_socket(self):
        """Create and bind UDP socket."""
        listener = self.config.listener
        try:
            self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.socket.bind((listener.listen_address, listener.listen_port))
            logger.info(f"Listening on UDP {listener.listen_address}:{listener.listen_port}")
        except PermissionError:
            logger.error(f"Permission denied: Cannot bind to port {listener.listen_port}. "
                         f"Try running with sudo or use a port >= 1024")
            sys.exit(1)
        except OSError as e:
            logger.error(f"Failed to setup socket: {e}")
            sys.exit(1)

    def _drop_privileges(self):
        """Switch to the configured unprivileged user once the socket is bound."""
        user = self.config.listener.user
        if not user:
            return
        import pwd

        try:
            entry = pwd.getpwnam(user)
        except KeyError:
            logger.error(f"Unknown user {user!r}, refusing to keep running as uid {os.getuid()}")
            sys.exit(1)
        try:
            os.setgroups([])
            os.setgid(entry.pw_gid)
            os.setuid(entry.pw_uid)
        except PermissionError as e:
            logger.error(f"Failed to switch to user {user}: {e}")
            sys.exit(1)
        logger.info(f"Dropped privileges to {user} (uid={entry.pw_uid}, gid={entry.pw_gid})")

    def _print_stats(self):
        """Print statistics."""
        stats = self.processor.stats
        logger.info(f"Stats - Received: {stats['received']}, "
                    f"Parsed: {stats['parsed']}, "
                    f"Unmatched: {stats['unmatched']}, "
                    f"Filtered: {stats['filtered']}, "
                    f"Displayed: {stats['rendered']}")

    def handle_datagram(self, data: bytes, addr=None):
        """Run one datagram through the pipeline and emit the result."""
        logger.debug(f"Datagram from {addr}: {data!r}")
        line = self.processor.process(data)
        if line is not None:
            self.writer.write(line)

    def run(self):
        """Run the server main loop."""
        self._setup_socket()
        self._drop_privileges()
        self.running = True

        logger.info("Log viewer started. Press Ctrl+C to stop.")

        try:
            while self.running:
                try:
                    # Receive UDP packet (max 65507 bytes for UDP)
                    data, addr = self.socket.recvfrom(65507)
                    self.handle_datagram(data, addr)

                    # Print stats every 1000 datagrams
                    if self.processor.stats['received'] % 1000 == 0:
                        self._print_stats()

                except OSError as e:
                    if self.running:
                        logger.error(f"Socket error: {e}")
                except Exception as e:
                    logger.error(f"Unexpected error processing datagram: {e}")

        except KeyboardInterrupt:
            logger.info("Received interrupt signal, shutting down...")
        finally:
            self.shutdown()

    def shutdown(self):
        """Shutdown the server gracefully."""
        if self.socket is None and not self.running:
            return
        logger.info("Shutting down log viewer...")
        self.running = False

        if self.socket:
            try:
                self.socket.close()
            except OSError:
                pass
            self.socket = None

        self.writer.close()
        self._print_stats()
        logger.info("Shutdown complete.")


def build_arg_parser() -> argparse.ArgumentParser:
    """
    Build the command line parser.

    Every option defaults to None so that unset flags leave the YAML and
    environment settings alone (see overrides_from_args).
    """
    parser = argparse.ArgumentParser(
        prog="linksys-logviewer",
        description="Display connection logs sent by a Linksys router over UDP.",
        epilog="Filters accept '*' as a wildcard and must match the whole value.",
    )
    parser.add_argument("-c", "--config", help="YAML configuration file (default: config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    listen = parser.add_argument_group("listener")
    listen.add_argument("-p", "--port", type=int, help="UDP port to listen on (default: 162)")
    listen.add_argument("-b", "--bind", help="Address to bind to (default: 0.0.0.0)")
    listen.add_argument("-u", "--user", help="Drop privileges to this user after binding")

    out = parser.add_argument_group("output")
    out.add_argument("-l", "--log-file", help="Append displayed events to this file")
    out.add_argument("-q", "--quiet", action="store_true", default=None,
                     help="Do not print events to the console (requires --log-file)")
    out.add_argument("-f", "--format", help=f"Output template (default: {DEFAULT_TEMPLATE!r})")
    out.add_argument("--format-help", action="store_true", help="List the template tokens and exit")
    out.add_argument("-n", "--numeric-ports", action="store_true", default=None,
                     help="Show port numbers instead of service names")
    out.add_argument("--no-source-hostname", action="store_true", default=None,
                     help="Show source IP addresses instead of hostnames")
    out.add_argument("--no-dest-hostname", action="store_true", default=None,
                     help="Show destination IP addresses instead of hostnames")

    dns = parser.add_argument_group("dns")
    dns.add_argument("--no-dns-cache", action="store_true", help="Resolve every address on every event")
    dns.add_argument("--dns-cache-size", type=int, help="Keep at most this many cached names (0: unlimited)")
    dns.add_argument("--dns-timeout", type=float, help="Give up on a reverse lookup after this many seconds")

    filters = parser.add_argument_group("filters")
    filters.add_argument("--direction", help="Only show 'in' or 'out' connections")
    filters.add_argument("--protocol", help="Only show 'TCP' or 'UDP' connections")
    filters.add_argument("--ip", help="Source or destination IP")
    filters.add_argument("--source-ip", help="Source IP")
    filters.add_argument("--dest-ip", help="Destination IP")
    filters.add_argument("--host", help="Source or destination hostname")
    filters.add_argument("--source-host", help="Source hostname")
    filters.add_argument("--dest-host", help="Destination hostname")
    return parser


def overrides_from_args(args: argparse.Namespace):
    """Map parsed command line options onto configuration sections."""
    return {
        'listener': {
            'listen_address': args.bind,
            'listen_port': args.port,
            'user': args.user,
        },
        'filters': {
            'direction': args.direction,
            'protocol': args.protocol,
            'ip': args.ip,
            'source_ip': args.source_ip,
            'dest_ip': args.dest_ip,
            'host': args.host,
            'source_host': args.source_host,
            'dest_host': args.dest_host,
        },
        'display': {
            'template': args.format,
            'numeric_ports': args.numeric_ports,
            'suppress_source_hostname': args.no_source_hostname,
            'suppress_dest_hostname': args.no_dest_hostname,
        },
        'resolver': {
            'cache': False if args.no_dns_cache else None,
            'cache_size': args.dns_cache_size,
            'timeout': args.dns_timeout,
        },
        'output': {
            'log_file': args.log_file,
            'quiet': args.quiet,
        },
    }


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)

    if args.format_help:
        print("Template tokens:")
        print(TOKEN_HELP)
        return

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config, overrides_from_args(args))
        server = SyslogServer(config)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    # Handle SIGINT and SIGTERM for graceful shutdown
    def signal_handler(sig, frame):
        logger.info("Received shutdown signal")
        server.shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # Run the server
    server.run()


if __name__ == '__main__':
    main()
