"""
Pytest configuration and fixtures for the Linksys log viewer tests.
"""
import socket
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Make the top-level modules importable without installing the project
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Config, DisplayConfig, FilterConfig, OutputConfig, ResolverConfig
from parser import Event


SAMPLE_PAYLOAD = "@in UDP from 192.168.1.5:53124 to 8.8.8.8:53"


class FakeHostLookup:
    """Stands in for socket.gethostbyaddr and counts calls."""

    def __init__(self, names=None):
        self.names = dict(names or {})
        self.calls = []

    def __call__(self, ip):
        self.calls.append(ip)
        if ip not in self.names:
            raise socket.herror(1, "Unknown host")
        return self.names[ip], [], [ip]


class FakeServiceLookup:
    """Stands in for socket.getservbyport."""

    def __init__(self, services=None):
        self.services = dict(services or {})

    def __call__(self, port, protocol):
        try:
            return self.services[(port, protocol)]
        except KeyError:
            raise OSError("port/proto not found")


@pytest.fixture
def fixed_now():
    """A Wednesday afternoon, single digit day."""
    return datetime(2024, 3, 6, 14, 5, 9)


@pytest.fixture
def sample_payload():
    return SAMPLE_PAYLOAD


@pytest.fixture
def event_factory():
    """Factory for creating events with sensible defaults."""
    def _create(**kwargs):
        defaults = {
            'direction': 'in',
            'protocol': 'UDP',
            'source_ip': '192.168.1.5',
            'source_port': 53124,
            'dest_ip': '8.8.8.8',
            'dest_port': 53,
        }
        defaults.update(kwargs)
        return Event(**defaults)
    return _create


@pytest.fixture
def host_lookup():
    return FakeHostLookup({
        '192.168.1.5': 'laptop.lan',
        '8.8.8.8': 'dns.google',
    })


@pytest.fixture
def service_lookup():
    return FakeServiceLookup({
        (53, 'udp'): 'domain',
        (80, 'tcp'): 'http',
        (443, 'tcp'): 'https',
    })


@pytest.fixture
def config_factory():
    """Factory for Config objects; keyword sections replace the defaults."""
    def _create(filters=None, display=None, resolver=None, output=None):
        return Config(
            filters=filters or FilterConfig(),
            display=display or DisplayConfig(),
            resolver=resolver or ResolverConfig(),
            output=output or OutputConfig(),
        )
    return _create
