"""Log parser for the Linksys router "@in/@out" connection log format."""
import ipaddress
import string
from dataclasses import dataclass
from typing import Optional, Tuple, Union


MAX_PORT_DIGITS = 6
MAX_PORT = 65535


@dataclass
class Event:
    """Structured representation of one parsed connection log datagram."""
    direction: str
    protocol: str
    source_ip: str
    source_port: int
    dest_ip: str
    dest_port: int
    source_hostname: str = ""
    dest_hostname: str = ""
    source_display: str = ""
    dest_display: str = ""
    source_port_display: str = ""
    dest_port_display: str = ""

    def __post_init__(self):
        self.source_display = self.source_display or self.source_ip
        self.dest_display = self.dest_display or self.dest_ip
        self.source_port_display = self.source_port_display or str(self.source_port)
        self.dest_port_display = self.dest_port_display or str(self.dest_port)


@dataclass(frozen=True)
class Endpoint:
    """One side of a connection: optional embedded hostname, address and port."""
    hostname: str
    ip: str
    port: int


def _parse_ipv4(text: str) -> Optional[str]:
    """Return text if it is a dotted-quad IPv4 address, None otherwise."""
    try:
        return str(ipaddress.IPv4Address(text))
    except ValueError:
        return None


def _split_host(text: str) -> Optional[Tuple[str, str]]:
    """
    Split the part of an endpoint before ':' into (hostname, ip).

    Accepted forms: "1.2.3.4", "name 1.2.3.4", "name (1.2.3.4)",
    "name(1.2.3.4)" and "(1.2.3.4)".
    """
    if text.endswith(')'):
        open_at = text.rfind('(')
        if open_at < 0:
            return None
        hostname = text[:open_at].strip()
        ip_text = text[open_at + 1:-1]
    else:
        hostname, _, ip_text = text.rpartition(' ')
        hostname = hostname.strip()
    if not ip_text or ' ' in hostname:
        return None
    ip = _parse_ipv4(ip_text)
    if ip is None:
        return None
    return hostname, ip


def _scan_port(text: str, start: int) -> Optional[Tuple[int, int]]:
    """Read 1-6 ASCII digits at start. Returns (port, end offset) or None."""
    end = start
    while end < len(text) and text[end] in string.digits:
        end += 1
    if not 0 < end - start <= MAX_PORT_DIGITS:
        return None
    port = int(text[start:end])
    if port > MAX_PORT:
        return None
    return port, end


def parse_endpoint(text: str, start: int = 0) -> Optional[Tuple[Endpoint, int]]:
    """
    Parse an endpoint ("[hostname ](ip)|ip:port") beginning at start.

    The port is 1-6 ASCII digits and must not be followed by another digit,
    so a seven digit port rejects the endpoint (and with it the datagram)
    rather than being cut short.

    Args:
        text: Text containing the endpoint
        start: Offset where the endpoint begins

    Returns:
        Tuple of (Endpoint, offset just past the port), or None if the text at
        start is not a complete endpoint
    """
    colon = text.find(':', start)
    if colon < 0:
        return None
    host_part = _split_host(text[start:colon])
    if host_part is None:
        return None
    port_part = _scan_port(text, colon + 1)
    if port_part is None:
        return None
    hostname, ip = host_part
    port, end = port_part
    return Endpoint(hostname=hostname, ip=ip, port=port), end


class LogParser:
    """Parser for Linksys connection log lines."""

    # Example: @in UDP from 192.168.1.5:53124 to 8.8.8.8:53
    DIRECTION_TOKENS = ('in', 'out')
    PROTOCOL_TOKENS = ('UDP', 'TCP')
    FROM_TOKEN = ' from '
    TO_TOKEN = ' to '

    @staticmethod
    def _expect(text: str, pos: int, token: str) -> Optional[int]:
        """Return the offset after token if text has it at pos."""
        if text.startswith(token, pos):
            return pos + len(token)
        return None

    @classmethod
    def _expect_one_of(cls, text: str, pos: int, tokens) -> Optional[Tuple[str, int]]:
        """Return (token, offset after it) for the first token found at pos."""
        for token in tokens:
            end = cls._expect(text, pos, token)
            if end is not None:
                return token, end
        return None

    @classmethod
    def _parse_at(cls, text: str, pos: int) -> Optional[Event]:
        """Try to read a complete log record starting just after an '@'."""
        found = cls._expect_one_of(text, pos, cls.DIRECTION_TOKENS)
        if found is None:
            return None
        direction, pos = found

        pos = cls._expect(text, pos, ' ')
        if pos is None:
            return None
        found = cls._expect_one_of(text, pos, cls.PROTOCOL_TOKENS)
        if found is None:
            return None
        protocol, pos = found

        pos = cls._expect(text, pos, cls.FROM_TOKEN)
        if pos is None:
            return None
        # The source endpoint runs until " to "; a hostname may precede the address
        to_at = text.find(cls.TO_TOKEN, pos)
        if to_at < 0:
            return None
        parsed = parse_endpoint(text[:to_at], pos)
        if parsed is None or parsed[1] != to_at:
            return None
        source, pos = parsed

        parsed = parse_endpoint(text, to_at + len(cls.TO_TOKEN))
        if parsed is None:
            return None
        dest, _ = parsed

        return Event(
            direction=direction,
            protocol=protocol,
            source_ip=source.ip,
            source_port=source.port,
            dest_ip=dest.ip,
            dest_port=dest.port,
            source_hostname=source.hostname,
            dest_hostname=dest.hostname,
        )

    @classmethod
    def parse(cls, payload: Union[bytes, str]) -> Optional[Event]:
        """
        Parse a Linksys log datagram.

        Args:
            payload: Raw datagram contents

        Returns:
            Event if the payload holds a complete log record, None otherwise
        """
        if isinstance(payload, bytes):
            payload = payload.decode('utf-8', errors='replace')
        if not payload:
            return None
        text = payload.strip().rstrip('\x00')

        at = text.find('@')
        while at >= 0:
            event = cls._parse_at(text, at + 1)
            if event is not None:
                return event
            at = text.find('@', at + 1)
        return None
