"""Reverse DNS and service name lookups for log events."""
import logging
import socket
import threading
from collections import OrderedDict
from typing import Callable, Dict, Optional


logger = logging.getLogger(__name__)


class UnboundedCache:
    """
    IP -> hostname cache that never evicts.

    Grows by one entry per distinct IP for the lifetime of the process.
    An empty string records that the IP has no usable hostname.
    """

    def __init__(self):
        """Initialize an empty cache."""
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, ip: str) -> Optional[str]:
        """Return the cached hostname ("" for a remembered failure) or None on a miss."""
        with self._lock:
            return self._entries.get(ip)

    def put(self, ip: str, hostname: str):
        """Remember the hostname (or "" for no hostname) for ip."""
        with self._lock:
            self._entries[ip] = hostname

    def clear(self):
        """Forget every cached entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        """Return the number of cached addresses."""
        with self._lock:
            return len(self._entries)


class LRUCache(UnboundedCache):
    """IP -> hostname cache holding at most maxsize entries, least recently used evicted first."""

    def __init__(self, maxsize: int):
        """
        Initialize the cache.

        Args:
            maxsize: Number of addresses kept before evicting
        """
        if maxsize <= 0:
            raise ValueError("LRUCache maxsize must be positive")
        super().__init__()
        self.maxsize = maxsize
        self._entries: "OrderedDict[str, str]" = OrderedDict()

    def get(self, ip: str) -> Optional[str]:
        """Return the cached hostname and mark ip as most recently used."""
        with self._lock:
            hostname = self._entries.get(ip)
            if hostname is not None:
                self._entries.move_to_end(ip)
            return hostname

    def put(self, ip: str, hostname: str):
        """Remember the hostname for ip, evicting the oldest entries beyond maxsize."""
        with self._lock:
            self._entries[ip] = hostname
            self._entries.move_to_end(ip)
            while len(self._entries) > self.maxsize:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted} from resolver cache")


def make_cache(cache_size: int) -> UnboundedCache:
    """Return an unbounded cache for size 0, an LRU cache otherwise."""
    if cache_size:
        return LRUCache(cache_size)
    return UnboundedCache()


class HostResolver:
    """Resolve IP addresses to hostnames, optionally memoizing the answers."""

    def __init__(
        self,
        caching_enabled: bool = True,
        cache: Optional[UnboundedCache] = None,
        lookup: Optional[Callable] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the resolver.

        Args:
            caching_enabled: Remember every answer (including failures) per IP
            cache: Cache implementation, defaults to an unbounded one
            lookup: Reverse lookup function with the socket.gethostbyaddr signature
            timeout: Give up on a lookup after this many seconds (None waits forever)
        """
        self.caching_enabled = caching_enabled
        self.cache = cache if cache is not None else UnboundedCache()
        self._lookup = lookup or socket.gethostbyaddr
        self.timeout = timeout
        self.lookups = 0

    def _timed_lookup(self, ip: str):
        """
        Run the lookup on its own daemon thread and wait at most self.timeout.

        A lookup that hangs keeps only its own thread busy, so later lookups
        are never queued behind it.

        Returns:
            The lookup result tuple, or None if the timeout expired

        Raises:
            Whatever the lookup itself raised
        """
        outcome = {}

        def run():
            try:
                outcome['result'] = self._lookup(ip)
            except Exception as e:
                outcome['error'] = e

        worker = threading.Thread(target=run, name=f"rdns-{ip}", daemon=True)
        worker.start()
        worker.join(self.timeout)
        if worker.is_alive():
            return None
        if 'error' in outcome:
            raise outcome['error']
        return outcome['result']

    def _reverse_lookup(self, ip: str) -> Optional[str]:
        """
        Perform one reverse DNS lookup.

        Returns:
            The hostname, "" if the address does not resolve, or None if the
            lookup timed out (the answer is unknown, not negative)
        """
        self.lookups += 1
        try:
            if self.timeout:
                result = self._timed_lookup(ip)
                if result is None:
                    logger.debug(f"Reverse lookup for {ip} timed out after {self.timeout}s")
                    return None
            else:
                result = self._lookup(ip)
            hostname = result[0]
        except (socket.herror, socket.gaierror, OSError, UnicodeError) as e:
            logger.debug(f"Reverse lookup for {ip} failed: {e}")
            return ""
        if not hostname or hostname == ip:
            return ""
        return hostname

    def resolve(self, ip: str) -> str:
        """
        Resolve an IP address to a hostname.

        A timed-out lookup is not cached, so the address is tried again the
        next time it is seen.

        Args:
            ip: Dotted-quad IPv4 address

        Returns:
            Hostname, or "" if the address does not resolve
        """
        if not self.caching_enabled:
            return self._reverse_lookup(ip) or ""

        cached = self.cache.get(ip)
        if cached is not None:
            return cached

        hostname = self._reverse_lookup(ip)
        if hostname is None:
            return ""
        self.cache.put(ip, hostname)
        return hostname


class ServiceResolver:
    """Map port numbers to service names for display."""

    def __init__(self, numeric_ports: bool = False, lookup: Optional[Callable] = None):
        """
        Initialize the service resolver.

        Args:
            numeric_ports: Always show port numbers instead of service names
            lookup: Service lookup function with the socket.getservbyport signature
        """
        self.numeric_ports = numeric_ports
        self._lookup = lookup or socket.getservbyport

    def port_display(self, port: int, protocol: str) -> str:
        """Return the service name for port/protocol, or the port number as text."""
        if self.numeric_ports:
            return str(port)
        try:
            return self._lookup(port, protocol.lower()) or str(port)
        except (OSError, OverflowError):
            return str(port)
