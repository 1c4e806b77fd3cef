"""Parse, resolve, filter and render pipeline for incoming log datagrams."""
import logging
from datetime import datetime
from typing import Optional, Union

from config import Config
from event_filter import EventFilter
from parser import Event, LogParser
from renderer import TemplateRenderer
from resolver import HostResolver, ServiceResolver, make_cache
from wildcard import FilterSet, build_filter_set


logger = logging.getLogger(__name__)


class EventProcessor:
    """Turns raw datagrams into display lines, one at a time."""

    def __init__(
        self,
        config: Config,
        filter_set: Optional[FilterSet] = None,
        host_resolver: Optional[HostResolver] = None,
        service_resolver: Optional[ServiceResolver] = None,
    ):
        """
        Initialize the processor.

        Args:
            config: Config object with all configuration
            filter_set: Pre-built filters, compiled from config.filters if omitted
            host_resolver: Reverse DNS resolver, built from config.resolver if omitted
            service_resolver: Port name resolver, built from config.display if omitted

        Raises:
            ValueError: If the configured filters are invalid
        """
        self.config = config
        self.parser = LogParser()
        self.filter_set = filter_set if filter_set is not None else build_filter_set(config.filters)
        self.event_filter = EventFilter(self.filter_set)
        self.host_resolver = host_resolver or HostResolver(
            caching_enabled=config.resolver.cache,
            cache=make_cache(config.resolver.cache_size),
            timeout=config.resolver.timeout,
        )
        self.service_resolver = service_resolver or ServiceResolver(config.display.numeric_ports)
        self.renderer = TemplateRenderer(config.display.template)

        # Statistics
        self.stats = {
            'received': 0,
            'parsed': 0,
            'unmatched': 0,
            'filtered': 0,
            'rendered': 0,
        }

    def _needs_source_lookup(self, event: Event) -> bool:
        """True if the source hostname is missing and a host filter or the display wants it."""
        if event.source_hostname:
            return False
        return self.filter_set.has_source_host_filter or not self.config.display.suppress_source_hostname

    def _needs_dest_lookup(self, event: Event) -> bool:
        """True if the destination hostname is missing and a host filter or the display wants it."""
        if event.dest_hostname:
            return False
        return self.filter_set.has_dest_host_filter or not self.config.display.suppress_dest_hostname

    def enrich(self, event: Event) -> Event:
        """
        Resolve hostnames (only where a filter or the display needs them)
        and choose the host and port strings shown for each side.
        """
        display = self.config.display

        if self._needs_source_lookup(event):
            event.source_hostname = self.host_resolver.resolve(event.source_ip)
        if self._needs_dest_lookup(event):
            event.dest_hostname = self.host_resolver.resolve(event.dest_ip)

        if event.source_hostname and not display.suppress_source_hostname:
            event.source_display = event.source_hostname
        else:
            event.source_display = event.source_ip
        if event.dest_hostname and not display.suppress_dest_hostname:
            event.dest_display = event.dest_hostname
        else:
            event.dest_display = event.dest_ip

        event.source_port_display = self.service_resolver.port_display(event.source_port, event.protocol)
        event.dest_port_display = self.service_resolver.port_display(event.dest_port, event.protocol)
        return event

    def process(self, payload: Union[bytes, str], now: Optional[datetime] = None) -> Optional[str]:
        """
        Process a single datagram through the pipeline.

        Args:
            payload: Raw datagram contents
            now: Time used for the time tokens, defaults to the local time

        Returns:
            The rendered line, or None if the datagram was not a log record
            or was rejected by the filters
        """
        self.stats['received'] += 1

        event = self.parser.parse(payload)
        if event is None:
            logger.debug(f"Ignoring unrecognized datagram: {payload!r}")
            self.stats['unmatched'] += 1
            return None
        self.stats['parsed'] += 1

        self.enrich(event)

        if not self.event_filter.accepts(event):
            logger.debug(f"Filtered out: {event.source_ip}->{event.dest_ip}")
            self.stats['filtered'] += 1
            return None

        self.stats['rendered'] += 1
        return self.renderer.render(event, now)
