"""Decide which parsed events are shown."""
from parser import Event
from wildcard import FilterSet, matches


class EventFilter:
    """Evaluates a compiled FilterSet against events."""

    def __init__(self, filter_set: FilterSet):
        """
        Initialize the event filter.

        Args:
            filter_set: Compiled filters, built once at startup
        """
        self.filter_set = filter_set

    def accepts(self, event: Event) -> bool:
        """
        Check whether an event passes every active filter.

        Checks run in a fixed order and stop at the first failure:
        direction, protocol, either IP, source IP, destination IP,
        either hostname, source hostname, destination hostname.

        Args:
            event: Parsed (and possibly resolved) event

        Returns:
            True if the event should be displayed
        """
        fs = self.filter_set

        if fs.direction is not None and event.direction != fs.direction:
            return False
        if fs.protocol is not None and event.protocol != fs.protocol:
            return False

        if fs.ip is not None and not (matches(fs.ip, event.source_ip) or matches(fs.ip, event.dest_ip)):
            return False
        if not matches(fs.source_ip, event.source_ip):
            return False
        if not matches(fs.dest_ip, event.dest_ip):
            return False

        # An event without a hostname never satisfies a hostname filter
        if fs.host is not None and not (
            matches(fs.host, event.source_hostname) or matches(fs.host, event.dest_hostname)
        ):
            return False
        if not matches(fs.source_host, event.source_hostname):
            return False
        if not matches(fs.dest_host, event.dest_hostname):
            return False

        return True
