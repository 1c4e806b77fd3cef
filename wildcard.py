"""Wildcard filter compilation for the event filter."""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from config import FilterConfig


logger = logging.getLogger(__name__)

DIRECTIONS = ('in', 'out')
PROTOCOLS = ('TCP', 'UDP')


@dataclass(frozen=True)
class FilterSet:
    """
    Compiled filters, one slot per dimension.

    A slot holding None is unset and matches everything. Direction and
    protocol hold a normalized exact value, the rest hold anchored patterns.
    """
    direction: Optional[str] = None
    protocol: Optional[str] = None
    ip: Optional[re.Pattern] = None
    source_ip: Optional[re.Pattern] = None
    dest_ip: Optional[re.Pattern] = None
    host: Optional[re.Pattern] = None
    source_host: Optional[re.Pattern] = None
    dest_host: Optional[re.Pattern] = None

    @property
    def has_source_host_filter(self) -> bool:
        """True if a hostname filter applies to the source side."""
        return self.host is not None or self.source_host is not None

    @property
    def has_dest_host_filter(self) -> bool:
        """True if a hostname filter applies to the destination side."""
        return self.host is not None or self.dest_host is not None


def compile_pattern(pattern: Optional[str]) -> Optional[re.Pattern]:
    """
    Compile a wildcard pattern into a full-string matcher.

    Every character is literal except '*', which matches any run of
    characters (including none).

    Args:
        pattern: Wildcard pattern, empty or None for "match everything"

    Returns:
        Compiled regex to be used with fullmatch(), or None when unset
    """
    if not pattern:
        return None
    regex = '.*'.join(re.escape(part) for part in pattern.split('*'))
    return re.compile(regex, re.DOTALL)


def matches(matcher: Optional[re.Pattern], value: Optional[str]) -> bool:
    """Return True if value satisfies the matcher. Unset matchers accept anything."""
    if matcher is None:
        return True
    if not value:
        return False
    return matcher.fullmatch(value) is not None


def normalize_direction(value: Optional[str]) -> Optional[str]:
    """Validate a direction filter, returning 'in', 'out' or None when unset."""
    value = (value or '').strip().lower()
    if not value:
        return None
    if value not in DIRECTIONS:
        raise ValueError(f"Invalid direction filter {value!r}: must be one of {', '.join(DIRECTIONS)}")
    return value


def normalize_protocol(value: Optional[str]) -> Optional[str]:
    """Validate a protocol filter, returning 'TCP', 'UDP' or None when unset."""
    value = (value or '').strip().upper()
    if not value:
        return None
    if value not in PROTOCOLS:
        raise ValueError(f"Invalid protocol filter {value!r}: must be one of {', '.join(PROTOCOLS)}")
    return value


def build_filter_set(config: FilterConfig) -> FilterSet:
    """
    Build the immutable filter set from raw configuration strings.

    Raises:
        ValueError: If the direction or protocol filter is not a known value
    """
    filter_set = FilterSet(
        direction=normalize_direction(config.direction),
        protocol=normalize_protocol(config.protocol),
        ip=compile_pattern(config.ip),
        source_ip=compile_pattern(config.source_ip),
        dest_ip=compile_pattern(config.dest_ip),
        host=compile_pattern(config.host),
        source_host=compile_pattern(config.source_host),
        dest_host=compile_pattern(config.dest_host),
    )
    active = [name for name, value in vars(filter_set).items() if value is not None]
    logger.info(f"Active filters: {', '.join(active) if active else 'none'}")
    return filter_set
