"""Render events through a "%x" token display template."""
import re
from datetime import datetime
from typing import Callable, Dict, Optional

from config import DEFAULT_TEMPLATE
from parser import Event


# Fixed English names so output does not depend on the process locale
MONTHS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')
WEEKDAYS = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')

# Composite tokens, expanded before any value is substituted
MACROS = {
    '%t': '%M %T %h:%m:%z',
}

# %y is the 4 digit year and %Y the 2 digit one; existing templates rely on this
TOKENS: Dict[str, Callable[[Event, datetime], str]] = {
    'a': lambda e, now: e.source_ip,
    'A': lambda e, now: e.dest_ip,
    's': lambda e, now: e.source_display,
    'S': lambda e, now: e.source_port_display,
    'd': lambda e, now: e.dest_display,
    'D': lambda e, now: e.dest_port_display,
    'i': lambda e, now: e.direction.rjust(3),
    'p': lambda e, now: e.protocol.upper(),
    'M': lambda e, now: MONTHS[now.month - 1],
    'T': lambda e, now: f"{now.day:2d}",
    'w': lambda e, now: WEEKDAYS[now.weekday()],
    'y': lambda e, now: f"{now.year:04d}",
    'Y': lambda e, now: f"{now.year % 100:02d}",
    'h': lambda e, now: f"{now.hour:02d}",
    'm': lambda e, now: f"{now.minute:02d}",
    'z': lambda e, now: f"{now.second:02d}",
}

TOKEN_PATTERN = re.compile('%([' + ''.join(TOKENS) + '])')

TOKEN_HELP = """\
  %a  source IP address             %A  destination IP address
  %s  source host                   %S  source port / service
  %d  destination host              %D  destination port / service
  %i  direction (" in" or "out")    %p  protocol (TCP or UDP)
  %t  same as "%M %T %h:%m:%z"
  %M  month abbreviation            %T  day of month
  %w  weekday abbreviation
  %y  4 digit year                  %Y  2 digit year
  %h  hour                          %m  minute
  %z  second"""


def expand_macros(template: str) -> str:
    """Replace composite tokens by the atomic tokens they stand for."""
    for macro, expansion in MACROS.items():
        template = template.replace(macro, expansion)
    return template


class TemplateRenderer:
    """Formats events into display lines."""

    def __init__(self, template: str = DEFAULT_TEMPLATE):
        self.template = template
        self._expanded = expand_macros(template)

    def render(self, event: Event, now: Optional[datetime] = None) -> str:
        """
        Render one event.

        Every atomic token is substituted in a single pass, so values that
        themselves contain '%' are copied verbatim. Unknown tokens are kept
        as literal text.

        Args:
            event: Event with display fields already filled in
            now: Time used for the time tokens, defaults to the local time

        Returns:
            Rendered line without a trailing newline
        """
        if now is None:
            now = datetime.now()
        return TOKEN_PATTERN.sub(lambda m: TOKENS[m.group(1)](event, now), self._expanded)
