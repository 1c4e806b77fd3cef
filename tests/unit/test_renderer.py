"""
Unit tests for the template renderer.
"""
from datetime import datetime

import pytest

from config import DEFAULT_TEMPLATE
from renderer import TemplateRenderer, expand_macros


@pytest.mark.unit
class TestTemplateRenderer:
    """Test TemplateRenderer.render."""

    def test_literal_template_unchanged(self, event_factory, fixed_now):
        template = "no tokens here, 100% literal"
        assert TemplateRenderer(template).render(event_factory(), fixed_now) == template

    def test_default_template(self, event_factory, fixed_now):
        line = TemplateRenderer(DEFAULT_TEMPLATE).render(event_factory(), fixed_now)
        assert line == "Mar  6 14:05:09 [ in, UDP] 192.168.1.5:53124 -> 8.8.8.8:53"

    def test_address_tokens(self, event_factory, fixed_now):
        event = event_factory(source_display='laptop.lan', dest_display='dns.google',
                              dest_port_display='domain')
        line = TemplateRenderer("%a %A %s %S %d %D").render(event, fixed_now)
        assert line == "192.168.1.5 8.8.8.8 laptop.lan 53124 dns.google domain"

    def test_direction_is_three_wide(self, event_factory, fixed_now):
        renderer = TemplateRenderer("[%i]")
        assert renderer.render(event_factory(direction='in'), fixed_now) == "[ in]"
        assert renderer.render(event_factory(direction='out'), fixed_now) == "[out]"

    def test_protocol_upper(self, event_factory, fixed_now):
        assert TemplateRenderer("%p").render(event_factory(protocol='tcp'), fixed_now) == "TCP"

    def test_date_tokens(self, event_factory, fixed_now):
        line = TemplateRenderer("%w %M %T %y %Y").render(event_factory(), fixed_now)
        assert line == "Wed Mar  6 2024 24"

    def test_two_digit_day_and_padding(self, event_factory):
        now = datetime(2009, 12, 25, 3, 4, 5)
        line = TemplateRenderer("%T|%h|%m|%z|%Y").render(event_factory(), now)
        assert line == "25|03|04|05|09"

    def test_time_macro(self, event_factory, fixed_now):
        renderer = TemplateRenderer("%t")
        assert renderer.render(event_factory(), fixed_now) == "Mar  6 14:05:09"

    def test_expand_macros(self):
        assert expand_macros("<%t>") == "<%M %T %h:%m:%z>"

    def test_values_with_percent_are_not_reexpanded(self, event_factory, fixed_now):
        event = event_factory(source_display='%d%p')
        assert TemplateRenderer("%s").render(event, fixed_now) == "%d%p"

    def test_unknown_token_kept(self, event_factory, fixed_now):
        assert TemplateRenderer("%q %%").render(event_factory(), fixed_now) == "%q %%"

    def test_now_defaults_to_current_time(self, event_factory):
        line = TemplateRenderer("%y").render(event_factory())
        assert line == str(datetime.now().year)
