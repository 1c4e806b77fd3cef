"""
Unit tests for configuration loading.
"""
import pytest

from config import DEFAULT_TEMPLATE, Config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Make sure no LINKSYS_* variable from the outer environment leaks in."""
    import os
    for name in list(os.environ):
        if name.startswith('LINKSYS_'):
            monkeypatch.delenv(name)


@pytest.fixture
def missing_path(tmp_path):
    return str(tmp_path / 'does-not-exist.yaml')


@pytest.fixture
def yaml_file(tmp_path):
    def _write(content):
        path = tmp_path / 'config.yaml'
        path.write_text(content)
        return str(path)
    return _write


@pytest.mark.unit
class TestLoadConfig:
    """Test load_config."""

    def test_defaults(self, missing_path):
        config = load_config(missing_path)
        assert config == Config()
        assert config.listener.listen_port == 162
        assert config.display.template == DEFAULT_TEMPLATE
        assert config.resolver.cache is True
        assert config.resolver.cache_size == 0
        assert config.resolver.timeout is None

    def test_yaml_values(self, yaml_file):
        path = yaml_file("""
listener:
  listen_port: 5514
filters:
  protocol: tcp
  dest_host: "*.example.com"
display:
  numeric_ports: true
  suppress_dest_hostname: yes
resolver:
  cache: false
  cache_size: 100
  timeout: 1.5
output:
  log_file: /tmp/linksys.log
""")
        config = load_config(path)
        assert config.listener.listen_port == 5514
        assert config.filters.protocol == 'tcp'
        assert config.filters.dest_host == '*.example.com'
        assert config.display.numeric_ports is True
        assert config.display.suppress_dest_hostname is True
        assert config.display.suppress_source_hostname is False
        assert config.resolver.cache is False
        assert config.resolver.cache_size == 100
        assert config.resolver.timeout == 1.5
        assert config.output.log_file == '/tmp/linksys.log'

    def test_env_overrides_yaml(self, yaml_file, monkeypatch):
        path = yaml_file("listener:\n  listen_port: 5514\n")
        monkeypatch.setenv('LINKSYS_LISTEN_PORT', '6000')
        monkeypatch.setenv('LINKSYS_FILTER_SOURCE_IP', '10.*')
        monkeypatch.setenv('LINKSYS_NUMERIC_PORTS', 'true')
        config = load_config(path)
        assert config.listener.listen_port == 6000
        assert config.filters.source_ip == '10.*'
        assert config.display.numeric_ports is True

    def test_overrides_win(self, yaml_file, monkeypatch):
        path = yaml_file("display:\n  template: from-yaml\n")
        monkeypatch.setenv('LINKSYS_TEMPLATE', 'from-env')
        config = load_config(path, {'display': {'template': 'from-cli', 'numeric_ports': None}})
        assert config.display.template == 'from-cli'
        assert config.display.numeric_ports is False

    def test_empty_yaml(self, yaml_file):
        assert load_config(yaml_file("")) == Config()

    def test_config_is_immutable(self, missing_path):
        config = load_config(missing_path)
        with pytest.raises(Exception):
            config.display.template = "%a"

    @pytest.mark.parametrize("overrides,message", [
        ({'listener': {'listen_port': 0}}, 'listen_port'),
        ({'listener': {'listen_port': 'abc'}}, 'listen_port'),
        ({'display': {'template': ''}}, 'template'),
        ({'resolver': {'cache_size': -1}}, 'cache_size'),
        ({'resolver': {'timeout': 0}}, 'timeout'),
        ({'output': {'quiet': True}}, 'log_file'),
    ])
    def test_invalid_values(self, missing_path, overrides, message):
        with pytest.raises(ValueError, match=message):
            load_config(missing_path, overrides)
