"""Configuration management for the Linksys log viewer."""
import os
import yaml
from typing import Optional, Dict, Any
from dataclasses import dataclass, field


DEFAULT_TEMPLATE = "%t [%i, %p] %s:%S -> %d:%D"


@dataclass(frozen=True)
class ListenerConfig:
    """UDP listener configuration."""
    listen_address: str = "0.0.0.0"
    listen_port: int = 162  # Linksys routers send their log datagrams here
    user: str = ""  # Drop privileges to this user after binding


@dataclass(frozen=True)
class FilterConfig:
    """Raw (uncompiled) filter strings, wildcard syntax with '*'."""
    direction: str = ""
    protocol: str = ""
    ip: str = ""
    source_ip: str = ""
    dest_ip: str = ""
    host: str = ""
    source_host: str = ""
    dest_host: str = ""


@dataclass(frozen=True)
class DisplayConfig:
    """Output template and display choices."""
    template: str = DEFAULT_TEMPLATE
    numeric_ports: bool = False
    suppress_source_hostname: bool = False
    suppress_dest_hostname: bool = False


@dataclass(frozen=True)
class ResolverConfig:
    """Reverse DNS configuration."""
    cache: bool = True
    cache_size: int = 0  # 0 means unbounded
    timeout: Optional[float] = None  # Seconds, None blocks until the resolver answers


@dataclass(frozen=True)
class OutputConfig:
    """Where rendered lines go."""
    log_file: str = ""
    quiet: bool = False


@dataclass(frozen=True)
class Config:
    """Main configuration class."""
    listener: ListenerConfig = field(default_factory=ListenerConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def _as_bool(value: Any) -> bool:
    """Interpret YAML/env/CLI values as a boolean."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _setting(section: Dict[str, Any], overrides: Dict[str, Any], key: str, env: str, default: Any) -> Any:
    """Resolve one setting: explicit override, then environment, then YAML, then default."""
    if overrides.get(key) is not None:
        return overrides[key]
    env_value = os.getenv(env)
    if env_value is not None:
        return env_value
    value = section.get(key, default)
    return default if value is None else value


def load_config(config_path: Optional[str] = None, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
    """
    Load configuration from YAML file, environment variables and overrides.

    Args:
        config_path: Path to YAML config file. If None, looks for config.yaml in current directory.
        overrides: Per-section values (typically from the command line) that win over
            everything else. ``None`` values are ignored.

    Returns:
        Config object with loaded settings.

    Raises:
        ValueError: If a setting is out of range or malformed.
    """
    if config_path is None:
        config_path = "config.yaml"
    overrides = overrides or {}

    config_data = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Could not load config file {config_path}: {e}")

    def section(name: str):
        """Return (yaml values, overrides) for one config section."""
        return config_data.get(name) or {}, overrides.get(name) or {}

    listener_cfg, listener_over = section('listener')
    try:
        listener_config = ListenerConfig(
            listen_address=str(_setting(listener_cfg, listener_over, 'listen_address', 'LINKSYS_LISTEN_ADDRESS', '0.0.0.0')),
            listen_port=int(_setting(listener_cfg, listener_over, 'listen_port', 'LINKSYS_LISTEN_PORT', 162)),
            user=str(_setting(listener_cfg, listener_over, 'user', 'LINKSYS_USER', '')),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"listener.listen_port must be an integer: {e}")

    filter_cfg, filter_over = section('filters')
    filter_config = FilterConfig(**{
        name: str(_setting(filter_cfg, filter_over, name, f'LINKSYS_FILTER_{name.upper()}', ''))
        for name in ('direction', 'protocol', 'ip', 'source_ip', 'dest_ip', 'host', 'source_host', 'dest_host')
    })

    display_cfg, display_over = section('display')
    display_config = DisplayConfig(
        template=str(_setting(display_cfg, display_over, 'template', 'LINKSYS_TEMPLATE', DEFAULT_TEMPLATE)),
        numeric_ports=_as_bool(_setting(display_cfg, display_over, 'numeric_ports', 'LINKSYS_NUMERIC_PORTS', False)),
        suppress_source_hostname=_as_bool(_setting(
            display_cfg, display_over, 'suppress_source_hostname', 'LINKSYS_SUPPRESS_SOURCE_HOSTNAME', False)),
        suppress_dest_hostname=_as_bool(_setting(
            display_cfg, display_over, 'suppress_dest_hostname', 'LINKSYS_SUPPRESS_DEST_HOSTNAME', False)),
    )

    resolver_cfg, resolver_over = section('resolver')
    timeout = _setting(resolver_cfg, resolver_over, 'timeout', 'LINKSYS_DNS_TIMEOUT', None)
    try:
        resolver_config = ResolverConfig(
            cache=_as_bool(_setting(resolver_cfg, resolver_over, 'cache', 'LINKSYS_DNS_CACHE', True)),
            cache_size=int(_setting(resolver_cfg, resolver_over, 'cache_size', 'LINKSYS_DNS_CACHE_SIZE', 0)),
            timeout=float(timeout) if timeout not in (None, '') else None,
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"resolver.cache_size and resolver.timeout must be numeric: {e}")

    output_cfg, output_over = section('output')
    output_config = OutputConfig(
        log_file=str(_setting(output_cfg, output_over, 'log_file', 'LINKSYS_LOG_FILE', '')),
        quiet=_as_bool(_setting(output_cfg, output_over, 'quiet', 'LINKSYS_QUIET', False)),
    )

    # Validate
    if not 0 < listener_config.listen_port <= 65535:
        raise ValueError("LINKSYS_LISTEN_PORT or listener.listen_port must be between 1 and 65535")
    if not display_config.template:
        raise ValueError("LINKSYS_TEMPLATE or display.template must not be empty")
    if resolver_config.cache_size < 0:
        raise ValueError("LINKSYS_DNS_CACHE_SIZE or resolver.cache_size must not be negative")
    if resolver_config.timeout is not None and resolver_config.timeout <= 0:
        raise ValueError("LINKSYS_DNS_TIMEOUT or resolver.timeout must be positive")
    if output_config.quiet and not output_config.log_file:
        raise ValueError("quiet output requires LINKSYS_LOG_FILE or output.log_file to be set")

    return Config(
        listener=listener_config,
        filters=filter_config,
        display=display_config,
        resolver=resolver_config,
        output=output_config,
    )
