"""
Configuration Dataclasses

Type-safe configuration for the watchdog. Every field has the on-device
default; a YAML file may override any of them, and the target endpoint can
also come from the command line or the TARGET_IP environment variable.
"""

import ipaddress
import re
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

DEFAULT_TARGET = "127.0.0.1:80"
TARGET_ENV_VAR = "TARGET_IP"

_HOST_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


class NetworkProfile(str, Enum):
    """Kernel network parameter sets"""
    THROTTLED = "throttled"
    NORMAL = "normal"
    OPTIMIZED = "optimized"


@dataclass(frozen=True)
class Endpoint:
    """Validated host:port pair"""
    host: str
    port: int

    def as_tuple(self) -> tuple[str, int]:
        return (self.host, self.port)

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass
class IntervalSettings:
    """Scheduler intervals in seconds"""
    tick_s: float = 2.0
    cpu_check_s: float = 30.0
    network_check_s: float = 60.0
    log_prune_s: float = 86400.0
    startup_delay_s: float = 30.0


@dataclass
class ThresholdSettings:
    """Hysteresis thresholds"""
    cpu_usage_pct: float = 85.0
    load_streak: int = 3
    recovery_streak: int = 3
    high_latency_ms: float = 50.0
    high_latency_streak: int = 3
    max_failures: int = 10


@dataclass
class SystemSettings:
    """Paths and binaries used by the host capabilities"""
    log_file: str = "/etc_rw/zxping.log"
    adbd_binary: str = "/bin/adbd"
    adbd_match: str = "adbd"
    reboot_command: str = "/sbin/reboot"
    lan_interface: str = "br0"
    wan_interface: str = "wan1"
    default_lan_network: str = "192.168.0.0/24"
    command_timeout_s: float = 30.0


@dataclass
class WatchdogConfig:
    """Complete watchdog configuration"""
    target: str = DEFAULT_TARGET
    control_host: str = "0.0.0.0"
    control_port: int = 1300
    device_tag: str = "zxic"
    connect_timeout_s: float = 3.0
    notify_timeout_s: float = 2.0
    health_port: int = 8091
    intervals: IntervalSettings = field(default_factory=IntervalSettings)
    thresholds: ThresholdSettings = field(default_factory=ThresholdSettings)
    system: SystemSettings = field(default_factory=SystemSettings)

    @property
    def endpoint(self) -> Endpoint:
        """Target endpoint; raises ConfigError when malformed"""
        return parse_endpoint(self.target)

    def with_target(self, target: str) -> "WatchdogConfig":
        return replace(self, target=target)


_SECTIONS = {
    "intervals": IntervalSettings,
    "thresholds": ThresholdSettings,
    "system": SystemSettings,
}


def _is_valid_host(host: str) -> bool:
    """IP literal, or a DNS name the resolver will accept"""
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass

    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return False

    ascii_host = ascii_host.rstrip(".")
    if not ascii_host or len(ascii_host) > 253:
        return False
    return all(_HOST_LABEL.match(label) for label in ascii_host.split("."))


def parse_endpoint(value: str) -> Endpoint:
    """
    Parse and validate a host:port endpoint.

    IPv6 literals must be bracketed ("[::1]:80").

    Raises:
        ConfigError: If the value is not a usable endpoint
    """
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid target endpoint {value!r}: empty value")

    text = value.strip()
    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ConfigError(f"Invalid target endpoint {value!r}: expected [host]:port")
        port_text = rest[1:]
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            raise ConfigError(f"Invalid target endpoint {value!r}: bad IPv6 address")
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep:
            raise ConfigError(f"Invalid target endpoint {value!r}: missing port")
        if ":" in host:
            raise ConfigError(
                f"Invalid target endpoint {value!r}: IPv6 addresses must be bracketed"
            )

    if not host:
        raise ConfigError(f"Invalid target endpoint {value!r}: missing host")

    if not _is_valid_host(host):
        raise ConfigError(f"Invalid target endpoint {value!r}: bad host name")

    if not port_text.isdigit():
        raise ConfigError(f"Invalid target endpoint {value!r}: port must be numeric")

    port = int(port_text)
    if not 1 <= port <= 65535:
        raise ConfigError(f"Invalid target endpoint {value!r}: port out of range")

    return Endpoint(host=host, port=port)


def resolve_target(
    positional: list[str] | None,
    environ: dict[str, str],
    default: str = DEFAULT_TARGET,
) -> str:
    """
    Pick the target endpoint string.

    Priority: first positional argument, then TARGET_IP, then the default.
    """
    for arg in positional or []:
        if not arg.startswith("-"):
            return arg

    env_value = environ.get(TARGET_ENV_VAR, "")
    if env_value:
        return env_value

    return default


def _build_section(cls: type, name: str, data: Any) -> Any:
    """Build one nested settings dataclass from a YAML mapping"""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {', '.join(sorted(unknown))}")

    return cls(**data)


def config_from_dict(data: dict) -> WatchdogConfig:
    """
    Build a WatchdogConfig from a parsed YAML document.

    Raises:
        ConfigError: On unknown keys or wrong section types
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    top_level = {f.name for f in fields(WatchdogConfig)}
    unknown = set(data) - top_level
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in _SECTIONS:
            kwargs[key] = _build_section(_SECTIONS[key], key, value)
        else:
            kwargs[key] = value

    return WatchdogConfig(**kwargs)


def load_config(config_path: str | Path | None) -> WatchdogConfig:
    """
    Load configuration from a YAML file.

    A missing path argument gives the built-in defaults.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if config_path is None:
        return WatchdogConfig()

    path = Path(config_path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing configuration {path}: {e}")

    return config_from_dict(data)
