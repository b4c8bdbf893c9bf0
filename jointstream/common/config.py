"""
Configuration Dataclasses

Type-safe configuration structures for the joint stream service.
Values come from an optional YAML file, then environment overrides.
"""

import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

# Six joint floats plus the three tool position floats, two words each
MIN_BLOCK_WORDS = 18
MAX_REGISTER_ADDRESS = 65535
# Modbus limit for one holding register read
MAX_READ_WORDS = 125


@dataclass(frozen=True)
class DeviceEndpoint:
    """PLC Modbus TCP endpoint (never mutated after startup)"""
    host: str = "192.168.0.2"
    port: int = 502
    unit_id: int = 1
    timeout_s: float = 2.0

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class SamplingSettings:
    """Register block location and polling cadence"""
    base_address: int = 100
    word_count: int = 18
    interval_ms: int = 100
    max_connect_attempts: int = 5


@dataclass
class ServerSettings:
    """HTTP/WebSocket listener"""
    host: str = "0.0.0.0"
    port: int = 3000
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class LoggingSettings:
    """Log output configuration"""
    level: str = "INFO"
    json_format: bool = True


@dataclass
class AppConfig:
    """Complete service configuration"""
    device: DeviceEndpoint = field(default_factory=DeviceEndpoint)
    sampling: SamplingSettings = field(default_factory=SamplingSettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    "PLC_HOST": ("device", "host", str),
    "PLC_PORT": ("device", "port", int),
    "PLC_UNIT_ID": ("device", "unit_id", int),
    "PLC_TIMEOUT_S": ("device", "timeout_s", float),
    "PORT": ("server", "port", int),
    "JOINTSTREAM_LOG_LEVEL": ("logging", "level", str),
    "JOINTSTREAM_LOG_FORMAT": ("logging", "json_format", lambda v: v.lower() == "json"),
}


def load_app_config(data: dict) -> AppConfig:
    """Load AppConfig from dictionary (e.g., from a YAML file)"""
    try:
        device_data = data.get("device", {}) or {}
        device = DeviceEndpoint(
            host=str(device_data.get("host", "192.168.0.2")),
            port=int(device_data.get("port", 502)),
            unit_id=int(device_data.get("unit_id", 1)),
            timeout_s=float(device_data.get("timeout_s", 2.0)),
        )

        sampling_data = data.get("sampling", {}) or {}
        sampling = SamplingSettings(
            base_address=int(sampling_data.get("base_address", 100)),
            word_count=int(sampling_data.get("word_count", 18)),
            interval_ms=int(sampling_data.get("interval_ms", 100)),
            max_connect_attempts=int(sampling_data.get("max_connect_attempts", 5)),
        )

        server_data = data.get("server", {}) or {}
        server = ServerSettings(
            host=str(server_data.get("host", "0.0.0.0")),
            port=int(server_data.get("port", 3000)),
            allowed_origins=list(server_data.get("allowed_origins", ["*"])),
        )

        logging_data = data.get("logging", {}) or {}
        logging_settings = LoggingSettings(
            level=str(logging_data.get("level", "INFO")).upper(),
            json_format=bool(logging_data.get("json_format", True)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")

    config = AppConfig(
        device=device,
        sampling=sampling,
        server=server,
        logging=logging_settings,
    )
    validate_config(config)
    return config


def apply_env_overrides(config: AppConfig, environ: dict | None = None) -> AppConfig:
    """Return a copy of config with environment variables applied"""
    environ = os.environ if environ is None else environ
    sections: dict[str, dict[str, Any]] = {}

    for env_name, (section, key, convert) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            sections.setdefault(section, {})[key] = convert(raw)
        except ValueError:
            raise ConfigError(f"{env_name}={raw!r} is not a valid {key}")

    if not sections:
        return config

    config = replace(
        config,
        device=replace(config.device, **sections.get("device", {})),
        server=replace(config.server, **sections.get("server", {})),
        logging=replace(config.logging, **sections.get("logging", {})),
    )
    validate_config(config)
    return config


def validate_config(config: AppConfig) -> None:
    """Raise ConfigError for values the link or sampler cannot use"""
    if not config.device.host:
        raise ConfigError("device.host must not be empty")
    if not 0 < config.device.port < 65536:
        raise ConfigError(f"device.port out of range: {config.device.port}")
    if not 0 <= config.device.unit_id <= 255:
        raise ConfigError(f"device.unit_id out of range: {config.device.unit_id}")
    if config.device.timeout_s <= 0:
        raise ConfigError("device.timeout_s must be positive")
    if not 0 <= config.sampling.base_address <= MAX_REGISTER_ADDRESS:
        raise ConfigError(f"sampling.base_address out of range: {config.sampling.base_address}")
    if not MIN_BLOCK_WORDS <= config.sampling.word_count <= MAX_READ_WORDS:
        raise ConfigError(
            f"sampling.word_count must be {MIN_BLOCK_WORDS}..{MAX_READ_WORDS}, got {config.sampling.word_count}"
        )
    if config.sampling.base_address + config.sampling.word_count - 1 > MAX_REGISTER_ADDRESS:
        raise ConfigError("sampling block extends past the last holding register")
    if config.sampling.interval_ms <= 0:
        raise ConfigError("sampling.interval_ms must be positive")
    if config.sampling.max_connect_attempts < 1:
        raise ConfigError("sampling.max_connect_attempts must be at least 1")
    if not 0 < config.server.port < 65536:
        raise ConfigError(f"server.port out of range: {config.server.port}")


def load_config(path: str | Path | None = None, environ: dict | None = None) -> AppConfig:
    """
    Load configuration from YAML file and environment.

    Args:
        path: YAML file; when None, JOINTSTREAM_CONFIG or ./config.yaml
              is used if present, otherwise defaults apply
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Resolved AppConfig
    """
    environ = os.environ if environ is None else environ
    explicit = path is not None

    if path is None:
        path = environ.get("JOINTSTREAM_CONFIG") or "config.yaml"
        explicit = "JOINTSTREAM_CONFIG" in environ

    path = Path(path)
    data: dict = {}

    if path.exists():
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping")
    elif explicit:
        raise ConfigError(f"Configuration file not found: {path}")

    return apply_env_overrides(load_app_config(data), environ)
