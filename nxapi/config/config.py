import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_REQUEST_TIMEOUT = 60
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_MIN_DELAY = 4
DEFAULT_BACKOFF_MAX_DELAY = 60
DEFAULT_BACKOFF_DELAY_FACTOR = 3.0
DEFAULT_REFRESH_INTERVAL = 480
DEFAULT_POOL_MAXSIZE = 32

# Environment variable -> ClientConfig field
_TUNABLE_ENV = {
    "NXOS_INSECURE": "insecure",
    "NXOS_REQUEST_TIMEOUT": "request_timeout",
    "NXOS_MAX_RETRIES": "max_retries",
    "NXOS_BACKOFF_MIN_DELAY": "backoff_min_delay",
    "NXOS_BACKOFF_MAX_DELAY": "backoff_max_delay",
    "NXOS_BACKOFF_DELAY_FACTOR": "backoff_delay_factor",
}


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


@dataclass
class ClientConfig:
    """Tunables of a client. Fields left unset keep their defaults."""

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_min_delay: float = DEFAULT_BACKOFF_MIN_DELAY
    backoff_max_delay: float = DEFAULT_BACKOFF_MAX_DELAY
    backoff_delay_factor: float = DEFAULT_BACKOFF_DELAY_FACTOR
    insecure: bool = False
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    pool_maxsize: int = DEFAULT_POOL_MAXSIZE

    def validate(self) -> "ClientConfig":
        """Check value ranges.

        Returns:
            The config itself, for chaining.

        Raises:
            ConfigurationError: If any value is out of range.
        """
        for name in ("request_timeout", "max_retries", "backoff_min_delay", "backoff_max_delay", "refresh_interval"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        if self.pool_maxsize < 1:
            raise ConfigurationError("pool_maxsize must be at least 1")
        if self.backoff_min_delay > self.backoff_max_delay:
            raise ConfigurationError("backoff_min_delay must not exceed backoff_max_delay")
        if self.backoff_delay_factor < 1:
            raise ConfigurationError("backoff_delay_factor must be at least 1")
        return self


@dataclass
class DeviceConfig:
    url: str
    username: str
    password: str
    client: ClientConfig = field(default_factory=ClientConfig)


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw env/YAML value to the type of ClientConfig field ``name``."""
    default = getattr(ClientConfig, name)
    try:
        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in ("1", "true", "yes", "on"):
                return True
            if text in ("0", "false", "no", "off", ""):
                return False
            raise ValueError(value)
        if isinstance(default, int) and name in ("max_retries", "pool_maxsize"):
            return int(value)
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid value for {name}: {value!r}")


def _load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    section = data.get("client") or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'client' section in {path} must be a mapping")
    known = {f.name for f in fields(ClientConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigurationError(f"Unknown client settings in {path}: {', '.join(unknown)}")
    return {name: _coerce(name, value) for name, value in section.items()}


def load_config(path: Optional[str] = None) -> DeviceConfig:
    """Load and validate device configuration from environment and YAML.

    A ``.env`` file in the working directory is loaded first. Tunables are
    read from the YAML file at ``path`` (or ``NXOS_CONFIG_FILE``), then
    overridden by environment variables.

    Returns:
        A validated DeviceConfig instance.

    Raises:
        ConfigurationError: If required environment variables are missing
            or a value is invalid.
        FileNotFoundError: If the YAML configuration file is not found.
        yaml.YAMLError: If the YAML file contains invalid syntax.
    """
    load_dotenv()

    required_env = {
        "NXOS_URL": os.getenv("NXOS_URL", "").strip(),
        "NXOS_USERNAME": os.getenv("NXOS_USERNAME", "").strip(),
        "NXOS_PASSWORD": os.getenv("NXOS_PASSWORD", "").strip(),
    }

    missing = [key for key, value in required_env.items() if not value]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(sorted(missing))}"
        )

    settings: Dict[str, Any] = {}
    path = path or os.getenv("NXOS_CONFIG_FILE", "").strip()
    if path:
        settings.update(_load_yaml(path))

    for env_name, field_name in _TUNABLE_ENV.items():
        raw = os.getenv(env_name, "").strip()
        if raw:
            settings[field_name] = _coerce(field_name, raw)

    return DeviceConfig(
        url=required_env["NXOS_URL"].rstrip("/"),
        username=required_env["NXOS_USERNAME"],
        password=required_env["NXOS_PASSWORD"],
        client=ClientConfig(**settings).validate(),
    )
