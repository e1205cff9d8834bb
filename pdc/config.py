"""
PDC Configuration System

Configuration Sources (in order of precedence):
    1. Environment variables (PDC_*)
    2. Runtime overrides / loaded YAML files
    3. Default values

Default file locations: ./pdc.yaml, ./config/pdc.yaml, ~/.pdc/config.yaml

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from pdc.keys import COMPOSITE_KEY_INDEX, DEFAULT_PARTITION_PREFIX
from pdc.observability import Layer, get_logger

logger = get_logger("config", Layer.CONFIG)

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration value rejected by its validator."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """A single configuration value with env binding and validation."""
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    read_only: bool = False
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        if self.env_var and self.env_var in os.environ:
            return self._checked(os.environ[self.env_var], source=self.env_var)
        return self._value if self._value is not None else self.default

    def set(self, value: Any) -> None:
        if self.read_only:
            raise ConfigError(f"Config value is read-only: {self.description or self.default!r}")
        self._value = self._checked(value)

    def _checked(self, value: Any, source: str = "config") -> T:
        """Coerce strings, then enforce the default's type and the validator."""
        if isinstance(value, str) and not isinstance(self.default, str):
            try:
                value = self._coerce(value)
            except ValueError as e:
                raise ConfigValidationError(f"Invalid value for {source}: {value!r}") from e
        if not isinstance(value, type(self.default)):
            raise ConfigValidationError(
                f"Invalid value for {source}: expected {type(self.default).__name__}, "
                f"got {type(value).__name__}"
            )
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for {source}: {value!r}")
        return value

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        target_type = type(self.default)
        if target_type == bool:
            return value.strip().lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        return value  # type: ignore


@dataclass
class LedgerConfig:
    """Reference ledger used by the CLI."""
    state_path: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=".pdc/ledger.json",
        env_var="PDC_LEDGER_STATE_PATH",
        description="JSON snapshot backing the file ledger",
        validator=lambda x: bool(x),
    ))
    atomic_transactions: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="PDC_LEDGER_ATOMIC",
        description="Apply each transaction's writes as one atomic unit",
    ))


@dataclass
class ContractConfig:
    """Asset contract behaviour."""
    partition_prefix: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=DEFAULT_PARTITION_PREFIX,
        env_var="PDC_PARTITION_PREFIX",
        description="Prefix of implicit organization partitions",
        validator=lambda x: bool(x) and "\x00" not in x,
    ))
    sentinel_compat: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="PDC_SENTINEL_COMPAT",
        description="Treat empty owner / zero price in private updates as unchanged",
    ))
    composite_key_index: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=COMPOSITE_KEY_INDEX,
        description="Composite key index name",
        read_only=True,
    ))


@dataclass
class ObservabilityConfig:
    """Logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="warning",
        env_var="PDC_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="PDC_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class PdcConfig:
    """Root configuration."""
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    contract: ContractConfig = field(default_factory=ContractConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._config = PdcConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton; the next ConfigManager() starts from defaults."""
        with cls._lock:
            cls._instance = None

    @property
    def config(self) -> PdcConfig:
        return self._config

    @property
    def loaded_paths(self) -> List[Path]:
        return list(self._config_paths)

    def load_from_file(self, path: Union[str, Path]) -> None:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")
        self._apply_dict(data)
        self._config_paths.append(path)
        logger.info("configuration loaded", path=str(path))

    def load_defaults(self) -> None:
        """Load the first default configuration file found, if any."""
        default_paths = [
            Path("pdc.yaml"),
            Path("config/pdc.yaml"),
            Path.home() / ".pdc" / "config.yaml",
        ]
        for path in default_paths:
            if path.exists():
                self.load_from_file(path)
                return

    def _apply_dict(self, data: Dict[str, Any], prefix: str = "") -> None:
        for key, value in data.items():
            dotted = f"{prefix}{key}"
            if isinstance(value, dict):
                self._apply_dict(value, prefix=f"{dotted}.")
            else:
                self.set(dotted, value)

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not part or not hasattr(obj, "__dataclass_fields__") or part not in obj.__dataclass_fields__:
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """Example: config.set("contract.sentinel_compat", False)"""
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """Example: config.get("ledger.state_path")"""
        attr = self._resolve(path)
        if isinstance(attr, ConfigValue):
            return attr.get()
        return _section_dict(attr)


def _section_dict(section: Any) -> Dict[str, Any]:
    return {
        k: getattr(section, k).get() if isinstance(getattr(section, k), ConfigValue) else _section_dict(getattr(section, k))
        for k in section.__dataclass_fields__
    }


def get_config() -> ConfigManager:
    return ConfigManager()
