"""Configuration management with file and environment support."""

import json
import os
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, get_type_hints

import yaml
from scipy import constants

from .exceptions import ConfigurationError, ErrorCode
from .logging_config import DEFAULT_FORMAT, get_logger, setup_logging

logger = get_logger(__name__)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class PhysicsConfig:
    """Physical constants shared read-only by every assembly call."""

    omega: float = 1.0
    permittivity: float = constants.epsilon_0
    magnetic_permeability: float = constants.mu_0


@dataclass
class AssemblyConfig:
    """Element assembly configuration."""

    num_dim: int = 3
    quadrature_order: int = 2
    max_workers: Optional[int] = None
    fd_step: float = 1e-6


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_FORMAT
    log_file: Optional[str] = None
    enable_structured_logging: bool = False


@dataclass
class EMWaveConfig:
    """Main configuration."""

    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    assembly: AssemblyConfig = field(default_factory=AssemblyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigValidator:
    """Validator for configuration values."""

    def validate_config(self, config: EMWaveConfig) -> List[str]:
        """Validate entire configuration.

        Parameters
        ----------
        config : EMWaveConfig
            Configuration to validate

        Returns
        -------
        List[str]
            List of validation errors
        """
        errors = []
        errors.extend(self._validate_physics_config(config.physics))
        errors.extend(self._validate_assembly_config(config.assembly))

        if str(config.logging.level).upper() not in VALID_LOG_LEVELS:
            errors.append(f"Invalid log level: {config.logging.level}")

        return errors

    def _validate_physics_config(self, physics: PhysicsConfig) -> List[str]:
        errors = []

        for name in ("omega", "permittivity", "magnetic_permeability"):
            value = getattr(physics, name)
            if not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"{name} must be a positive number: {value}")

        return errors

    def _validate_assembly_config(self, assembly: AssemblyConfig) -> List[str]:
        errors = []

        if assembly.num_dim not in (1, 2, 3):
            errors.append(f"Invalid num_dim: {assembly.num_dim}")

        if assembly.quadrature_order not in (1, 2):
            errors.append(f"Unsupported quadrature order: {assembly.quadrature_order}")

        if assembly.max_workers is not None and assembly.max_workers < 1:
            errors.append(f"Invalid worker count: {assembly.max_workers}")

        if assembly.fd_step <= 0:
            errors.append(f"fd_step must be positive: {assembly.fd_step}")

        return errors


class ConfigManager:
    """Configuration manager with environment support.

    Values are resolved in order: dataclass defaults, the first
    configuration file found (JSON or YAML), then ``EMWAVE_*``
    environment variables.
    """

    def __init__(self, config_paths: Optional[List[str]] = None):
        self.config_paths = config_paths or [
            "./emwave.json",
            "./emwave.yaml",
            "./emwave.yml",
            os.path.expanduser("~/.emwave/config.yaml"),
        ]
        self.validator = ConfigValidator()
        self._config = None
        self._config_file_path = None

        self.env_mappings = {
            "EMWAVE_OMEGA": "physics.omega",
            "EMWAVE_PERMITTIVITY": "physics.permittivity",
            "EMWAVE_MAGNETIC_PERMEABILITY": "physics.magnetic_permeability",
            "EMWAVE_NUM_DIM": "assembly.num_dim",
            "EMWAVE_QUADRATURE_ORDER": "assembly.quadrature_order",
            "EMWAVE_MAX_WORKERS": "assembly.max_workers",
            "EMWAVE_FD_STEP": "assembly.fd_step",
            "EMWAVE_LOG_LEVEL": "logging.level",
            "EMWAVE_LOG_FILE": "logging.log_file",
        }

    def load_config(self, config_path: Optional[str] = None) -> EMWaveConfig:
        """Load configuration from file and environment.

        Parameters
        ----------
        config_path : str, optional
            Specific config file path

        Returns
        -------
        EMWaveConfig
            Loaded and validated configuration

        Raises
        ------
        ConfigurationError
            If the file cannot be parsed or a value is invalid
        """
        config_data = asdict(EMWaveConfig())

        file_config = self._load_from_file(config_path)
        if file_config:
            config_data = self._deep_merge(config_data, file_config)

        env_config = self._load_from_environment()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        config = self._dict_to_dataclass(config_data, EMWaveConfig)

        errors = self.validator.validate_config(config)
        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(
                f"  - {error}" for error in errors
            )
            raise ConfigurationError(
                error_msg,
                config_file=self._config_file_path,
                context={"validation_errors": errors},
            )

        self._config = config
        logger.info(
            f"Configuration loaded from {self._config_file_path or 'defaults and environment'}"
        )

        return config

    def _load_from_file(
        self, config_path: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Load configuration from the first existing file."""
        paths_to_try = [config_path] if config_path else self.config_paths

        for path in paths_to_try:
            config_file = Path(path)
            if not config_file.exists():
                if config_path:
                    raise ConfigurationError(
                        f"Configuration file not found: {path}", config_file=str(path)
                    )
                continue

            logger.debug(f"Loading configuration from {path}")

            try:
                with open(config_file, "r") as f:
                    if config_file.suffix.lower() == ".json":
                        config_data = json.load(f)
                    elif config_file.suffix.lower() in (".yaml", ".yml"):
                        config_data = yaml.safe_load(f)
                    else:
                        raise ConfigurationError(
                            f"Unknown config file format: {path}", config_file=str(path)
                        )
            except (json.JSONDecodeError, yaml.YAMLError) as e:
                raise ConfigurationError(
                    f"Failed to parse configuration: {e}",
                    config_file=str(path),
                    cause=e,
                ) from e

            self._config_file_path = str(config_file)
            return config_data or {}

        logger.debug("No configuration file found, using defaults")
        return None

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}

        for env_var, config_path in self.env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                converted_value = self._convert_env_value(env_value)
                self._set_nested_value(env_config, config_path, converted_value)
                logger.debug(f"Set config {config_path} from environment variable {env_var}")

        return env_config

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to appropriate type."""
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def _set_nested_value(self, config_dict: Dict[str, Any], path: str, value: Any):
        """Set nested dictionary value using dot notation."""
        keys = path.split(".")
        current = config_dict

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def _deep_merge(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _dict_to_dataclass(self, data: Dict[str, Any], dataclass_type: Type) -> Any:
        """Convert dictionary to dataclass instance."""
        field_types = get_type_hints(dataclass_type)
        known = {f.name for f in fields(dataclass_type)}

        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys for {dataclass_type.__name__}: {sorted(unknown)}",
                error_code=ErrorCode.CONFIGURATION_ERROR,
            )

        kwargs = {}
        for name, value in data.items():
            field_type = field_types.get(name)
            if is_dataclass(field_type) and isinstance(value, dict):
                kwargs[name] = self._dict_to_dataclass(value, field_type)
            else:
                kwargs[name] = value

        return dataclass_type(**kwargs)

    def save_config(self, config: EMWaveConfig, output_path: str, format: str = "json"):
        """Save configuration to file.

        Parameters
        ----------
        config : EMWaveConfig
            Configuration to save
        output_path : str
            Output file path
        format : str, optional
            Output format ('json' or 'yaml')
        """
        config_dict = asdict(config)

        with open(output_path, "w") as f:
            if format.lower() == "json":
                json.dump(config_dict, f, indent=2)
            elif format.lower() in ("yaml", "yml"):
                yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)
            else:
                raise ConfigurationError(f"Unsupported format: {format}", config_key="format")

        logger.info(f"Configuration saved to {output_path}")

    def get_config(self) -> Optional[EMWaveConfig]:
        """Get current configuration."""
        return self._config


def setup_logging_from_config(logging_config: LoggingConfig) -> None:
    """Configure the ``emwave`` loggers from the ``logging`` config section."""
    setup_logging(
        log_level=str(logging_config.level).upper(),
        log_format=logging_config.format,
        log_file=logging_config.log_file,
        enable_structured_logging=logging_config.enable_structured_logging,
    )
