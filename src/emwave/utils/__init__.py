"""Utility functions for emwave."""

from .algebra import PERMUTATION_TENSOR, complex_cross, kronecker, permutation
from .config_manager import ConfigManager, EMWaveConfig, setup_logging_from_config
from .exceptions import (
    ConfigurationError,
    DegenerateMaterialError,
    EMWaveError,
    ErrorCode,
    InvalidSelectorError,
    ValidationError,
)
from .logging_config import get_logger, log_performance, setup_logging
from .validation import validate_conjugate_pair, validate_farfield_data, validate_material_pair

__all__ = [
    "permutation",
    "kronecker",
    "complex_cross",
    "PERMUTATION_TENSOR",
    "ConfigManager",
    "EMWaveConfig",
    "ErrorCode",
    "EMWaveError",
    "ValidationError",
    "ConfigurationError",
    "InvalidSelectorError",
    "DegenerateMaterialError",
    "get_logger",
    "log_performance",
    "setup_logging",
    "setup_logging_from_config",
    "validate_farfield_data",
    "validate_material_pair",
    "validate_conjugate_pair",
]
