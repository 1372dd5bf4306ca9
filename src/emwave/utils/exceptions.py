"""Exception classes for element assembly errors."""

import datetime
import logging
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Standardized error codes for the assembly engine."""

    # General errors (1000-1999)
    UNKNOWN_ERROR = 1000
    INVALID_INPUT = 1001
    CONFIGURATION_ERROR = 1002

    # Validation errors (2000-2999)
    INVALID_BOUNDARY_DATA = 2000
    INVALID_PARAMETERS = 2001
    DEGENERATE_MATERIAL = 2002
    INVALID_ELEMENT = 2003

    # Assembly errors (4000-4999)
    INVALID_SELECTOR = 4000
    ASSEMBLY_ERROR = 4001


class EMWaveError(Exception):
    """Base exception class for all emwave errors.

    Parameters
    ----------
    message : str
        Human-readable error message
    error_code : ErrorCode, optional
        Standardized error code
    context : Dict[str, Any], optional
        Additional context information
    suggestion : str, optional
        Suggested resolution or next steps
    cause : Exception, optional
        Original exception that caused this error

    Examples
    --------
    >>> raise EMWaveError(
    ...     "Unknown equation selector",
    ...     error_code=ErrorCode.INVALID_SELECTOR,
    ...     context={'selector': 'EM_E4_REAL'},
    ... )
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        context: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.suggestion = suggestion
        self.cause = cause

        self._log_error()

    def _log_error(self):
        """Log the error with appropriate level."""
        log_data = {
            'error_code': self.error_code.name,
            'error_context': self.context,
        }

        if self.error_code.value >= 4000:
            logger.error(f"Assembly Error [{self.error_code.name}]: {self.message}", extra=log_data)
        else:
            logger.warning(f"Framework Error [{self.error_code.name}]: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary representation.

        Returns
        -------
        Dict[str, Any]
            Dictionary containing error information
        """
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code.name,
            'error_code_value': self.error_code.value,
            'message': self.message,
            'context': self.context,
            'suggestion': self.suggestion,
            'timestamp': datetime.datetime.now().isoformat()
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code.name}] {self.message}"]

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")

        return " | ".join(parts)


class ValidationError(EMWaveError):
    """Exception for input validation and constraint violations."""

    def __init__(
        self,
        message: str,
        invalid_field: Optional[str] = None,
        actual_value: Any = None,
        constraint: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if invalid_field:
            context['invalid_field'] = invalid_field
        if actual_value is not None:
            context['actual_value'] = str(actual_value)
        if constraint:
            context['constraint'] = constraint

        kwargs['context'] = context
        kwargs.setdefault('error_code', ErrorCode.INVALID_INPUT)

        super().__init__(message, **kwargs)


class DegenerateMaterialError(ValidationError):
    """Exception for material pairs whose impedance sum vanishes."""

    def __init__(
        self,
        message: str,
        impedance_interior: Optional[complex] = None,
        impedance_exterior: Optional[complex] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if impedance_interior is not None:
            context['impedance_interior'] = impedance_interior
        if impedance_exterior is not None:
            context['impedance_exterior'] = impedance_exterior

        kwargs['context'] = context
        kwargs.setdefault('error_code', ErrorCode.DEGENERATE_MATERIAL)
        kwargs.setdefault('suggestion',
                          "Check the refractive index and extinction coefficient on both sides of the boundary")

        super().__init__(message, **kwargs)


class ConfigurationError(EMWaveError):
    """Exception for configuration and problem setup errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[str] = None,
        config_file: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if config_key:
            context['config_key'] = config_key
        if actual_value:
            context['actual_value'] = actual_value
        if config_file:
            context['config_file'] = config_file

        kwargs['context'] = context
        kwargs.setdefault('error_code', ErrorCode.CONFIGURATION_ERROR)

        super().__init__(message, **kwargs)


class InvalidSelectorError(ConfigurationError):
    """Unrecognized equation, variable or boundary condition selector.

    Raised by the assemblers instead of producing a silent zero
    contribution. Always fatal for the current assembly.
    """

    def __init__(self, message: str, selector: Any = None, **kwargs):
        context = kwargs.get('context', {})
        if selector is not None:
            context['selector'] = repr(selector)

        kwargs['context'] = context
        kwargs.setdefault('error_code', ErrorCode.INVALID_SELECTOR)

        super().__init__(message, **kwargs)


def validate_and_raise(condition: bool, message: str,
                       exception_class: type = ValidationError, **kwargs) -> None:
    """Raise ``exception_class`` with ``message`` unless ``condition`` holds.

    Parameters
    ----------
    condition : bool
        Condition that must be true
    message : str
        Error message used when the condition fails
    exception_class : type, optional
        Exception type to raise, by default ValidationError
    **kwargs
        Forwarded to the exception constructor
    """
    if not condition:
        raise exception_class(message, **kwargs)
