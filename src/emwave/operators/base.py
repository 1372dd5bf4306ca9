"""Base operator class and registration system."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..models.materials import CoefficientResolver, MaterialConstants
from ..utils.exceptions import InvalidSelectorError

# Global operator registry
_OPERATOR_REGISTRY: Dict[str, type] = {}


def register_operator(name: str):
    """Decorator to register an operator class.

    Parameters
    ----------
    name : str
        Name to register the operator under

    Returns
    -------
    Callable
        Decorator function
    """
    def decorator(cls):
        _OPERATOR_REGISTRY[name] = cls
        return cls
    return decorator


def get_operator(name: str) -> type:
    """Get registered operator class by name.

    Parameters
    ----------
    name : str
        Operator name

    Returns
    -------
    type
        Operator class

    Raises
    ------
    InvalidSelectorError
        If operator not found
    """
    if name not in _OPERATOR_REGISTRY:
        raise InvalidSelectorError(
            f"Operator '{name}' not found. Available: {list(_OPERATOR_REGISTRY.keys())}",
            selector=name,
        )
    return _OPERATOR_REGISTRY[name]


def available_operators():
    return sorted(_OPERATOR_REGISTRY)


class BaseOperator(ABC):
    """Base class for element-level EM operators.

    An operator binds the read-only material constants and the coefficient
    resolver; each call evaluates one quadrature point.

    Parameters
    ----------
    material : MaterialConstants
        Physical constants shared by every call
    resolver : CoefficientResolver
        Source of refractive index, extinction coefficient and sensitivities
    """

    def __init__(self, material: MaterialConstants, resolver: CoefficientResolver):
        if not isinstance(resolver, CoefficientResolver):
            raise TypeError(f"resolver must be a CoefficientResolver, got {type(resolver).__name__}")
        self.material = material
        self.resolver = resolver

    @abstractmethod
    def assemble(self, *args, **kwargs) -> Any:
        """Evaluate the operator at one quadrature point."""

    def __call__(self, *args, **kwargs) -> Any:
        return self.assemble(*args, **kwargs)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(material={self.material}, resolver={self.resolver})"
