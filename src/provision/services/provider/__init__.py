from .core import Provider, SimulatedCloud
from .schemas import ResourceSchema, SCHEMAS

from .exceptions import (
    ProviderError,
    UnsupportedResourceError,
    ProviderNotFoundError,
    ProviderConflictError,
    ProviderValidationError,
)

__all__ = [
    "Provider",
    "SimulatedCloud",
    "ResourceSchema",
    "SCHEMAS",
    "ProviderError",
    "UnsupportedResourceError",
    "ProviderNotFoundError",
    "ProviderConflictError",
    "ProviderValidationError",
]
