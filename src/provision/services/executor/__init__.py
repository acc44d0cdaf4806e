from .core import apply, destroy

from .exceptions import (
    ApplyError,
    SecretHandlingError,
)

__all__ = [
    "apply",
    "destroy",
    "ApplyError",
    "SecretHandlingError",
]
