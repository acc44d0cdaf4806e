from .core import LocalStateBackend

from .exceptions import (
    StateError,
    StateLockError,
    StateCorruptedError,
)

__all__ = [
    "LocalStateBackend",
    "StateError",
    "StateLockError",
    "StateCorruptedError",
]
