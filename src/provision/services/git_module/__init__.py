from .core import GitSourceDiscovery, discover_source
from .models import SourceInfo

from .exceptions import (
    GitExceptions,
    GitLocalPathError,
    GitRemoteError,
)

__all__ = [
    "GitSourceDiscovery",
    "discover_source",
    "SourceInfo",
    "GitExceptions",
    "GitLocalPathError",
    "GitRemoteError",
]
