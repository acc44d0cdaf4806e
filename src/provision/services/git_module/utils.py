import re
from pathlib import Path
from typing import Optional, Tuple, Union


PathLike = Union[str, Path]

# https://github.com/owner/repo(.git), git@github.com:owner/repo(.git), ssh://git@github.com/owner/repo
_REMOTE_PATTERNS = (
    re.compile(r"^(?:https?|git|ssh)://(?:[^@/]+@)?[^/]+/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"),
    re.compile(r"^[^@]+@[^:]+:(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?$"),
)


def parse_remote_url(url: str) -> Optional[Tuple[str, str]]:
    """
    Достаёт (owner, repository) из URL удалённого репозитория.
    Возвращает None, если формат не распознан.
    """
    url = url.strip()
    for pattern in _REMOTE_PATTERNS:
        m = pattern.match(url)
        if m:
            return m.group("owner"), m.group("repo")
    return None
