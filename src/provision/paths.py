import copy
import re
from typing import Any, Dict, Iterable, Tuple, Union

"""
Пути атрибутов в нотации Terraform: "stage[0].action[0].configuration".
Внутри — кортежи ("stage", 0, "action", 0, "configuration").
"""

PathKey = Union[str, int]
Path = Tuple[PathKey, ...]

_SEGMENT = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def parse_path(raw: str) -> Path:
    raw = raw.strip()
    if not raw:
        raise ValueError("Пустой путь атрибута")

    parts: list[PathKey] = []
    pos = 0
    while pos < len(raw):
        if raw[pos] == ".":
            pos += 1
            continue
        m = _SEGMENT.match(raw, pos)
        if not m:
            raise ValueError(f"Некорректный путь атрибута: {raw!r}")
        if m.group(1) is not None:
            parts.append(int(m.group(1)) if m.group(1).isdigit() else m.group(1))
        else:
            parts.append(int(m.group(2)))
        pos = m.end()
    return tuple(parts)


def format_path(path: Path) -> str:
    out = ""
    for part in path:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += ("." if out else "") + part
    return out


def is_under(path: Path, prefix: Path) -> bool:
    return len(path) >= len(prefix) and path[: len(prefix)] == prefix


def is_masked(path: Path, mask: Iterable[Path]) -> bool:
    return any(is_under(path, prefix) for prefix in mask)


def flatten(value: Any, prefix: Path = ()) -> Dict[Path, Any]:
    """
    Раскладывает вложенные dict/list в {путь: лист}.
    Пустые dict/list тоже считаются листьями, чтобы их появление было видно в diff.
    """
    if isinstance(value, dict) and value:
        out: Dict[Path, Any] = {}
        for key, item in value.items():
            out.update(flatten(item, prefix + (key,)))
        return out
    if isinstance(value, (list, tuple)) and value:
        out = {}
        for index, item in enumerate(value):
            out.update(flatten(item, prefix + (index,)))
        return out
    return {prefix: value}


def get_path(value: Any, path: Path, default: Any = None) -> Any:
    current = value
    for part in path:
        try:
            current = current[part]
        except (KeyError, IndexError, TypeError):
            return default
    return current


def set_path(value: Any, path: Path, new: Any) -> Any:
    """
    Возвращает копию value, где по пути path стоит new.
    Если промежуточного контейнера нет — value возвращается без изменений.
    """
    if not path:
        return copy.deepcopy(new)
    result = copy.deepcopy(value)
    current = result
    for part in path[:-1]:
        try:
            current = current[part]
        except (KeyError, IndexError, TypeError):
            return result
    try:
        current[path[-1]] = copy.deepcopy(new)
    except (IndexError, TypeError):
        return result
    return result


def drop_path(value: Any, path: Path) -> Any:
    """
    Возвращает копию value без поддерева path.
    """
    result = copy.deepcopy(value)
    current = result
    for part in path[:-1]:
        try:
            current = current[part]
        except (KeyError, IndexError, TypeError):
            return result
    if isinstance(current, dict):
        current.pop(path[-1], None)
    return result
