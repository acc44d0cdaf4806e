import json
import os

from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import ValidationError

import settings
from exception import VariablesError
from provision.models import StackVariables

"""
Сборка StackVariables из нескольких источников.

Приоритет (от низшего к высшему):
  1. defaults         — например, найденные в локальном git-репозитории;
  2. окружение        — PIPE2CLOUD_VAR_<name>;
  3. var-файл (JSON)  — --var-file;
  4. CLI              — --var name=value.
"""

VARIABLE_NAMES = tuple(StackVariables.model_fields)


def parse_cli_vars(items: Iterable[str]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for item in items:
        if "=" not in item:
            raise VariablesError(problems=[f"--var ожидает NAME=VALUE, получено {item!r}"])
        name, value = item.split("=", 1)
        result[name.strip()] = value
    return result


def read_var_file(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise VariablesError(problems=[f"var-файл не найден: {path}"])
    except json.JSONDecodeError as e:
        raise VariablesError(problems=[f"var-файл {path} не является корректным JSON: {e}"])
    if not isinstance(data, dict):
        raise VariablesError(problems=[f"var-файл {path} должен содержать JSON-объект"])
    return data


def read_env_vars(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    environ = os.environ if environ is None else environ
    result: Dict[str, str] = {}
    for name in VARIABLE_NAMES:
        key = settings.VAR_ENV_PREFIX + name.upper()
        if key in environ:
            result[name] = environ[key]
    return result


def load_variables(
    defaults: Optional[Mapping[str, Any]] = None,
    var_file: Optional[Path] = None,
    cli_vars: Iterable[str] = (),
    environ: Optional[Mapping[str, str]] = None,
) -> StackVariables:
    merged: Dict[str, Any] = {}
    merged.update(defaults or {})
    merged.update(read_env_vars(environ))
    if var_file is not None:
        merged.update(read_var_file(var_file))
    merged.update(parse_cli_vars(cli_vars))

    unknown = sorted(set(merged) - set(VARIABLE_NAMES))
    if unknown:
        raise VariablesError(problems=[f"неизвестные переменные: {', '.join(unknown)}"])

    try:
        return StackVariables(**merged)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        raise VariablesError(problems=problems)
