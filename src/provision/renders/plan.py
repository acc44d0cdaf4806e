import json

from typing import Any, List

from pydantic import SecretStr

import settings
from model import UnknownValue
from provision.models import Plan, ResourceChange
from provision.paths import flatten, format_path, get_path, parse_path
from provision.secrets import StoredSecret

SYMBOLS = {
    "create": "+",
    "update": "~",
    "replace": "-/+",
    "delete": "-",
}


def format_value(value: Any) -> str:
    if isinstance(value, (SecretStr, StoredSecret)) or value == settings.SENSITIVE_MASK:
        return "(sensitive value)"
    if isinstance(value, UnknownValue):
        return "(known after apply)"
    try:
        return json.dumps(value, ensure_ascii=False)
    except TypeError:
        return str(value)


def _render_change(change: ResourceChange) -> List[str]:
    symbol = SYMBOLS[change.action]
    lines = [f"  {symbol} {change.address}"]

    if change.action == "create":
        for path, value in flatten(change.after or {}).items():
            lines.append(f"      + {format_path(path)} = {format_value(value)}")
    elif change.action == "delete":
        lines[0] += "  # будет удалён"
    else:
        for raw in change.changed_paths:
            path = parse_path(raw)
            before = get_path(change.before or {}, path)
            after = get_path(change.after or {}, path)
            marker = "  # требует пересоздания" if raw in change.replace_paths else ""
            lines.append(
                f"      ~ {raw} = {format_value(before)} -> {format_value(after)}{marker}"
            )

    for raw in change.ignored_paths:
        lines.append(f"      # {raw}: изменение игнорируется (lifecycle.ignore_changes)")

    return lines


def render(plan: Plan) -> str:
    """
    Рендерит план в текстовом виде в стиле terraform plan.
    """
    lines: List[str] = []
    pending = [c for c in plan.changes if c.action != "no-op"]

    if not pending:
        lines.append("Изменений нет. Инфраструктура соответствует конфигурации.")
    else:
        lines.append("pipe2cloud выполнит следующие действия:")
        lines.append("")
        for change in pending:
            lines.extend(_render_change(change))
            lines.append("")

    ignored = [c for c in plan.changes if c.action == "no-op" and c.ignored_paths]
    for change in ignored:
        lines.extend(_render_change_ignored(change))

    to_add = len(plan.by_action("create", "replace"))
    to_change = len(plan.by_action("update"))
    to_destroy = len(plan.by_action("delete", "replace"))
    lines.append(f"План: {to_add} создать, {to_change} изменить, {to_destroy} удалить.")

    for warning in plan.warnings:
        lines.append(f"Предупреждение: {warning}")

    return "\n".join(lines) + "\n"


def _render_change_ignored(change: ResourceChange) -> List[str]:
    return [
        f"    {change.address}: {raw} отличается, но игнорируется (lifecycle.ignore_changes)"
        for raw in change.ignored_paths
    ]
