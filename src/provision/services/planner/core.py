import click

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import SecretStr

import settings
from model import StackDefinition, UnknownValue
from provision.models import Plan, PlanSummary, ResourceChange, StateFile
from provision.paths import Path, flatten, format_path, is_masked, parse_path
from provision.secrets import StoredSecret, is_secret, secrets_equal
from provision.services import graph
from provision.services.provider import Provider

_MISSING = object()


@dataclass
class AttributeDiff:
    """
    changed — пути, по которым желаемое расходится с фактическим;
    ignored — расхождения, подавленные маской ignore_changes.
    """

    changed: List[Path] = field(default_factory=list)
    ignored: List[Path] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.changed)


def _leaf_equal(desired: Any, actual: Any, prior: Any) -> bool:
    if isinstance(desired, UnknownValue):
        return False
    if isinstance(desired, SecretStr):
        # секрет сравниваем только с дайджестом из состояния: API его не возвращает
        return secrets_equal(desired, prior)
    if isinstance(desired, StoredSecret):
        return secrets_equal(desired, prior)
    return desired == actual


def diff(
    actual: Optional[Dict[str, Any]],
    desired: Dict[str, Any],
    prior: Optional[Dict[str, Any]] = None,
    ignore: Iterable[Path] = (),
    computed: Sequence[str] = (),
) -> AttributeDiff:
    """
    Сравнивает желаемые атрибуты с фактическими.

    Маска ignore применяется до сравнения: пути под ней никогда не попадают
    в changed. Секретные листья сравниваются с дайджестом из prior.
    Вычисляемые атрибуты (computed), которых нет в desired, не сравниваются.
    """
    result = AttributeDiff()
    mask = list(ignore)

    flat_desired = flatten(desired)
    flat_actual = {
        path: value
        for path, value in flatten(actual or {}).items()
        if not (path and path[0] in computed and path[0] not in desired)
    }
    flat_prior = flatten(prior or {})

    paths: List[Path] = list(flat_desired)
    paths.extend(p for p in flat_actual if p not in flat_desired)

    for path in paths:
        desired_value = flat_desired.get(path, _MISSING)
        actual_value = flat_actual.get(path, _MISSING)
        prior_value = flat_prior.get(path, _MISSING)

        equal = _leaf_equal(desired_value, actual_value, prior_value)
        if equal:
            continue
        if is_masked(path, mask):
            result.ignored.append(path)
        else:
            result.changed.append(path)

    return result


def _concrete(attributes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Атрибуты, известные до apply (без Unknown на верхнем уровне).
    """
    return {
        k: v for k, v in attributes.items()
        if not isinstance(v, UnknownValue) and not graph.contains_unknown(v)
    }


def _drift(
    stored: Dict[str, Any],
    live: Dict[str, Any],
    mask: List[Path],
) -> List[str]:
    flat_stored = flatten(stored)
    flat_live = flatten(live)
    drifted: List[str] = []
    for path in set(flat_stored) | set(flat_live):
        if is_masked(path, mask):
            continue
        left = flat_stored.get(path, _MISSING)
        right = flat_live.get(path, _MISSING)
        if is_secret(left) or is_secret(right) or right == settings.SENSITIVE_MASK:
            continue
        if left != right:
            drifted.append(format_path(path))
    return sorted(drifted)


def plan(
    stack: StackDefinition,
    state: StateFile,
    provider: Provider,
) -> Tuple[Plan, List[str], List[str]]:
    """
    Строим план приведения живой инфраструктуры к стеку.

    Возвращает (Plan, logs, warnings).
    """
    logs: List[str] = []
    warnings: List[str] = []

    deps = graph.dependencies(stack)
    order = graph.creation_order(stack)
    logs.append(f"Порядок создания ресурсов: {' → '.join(order)}")

    # --- refresh ---
    live: Dict[str, Optional[Dict[str, Any]]] = {}
    for address, rs in state.resources.items():
        current = provider.read(rs.type, rs.id)
        live[address] = current
        if current is None:
            warnings.append(
                f"{address} (id {rs.id}) отсутствует в облаке — удалён вне pipe2cloud."
            )
            continue

        resource = stack.get(address)
        mask = [parse_path(p) for p in resource.lifecycle.ignore_changes] if resource else []
        drifted = _drift(rs.attributes, current, mask)
        if drifted:
            warnings.append(
                f"{address}: атрибуты изменены вне pipe2cloud: {', '.join(drifted)}"
            )
    logs.append(f"Обновлено состояние {len(live)} ресурсов.")

    # --- create / update / replace / no-op ---
    known: Dict[str, Dict[str, Any]] = {
        address: current for address, current in live.items() if current is not None
    }
    changes: List[ResourceChange] = []

    for address in order:
        resource = stack.get(address)
        rs = state.resources.get(address)
        current = live.get(address)
        desired = graph.resolve(resource.attributes, known)
        schema = provider.schema(resource.type)

        change = ResourceChange(
            address=address,
            type=resource.type,
            name=resource.name,
            action="no-op",
            before=current,
            after=desired,
            dependencies=deps[address],
        )

        if rs is None or current is None:
            change.action = "create"
            change.changed_paths = [format_path(p) for p in flatten(desired)]
            known[address] = _concrete(desired)
        else:
            mask = [parse_path(p) for p in resource.lifecycle.ignore_changes]
            result = diff(current, desired, prior=rs.attributes, ignore=mask, computed=schema.computed)
            change.changed_paths = [format_path(p) for p in result.changed]
            change.ignored_paths = [format_path(p) for p in result.ignored]
            replace_paths = [p for p in result.changed if p and p[0] in schema.force_new]

            if replace_paths:
                change.action = "replace"
                change.replace_paths = [format_path(p) for p in replace_paths]
                known[address] = _concrete(desired)
            elif result.changed:
                change.action = "update"
                merged = dict(current)
                merged.update(desired)
                known[address] = merged

            if change.ignored_paths:
                warnings.append(
                    f"{address}: изменения в {', '.join(change.ignored_paths)} "
                    "не применяются (lifecycle.ignore_changes)."
                )

        changes.append(change)

    # --- orphans ---
    orphans = [a for a in state.resources if stack.get(a) is None]
    deletions: List[ResourceChange] = []
    for address in graph.destruction_order(state, orphans):
        rs = state.resources[address]
        deletions.append(
            ResourceChange(
                address=address,
                type=rs.type,
                name=rs.name,
                action="delete",
                before=live.get(address) or rs.attributes,
                dependencies=list(rs.dependencies),
            )
        )

    result_plan = Plan(changes=deletions + changes, warnings=list(warnings))
    counts = {
        action: len(result_plan.by_action(action))
        for action in ("create", "update", "replace", "delete")
    }
    click.echo(
        f"План: {counts['create']} создать, {counts['update']} изменить, "
        f"{counts['replace']} пересоздать, {counts['delete']} удалить."
    )
    logs.append(
        f"План: {counts['create']} создать, {counts['update']} изменить, "
        f"{counts['replace']} пересоздать, {counts['delete']} удалить."
    )

    return result_plan, logs, warnings


def plan_destroy(state: StateFile) -> Tuple[Plan, List[str], List[str]]:
    """
    План удаления всех ресурсов состояния в обратном порядке зависимостей.
    """
    logs: List[str] = []
    warnings: List[str] = []

    order = graph.destruction_order(state)
    changes = [
        ResourceChange(
            address=address,
            type=state.resources[address].type,
            name=state.resources[address].name,
            action="delete",
            before=state.resources[address].attributes,
            dependencies=list(state.resources[address].dependencies),
        )
        for address in order
    ]
    if not changes:
        warnings.append("Состояние пустое — удалять нечего.")
    logs.append(f"Порядок удаления: {' → '.join(order) or '—'}")

    return Plan(changes=changes, destroy=True, warnings=list(warnings)), logs, warnings


def summarize_plan(plan: Plan) -> PlanSummary:
    """
    Строит краткое резюме плана для ответа CLI.
    """
    to_add = len(plan.by_action("create", "replace"))
    to_change = len(plan.by_action("update"))
    to_destroy = len(plan.by_action("delete", "replace"))
    addresses = [c.address for c in plan.changes if c.action != "no-op"]

    if not addresses:
        description = "Изменений нет. Инфраструктура соответствует конфигурации."
    else:
        description = (
            f"План: {to_add} создать, {to_change} изменить, {to_destroy} удалить."
        )

    return PlanSummary(
        to_add=to_add,
        to_change=to_change,
        to_destroy=to_destroy,
        addresses=addresses,
        description=description,
    )
