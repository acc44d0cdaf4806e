import click

from typing import Any, Callable, Dict, List, Optional, Tuple

from model import StackDefinition
from provision.models import Plan, ResourceChange, ResourceState, StateFile
from provision.paths import drop_path, format_path, flatten, get_path, parse_path, set_path
from provision.secrets import StoredSecret, to_stored
from provision.services import graph
from provision.services.provider import Provider, ProviderError
from provision.services.state import LocalStateBackend

from .exceptions import ApplyError, SecretHandlingError

Echo = Callable[[str], None]


def _check_payload(address: str, payload: Dict[str, Any]) -> None:
    """
    Провайдеру уходят только значения из конфигурации: дайджест секрета
    из состояния никогда не подставляется вместо самого секрета.
    """
    for path, value in flatten(payload).items():
        if isinstance(value, StoredSecret):
            raise SecretHandlingError(address=address, path=format_path(path))


def _delete_phase(
    plan: Plan,
    state: StateFile,
    provider: Provider,
    backend: LocalStateBackend,
    logs: List[str],
    warnings: List[str],
    echo: Echo,
) -> StateFile:
    targets = [c.address for c in plan.changes if c.action in ("delete", "replace")]
    order = graph.destruction_order(state, targets)

    for address in order:
        rs = state.resources[address]
        echo(f"{address}: удаление...")
        try:
            if provider.read(rs.type, rs.id) is None:
                warnings.append(f"{address}: уже отсутствует в облаке, удаляем из состояния.")
            else:
                provider.delete(rs.type, rs.id)
                logs.append(f"{address}: удалён (id {rs.id}).")
        except ProviderError as e:
            logs.extend(e.logs)
            raise ApplyError(address=address, reason=e.description, logs=logs)

        resources = dict(state.resources)
        del resources[address]
        state = backend.write(state.model_copy(update={"resources": resources}))

    return state


def _record(
    state: StateFile,
    change: ResourceChange,
    resource_id: str,
    attributes: Dict[str, Any],
    dependencies: List[str],
) -> StateFile:
    resources = dict(state.resources)
    resources[change.address] = ResourceState(
        type=change.type,
        name=change.name,
        id=resource_id,
        attributes=to_stored(attributes),
        dependencies=dependencies,
    )
    return state.model_copy(update={"resources": resources})


def apply(
    plan: Plan,
    stack: StackDefinition,
    state: StateFile,
    provider: Provider,
    backend: LocalStateBackend,
    echo: Echo = click.echo,
) -> Tuple[StateFile, List[str], List[str]]:
    """
    Применяет план: сначала удаления (в обратном порядке зависимостей),
    затем создания/изменения в порядке плана.

    Состояние сохраняется после каждого ресурса.
    Возвращает (StateFile, logs, warnings).
    """
    logs: List[str] = []
    warnings: List[str] = []

    state = _delete_phase(plan, state, provider, backend, logs, warnings, echo)

    deps = graph.dependencies(stack)
    known: Dict[str, Dict[str, Any]] = {
        address: rs.attributes for address, rs in state.resources.items()
    }

    for change in plan.changes:
        if change.action not in ("create", "update", "replace"):
            continue

        resource = stack.get(change.address)
        if resource is None:
            raise ApplyError(address=change.address, reason="resource is not declared in stack", logs=logs)
        schema = provider.schema(resource.type)
        desired = graph.resolve(resource.attributes, known)
        if graph.contains_unknown(desired):
            raise ApplyError(
                address=change.address,
                reason="unresolved references remain after dependencies were applied",
                logs=logs,
            )

        prior: Optional[ResourceState] = state.resources.get(change.address)
        try:
            if change.action == "update" and prior is not None:
                mask = [parse_path(p) for p in resource.lifecycle.ignore_changes]
                payload = desired
                for path in mask:
                    payload = drop_path(payload, path)
                _check_payload(change.address, payload)

                echo(f"{change.address}: изменение...")
                view = provider.update(resource.type, prior.id, payload, preserve=mask)
                resource_id = prior.id

                recorded = dict(desired)
                for path in mask:
                    recorded = set_path(recorded, path, get_path(prior.attributes, path))
                logs.append(
                    f"{change.address}: изменены {', '.join(change.changed_paths) or 'атрибуты'}."
                )
            else:
                _check_payload(change.address, desired)

                echo(f"{change.address}: создание...")
                resource_id, view = provider.create(resource.type, desired)
                recorded = dict(desired)
                logs.append(f"{change.address}: создан (id {resource_id}).")
        except ProviderError as e:
            logs.extend(e.logs)
            raise ApplyError(address=change.address, reason=e.description, logs=logs)

        for attribute in schema.computed:
            if attribute in view:
                recorded[attribute] = view[attribute]

        state = backend.write(
            _record(state, change, resource_id, recorded, deps[change.address])
        )
        known[change.address] = state.resources[change.address].attributes

    outputs = {}
    for name, ref in stack.outputs.items():
        value = graph.resolve(ref, known)
        outputs[name] = None if graph.contains_unknown(value) else value
    state = backend.write(state.model_copy(update={"outputs": outputs}))
    logs.append(f"Apply завершён: {len(state.resources)} ресурсов в состоянии.")
    echo(f"Apply завершён: {len(state.resources)} ресурсов в состоянии.")

    return state, logs, warnings


def destroy(
    plan: Plan,
    state: StateFile,
    provider: Provider,
    backend: LocalStateBackend,
    echo: Echo = click.echo,
) -> Tuple[StateFile, List[str], List[str]]:
    """
    Удаляет все ресурсы плана destroy и очищает outputs.
    """
    logs: List[str] = []
    warnings: List[str] = []

    state = _delete_phase(plan, state, provider, backend, logs, warnings, echo)
    state = backend.write(state.model_copy(update={"outputs": {}}))

    if state.resources:
        warnings.append(
            "В состоянии остались ресурсы: " + ", ".join(state.resources)
        )
    logs.append("Destroy завершён.")
    echo("Destroy завершён.")

    return state, logs, warnings
