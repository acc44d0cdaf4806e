from typing import Any, Dict, Iterable, List, Mapping, Optional

from model import Ref, StackDefinition, Unknown, UnknownValue
from provision.models import StateFile

from .exceptions import GraphCycleError, UnknownReferenceError


def collect_refs(value: Any) -> List[Ref]:
    """
    Собирает все Ref из вложенных атрибутов (dict/list на любом уровне).
    """
    if isinstance(value, Ref):
        return [value]
    refs: List[Ref] = []
    if isinstance(value, dict):
        for item in value.values():
            refs.extend(collect_refs(item))
    elif isinstance(value, (list, tuple)):
        for item in value:
            refs.extend(collect_refs(item))
    return refs


def dependencies(stack: StackDefinition) -> Dict[str, List[str]]:
    """
    address -> адреса, от которых ресурс зависит (ссылки + depends_on),
    в порядке первого упоминания.
    """
    declared = set(stack.addresses)
    result: Dict[str, List[str]] = {}

    for resource in stack.resources:
        deps: List[str] = []
        targets = [ref.address for ref in collect_refs(resource.attributes)]
        targets.extend(resource.depends_on)
        for target in targets:
            if target not in declared:
                raise UnknownReferenceError(source=resource.address, target=target)
            if target not in deps:
                deps.append(target)
        result[resource.address] = deps

    for output_name, ref in stack.outputs.items():
        if ref.address not in declared:
            raise UnknownReferenceError(source=f"output.{output_name}", target=ref.address)

    return result


def topological_order(nodes: List[str], deps: Mapping[str, Iterable[str]]) -> List[str]:
    """
    Топологическая сортировка (Kahn). При равенстве сохраняет порядок nodes.
    Зависимости на адреса вне nodes игнорируются.
    """
    node_set = set(nodes)
    pending: Dict[str, set] = {
        node: {d for d in deps.get(node, ()) if d in node_set and d != node}
        for node in nodes
    }
    # самозависимость тоже цикл
    for node in nodes:
        if node in set(deps.get(node, ())):
            raise GraphCycleError(addresses=[node])

    ordered: List[str] = []
    while pending:
        ready = [node for node in nodes if node in pending and not pending[node]]
        if not ready:
            raise GraphCycleError(addresses=[n for n in nodes if n in pending])
        for node in ready:
            ordered.append(node)
            del pending[node]
        for remaining in pending.values():
            remaining.difference_update(ready)

    return ordered


def creation_order(stack: StackDefinition) -> List[str]:
    """
    Порядок создания ресурсов: зависимости раньше зависимых.
    """
    return topological_order(stack.addresses, dependencies(stack))


def resolve(value: Any, known: Mapping[str, Mapping[str, Any]]) -> Any:
    """
    Подставляет вместо Ref конкретные значения из known[address][attribute].
    Если значение ещё неизвестно — Unknown.
    """
    if isinstance(value, Ref):
        attributes = known.get(value.address)
        if attributes is None or value.attribute not in attributes:
            return Unknown
        return attributes[value.attribute]
    if isinstance(value, dict):
        return {k: resolve(v, known) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve(v, known) for v in value]
    return value


def contains_unknown(value: Any) -> bool:
    if isinstance(value, UnknownValue):
        return True
    if isinstance(value, dict):
        return any(contains_unknown(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_unknown(v) for v in value)
    return False


def destruction_order(state: StateFile, addresses: Optional[List[str]] = None) -> List[str]:
    """
    Порядок удаления по зависимостям из состояния: зависимые раньше зависимостей.
    """
    if addresses is None:
        addresses = list(state.resources)
    addresses = [a for a in addresses if a in state.resources]
    deps = {a: state.resources[a].dependencies for a in addresses}
    return list(reversed(topological_order(addresses, deps)))
