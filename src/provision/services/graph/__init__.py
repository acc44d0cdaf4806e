from .core import (
    collect_refs,
    dependencies,
    creation_order,
    destruction_order,
    topological_order,
    resolve,
    contains_unknown,
)

from .exceptions import (
    GraphError,
    GraphCycleError,
    UnknownReferenceError,
)

__all__ = [
    "collect_refs",
    "dependencies",
    "creation_order",
    "destruction_order",
    "topological_order",
    "resolve",
    "contains_unknown",
    "GraphError",
    "GraphCycleError",
    "UnknownReferenceError",
]
