from typing import List, Optional

from exception import CLIException


class GraphError(CLIException):
    """
    Базовое исключение графа ресурсов.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when resolve resource graph",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description)
        self.logs: List[str] = logs or []


class GraphCycleError(GraphError):
    """
    В графе зависимостей есть цикл.
    """

    def __init__(self, addresses: List[str], logs: Optional[List[str]] = None, *args) -> None:
        description = f"Dependency cycle between resources: {', '.join(addresses)}"
        super().__init__(*args, description=description, logs=logs)
        self.addresses = addresses


class UnknownReferenceError(GraphError):
    """
    Ресурс ссылается на адрес, которого нет в стеке.
    """

    def __init__(self, source: str, target: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Resource {source} references undeclared resource {target}"
        super().__init__(*args, description=description, logs=logs)
        self.source = source
        self.target = target
