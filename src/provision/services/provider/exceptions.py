from typing import List, Optional

from exception import CLIException


class ProviderError(CLIException):
    """
    Базовое исключение внешнего API (облако / хостинг исходников).
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when call provider API",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description)
        self.logs: List[str] = logs or []


class UnsupportedResourceError(ProviderError):
    def __init__(self, resource_type: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Resource type {resource_type} is not supported by provider"
        super().__init__(*args, description=description, logs=logs)
        self.resource_type = resource_type


class ProviderNotFoundError(ProviderError):
    """
    Ресурс (или ресурс, на который он ссылается) не найден.
    """

    def __init__(self, resource_type: str, identifier: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"{resource_type} {identifier} not found"
        super().__init__(*args, description=description, logs=logs)
        self.resource_type = resource_type
        self.identifier = identifier


class ProviderConflictError(ProviderError):
    """
    Конфликт имён или удаление ресурса, который ещё используется.
    """

    def __init__(self, resource_type: str, identifier: str, reason: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Conflict on {resource_type} {identifier}: {reason}"
        super().__init__(*args, description=description, logs=logs)
        self.resource_type = resource_type
        self.identifier = identifier
        self.reason = reason


class ProviderValidationError(ProviderError):
    """
    Некорректный payload запроса к API.
    """

    def __init__(self, resource_type: str, reason: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Invalid request for {resource_type}: {reason}"
        super().__init__(*args, description=description, logs=logs)
        self.resource_type = resource_type
        self.reason = reason
