from typing import List, Optional

from exception import CLIException


class StateError(CLIException):
    """
    Базовое исключение backend'а состояния.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when work with state",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description)
        self.logs: List[str] = logs or []


class StateLockError(StateError):
    """
    Состояние заблокировано другой операцией.
    """

    def __init__(self, location: str, lock_info: Optional[dict] = None, logs: Optional[List[str]] = None, *args) -> None:
        lock_info = lock_info or {}
        description = (
            f"State {location} is locked (lock id {lock_info.get('id', '?')}, "
            f"operation {lock_info.get('operation', '?')}, since {lock_info.get('created', '?')})"
        )
        super().__init__(*args, description=description, logs=logs)
        self.location = location
        self.lock_info = lock_info


class StateCorruptedError(StateError):
    """
    Файл состояния не читается или принадлежит другой линии (lineage).
    """

    def __init__(self, location: str, reason: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"State {location} is unusable: {reason}"
        super().__init__(*args, description=description, logs=logs)
        self.location = location
        self.reason = reason
