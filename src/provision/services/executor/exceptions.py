from typing import List, Optional

from exception import CLIException


class ApplyError(CLIException):
    """
    Ошибка применения плана. Состояние к этому моменту уже сохранено
    со всеми успешно обработанными ресурсами.
    """

    def __init__(
        self,
        address: str,
        reason: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to apply {address}: {reason}"
        super().__init__(*args, description=description)
        self.address = address
        self.reason = reason
        self.logs: List[str] = logs or []


class SecretHandlingError(CLIException):
    """
    В payload к провайдеру попал дайджест секрета вместо самого секрета.
    """

    def __init__(self, address: str, path: str, *args) -> None:
        description = (
            f"Refusing to send hashed secret at {address}.{path} to provider; "
            "secret values must come from configuration"
        )
        super().__init__(*args, description=description)
        self.address = address
        self.path = path
