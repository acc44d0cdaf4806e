from typing import List, Optional

from exception import CLIException


class GitExceptions(CLIException):
    """
    Базовое исключение для работы с Git/репозиториями.

    Дополнительно хранит логи (steps), накопленные во время операции.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when work with Git",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description)
        self.logs: List[str] = logs or []


class GitLocalPathError(GitExceptions):
    """
    Путь не существует или не является git-репозиторием.
    """

    def __init__(
        self,
        path: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to use local repository path {path}"
        super().__init__(*args, description=description, logs=logs)
        self.path = path


class GitRemoteError(GitExceptions):
    """
    Не удалось определить owner/repository/branch по удалённому репозиторию.
    """

    def __init__(
        self,
        path: str,
        remote: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to read remote {remote} of repository {path}"
        super().__init__(*args, description=description, logs=logs)
        self.path = path
        self.remote = remote
