from dataclasses import dataclass
from pathlib import Path
from typing import List


@dataclass
class SourceInfo:
    """
    Координаты исходников, найденные в локальном git-репозитории.

    owner      — пользователь/организация на GitHub (github_user);
    repository — имя репозитория (github_repository);
    branch     — активная ветка (github_branch);
    repo_path  — корень рабочей копии;
    logs       — текстовые логи шагов.
    """

    owner: str
    repository: str
    branch: str
    repo_path: Path
    logs: List[str]

    def as_variables(self) -> dict[str, str]:
        return {
            "github_user": self.owner,
            "github_repository": self.repository,
            "github_branch": self.branch,
        }
