from git import (
    Repo as GitRepo,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from pathlib import Path
from typing import List

from .models import SourceInfo
from .utils import PathLike, parse_remote_url
from .exceptions import GitLocalPathError, GitRemoteError


class GitSourceDiscovery:
    """
    Определяет координаты исходников для стадии Source по локальной рабочей копии:

    - owner/repository — из URL удалённого репозитория (по умолчанию origin);
    - branch           — из активной ветки.

    Результат подставляется как значения по умолчанию для
    github_user / github_repository / github_branch.
    """

    def __init__(self, remote: str = "origin") -> None:
        self.remote = remote

    def discover(self, path: PathLike) -> SourceInfo:
        """
        :param path: путь внутри git-репозитория.
        :raises GitLocalPathError: если путь не существует или это не git-репозиторий.
        :raises GitRemoteError: если remote отсутствует или его URL не распознан.
        """
        logs: List[str] = []

        repo_path = Path(path)
        logs.append(f"Используем локальный репозиторий: {repo_path}")

        if not repo_path.exists():
            logs.append("Ошибка: указанный путь не существует.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)

        repo_obj: GitRepo | None = None
        try:
            repo_obj = GitRepo(repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            logs.append("Ошибка: путь не является git-репозиторием.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)

        try:
            root = Path(repo_obj.working_tree_dir or repo_path)
            logs.append(f"Корень рабочей копии: {root}")

            remote_names = [r.name for r in repo_obj.remotes]
            if self.remote not in remote_names:
                logs.append(
                    f"Remote {self.remote!r} не найден. Доступные: {remote_names or 'нет'}"
                )
                raise GitRemoteError(path=str(root), remote=self.remote, logs=logs)

            urls = list(repo_obj.remote(self.remote).urls)
            parsed = None
            for url in urls:
                parsed = parse_remote_url(url)
                if parsed:
                    logs.append(f"URL remote {self.remote!r}: {url}")
                    break
            if parsed is None:
                logs.append(f"Не удалось разобрать URL remote {self.remote!r}: {urls}")
                raise GitRemoteError(path=str(root), remote=self.remote, logs=logs)

            if repo_obj.head.is_detached:
                logs.append("HEAD в состоянии detached — ветку определить нельзя.")
                raise GitRemoteError(path=str(root), remote=self.remote, logs=logs)
            branch = repo_obj.active_branch.name
            logs.append(f"Активная ветка: {branch}")
        finally:
            # Явно закрываем repo_obj, чтобы на Windows не оставались залоченные файлы
            repo_obj.close()

        owner, repository = parsed
        return SourceInfo(
            owner=owner,
            repository=repository,
            branch=branch,
            repo_path=root,
            logs=logs,
        )


def discover_source(path: PathLike, remote: str = "origin") -> SourceInfo:
    return GitSourceDiscovery(remote=remote).discover(path)
