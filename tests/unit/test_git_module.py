"""Unit tests for source discovery from a local checkout."""

from pathlib import Path

import pytest

from git import Actor, Repo

from provision.services.git_module import (
    GitLocalPathError,
    GitRemoteError,
    discover_source,
)
from provision.services.git_module.utils import parse_remote_url

AUTHOR = Actor("pipe2cloud", "pipe2cloud@example.com")


def _init_repo(path: Path, remote_url: str | None = "git@github.com:octo/shop-service.git") -> Repo:
    repo = Repo.init(path)
    (path / "README.md").write_text("shop\n", encoding="utf-8")
    repo.index.add(["README.md"])
    repo.index.commit("init", author=AUTHOR, committer=AUTHOR)
    if remote_url is not None:
        repo.create_remote("origin", remote_url)
    return repo


class TestParseRemoteUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/octo/shop-service.git",
            "https://github.com/octo/shop-service",
            "git@github.com:octo/shop-service.git",
            "ssh://git@github.com/octo/shop-service.git",
        ],
    )
    def test_supported(self, url: str) -> None:
        assert parse_remote_url(url) == ("octo", "shop-service")

    def test_unsupported(self) -> None:
        assert parse_remote_url("/srv/git/shop-service") is None


class TestDiscoverSource:
    def test_active_branch(self, tmp_path: Path) -> None:
        repo = _init_repo(tmp_path)
        repo.create_head("develop").checkout()
        (tmp_path / "src").mkdir()

        source = discover_source(tmp_path / "src")

        assert source.as_variables() == {
            "github_user": "octo",
            "github_repository": "shop-service",
            "github_branch": "develop",
        }
        assert source.repo_path.resolve() == tmp_path.resolve()
        repo.close()

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(GitLocalPathError):
            discover_source(tmp_path / "nope")

    def test_not_a_repository(self, tmp_path: Path) -> None:
        with pytest.raises(GitLocalPathError) as exc_info:
            discover_source(tmp_path)
        assert exc_info.value.logs

    def test_missing_remote(self, tmp_path: Path) -> None:
        _init_repo(tmp_path, remote_url=None).close()

        with pytest.raises(GitRemoteError) as exc_info:
            discover_source(tmp_path)
        assert exc_info.value.remote == "origin"

    def test_detached_head(self, tmp_path: Path) -> None:
        repo = _init_repo(tmp_path)
        repo.git.checkout(repo.head.commit.hexsha)
        repo.close()

        with pytest.raises(GitRemoteError):
            discover_source(tmp_path)
