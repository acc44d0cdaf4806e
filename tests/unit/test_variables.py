"""Unit tests for stack variable loading."""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from exception import VariablesError
from provision.variables import load_variables, parse_cli_vars, read_env_vars


class TestParseCliVars:
    def test_splits_on_first_equals(self) -> None:
        assert parse_cli_vars(["build_image=repo/image:tag=1"]) == {"build_image": "repo/image:tag=1"}

    def test_rejects_missing_equals(self) -> None:
        with pytest.raises(VariablesError) as exc_info:
            parse_cli_vars(["region"])
        assert "NAME=VALUE" in exc_info.value.description


class TestReadEnvVars:
    def test_reads_prefixed_names_only(self) -> None:
        environ = {
            "PIPE2CLOUD_VAR_REGION": "us-east-2",
            "PIPE2CLOUD_VAR_UNKNOWN": "x",
            "REGION": "ignored",
        }
        assert read_env_vars(environ) == {"region": "us-east-2"}


class TestLoadVariables:
    """load_variables: приоритеты источников и проверка значений."""

    def _write(self, tmp_path: Path, data: Dict[str, Any]) -> Path:
        path = tmp_path / "vars.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_defaults_are_filled(self, tmp_path: Path, variables_data: Dict[str, Any]) -> None:
        variables = load_variables(var_file=self._write(tmp_path, variables_data), environ={})

        assert variables.artifact_bucket == "codepipeline-eu-west-1-artifacts"
        assert variables.build_timeout == 10
        assert variables.webhook_secret is None
        assert variables.effective_webhook_secret.get_secret_value() == variables_data["github_token"]

    def test_precedence(self, tmp_path: Path, variables_data: Dict[str, Any]) -> None:
        file_data = dict(variables_data, github_branch="release")
        environ = {"PIPE2CLOUD_VAR_GITHUB_BRANCH": "from-env", "PIPE2CLOUD_VAR_BUILD_IMAGE": "env/image"}

        variables = load_variables(
            defaults={"github_branch": "from-git", "github_user": "from-git"},
            var_file=self._write(tmp_path, file_data),
            cli_vars=["github_user=from-cli"],
            environ=environ,
        )

        # var-файл перекрывает окружение, CLI перекрывает всё
        assert variables.github_branch == "release"
        assert variables.github_user == "from-cli"
        assert variables.build_image == variables_data["build_image"]

    def test_env_overrides_defaults(self, variables_data: Dict[str, Any]) -> None:
        defaults = dict(variables_data)
        variables = load_variables(defaults=defaults, environ={"PIPE2CLOUD_VAR_REGION": "us-west-2"})

        assert variables.region == "us-west-2"
        assert variables.artifact_bucket == "codepipeline-us-west-2-artifacts"

    def test_unknown_variable(self, variables_data: Dict[str, Any]) -> None:
        with pytest.raises(VariablesError) as exc_info:
            load_variables(defaults=variables_data, cli_vars=["colour=blue"], environ={})
        assert "colour" in exc_info.value.problems[0]

    def test_missing_required(self, variables_data: Dict[str, Any]) -> None:
        data = dict(variables_data)
        del data["github_token"]

        with pytest.raises(VariablesError) as exc_info:
            load_variables(defaults=data, environ={})
        assert any(p.startswith("github_token") for p in exc_info.value.problems)

    @pytest.mark.parametrize("name", ["bad name", "-leading", "x" * 41])
    def test_invalid_application_name(self, variables_data: Dict[str, Any], name: str) -> None:
        with pytest.raises(VariablesError) as exc_info:
            load_variables(defaults=dict(variables_data, application_name=name), environ={})
        assert any(p.startswith("application_name") for p in exc_info.value.problems)

    def test_build_timeout_bounds(self, variables_data: Dict[str, Any]) -> None:
        with pytest.raises(VariablesError):
            load_variables(defaults=variables_data, cli_vars=["build_timeout=1"], environ={})

    def test_blank_secret_rejected(self, variables_data: Dict[str, Any]) -> None:
        with pytest.raises(VariablesError):
            load_variables(defaults=dict(variables_data, github_token="   "), environ={})

    def test_var_file_must_be_object(self, tmp_path: Path) -> None:
        path = tmp_path / "vars.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(VariablesError):
            load_variables(var_file=path, environ={})

    def test_token_hidden_in_repr(self, variables_data: Dict[str, Any]) -> None:
        variables = load_variables(defaults=variables_data, environ={})

        assert variables_data["github_token"] not in repr(variables)
        assert variables_data["github_token"] not in str(variables.model_dump())
