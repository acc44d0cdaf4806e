import click

from typing import Any, Dict, List, Tuple

from model import Resource, StackDefinition
from provision.models import StackVariables
from provision.services.builders import policies
from provision.services.builders.pipeline import resource_names

BUILD_ENV_NAMES = ("ARTIFACT_S3_BUCKET", "ARTIFACT_S3_KEY")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _statements(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    return _as_list(document.get("Statement"))


def _check_trust_policies(roles: List[Resource], violations: List[str]) -> None:
    """
    Каждая роль доверяет AssumeRole ровно одному сервисному принципалу.
    """
    for role in roles:
        document = role.attributes.get("assume_role_policy") or {}
        principals: List[str] = []
        for statement in _statements(document):
            if "sts:AssumeRole" not in _as_list(statement.get("Action")):
                continue
            principal = statement.get("Principal") or {}
            principals.extend(_as_list(principal.get("Service")))
            if set(principal) - {"Service"}:
                violations.append(
                    f"{role.address}: trust-политика допускает не-сервисных принципалов "
                    f"({', '.join(sorted(set(principal) - {'Service'}))})."
                )
        if len(principals) != 1:
            violations.append(
                f"{role.address}: AssumeRole должен быть разрешён ровно одному сервису, "
                f"найдено {len(principals)}: {principals}."
            )


def _check_build_policy(policy: Resource, variables: StackVariables, violations: List[str]) -> None:
    """
    s3:PutObject для роли сборки — только под <bucket>/<application_name>/*.
    """
    allowed = policies.artifact_prefix_arn(variables.artifact_bucket, variables.application_name)
    document = policy.attributes.get("policy") or {}

    for statement in _statements(document):
        actions = _as_list(statement.get("Action"))
        if not any(a in ("s3:PutObject", "s3:*", "*") for a in actions):
            continue
        for resource in _as_list(statement.get("Resource")):
            if resource != allowed:
                violations.append(
                    f"{policy.address}: запись в S3 разрешена на {resource!r}, "
                    f"ожидается только {allowed!r}."
                )


def _check_build_env(project: Resource, variables: StackVariables, violations: List[str]) -> None:
    env = (project.attributes.get("environment") or {}).get("environment_variable") or []
    names = [item.get("name") for item in env]
    if sorted(names) != sorted(BUILD_ENV_NAMES):
        violations.append(
            f"{project.address}: ожидаются переменные окружения {list(BUILD_ENV_NAMES)}, найдено {names}."
        )
    values = {item.get("name"): item.get("value") for item in env}
    if values.get("ARTIFACT_S3_KEY") != variables.application_name:
        violations.append(
            f"{project.address}: ARTIFACT_S3_KEY должен быть равен {variables.application_name!r}."
        )


def _check_names(stack: StackDefinition, variables: StackVariables, violations: List[str]) -> None:
    expected = set(resource_names(variables.application_name).values())
    for resource in stack.resources:
        name = resource.attributes.get("name")
        if name is None:
            continue
        if name not in expected:
            violations.append(
                f"{resource.address}: имя {name!r} не выведено из application_name."
            )


def check_stack(stack: StackDefinition, variables: StackVariables) -> Tuple[List[str], List[str], List[str]]:
    """
    Проверки политики стека: least-privilege и детерминированные имена.

    Возвращает (logs, warnings, violations).
    """
    logs: List[str] = []
    warnings: List[str] = []
    violations: List[str] = []

    click.echo("Проверяем trust-политики ролей...")
    roles = [r for r in stack.resources if r.type == "aws_iam_role"]
    _check_trust_policies(roles, violations)
    logs.append(f"Проверено ролей: {len(roles)}")

    build_policy = stack.get("aws_iam_role_policy.codebuild_policy")
    if build_policy is None:
        violations.append("Не найдена политика роли сборки aws_iam_role_policy.codebuild_policy.")
    else:
        _check_build_policy(build_policy, variables, violations)
        logs.append("Проверена область записи в S3 для роли сборки.")

    project = stack.get("aws_codebuild_project.build")
    if project is not None:
        _check_build_env(project, variables, violations)
        logs.append("Проверены переменные окружения сборки.")

    _check_names(stack, variables, violations)

    for resource in stack.resources:
        if resource.type != "aws_codepipeline_webhook":
            continue
        for item in resource.attributes.get("filter", []):
            if "{Branch}" in str(item.get("match_equals", "")):
                warnings.append(
                    f"{resource.address}: фильтр {item.get('json_path')} сравнивается с "
                    f"буквальной строкой {item.get('match_equals')!r} — подстановки ветки нет."
                )

    if violations:
        click.echo(f"Найдено нарушений: {len(violations)}", err=True)
    logs.append(f"Проверка завершена: нарушений {len(violations)}, предупреждений {len(warnings)}.")

    return logs, warnings, violations
