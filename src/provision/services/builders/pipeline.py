import click

from typing import List, Tuple

from model import Lifecycle, Ref, Resource, StackDefinition
from provision.models import PlanSummary, StackVariables

from . import policies

SOURCE_STAGE_CONFIGURATION = "stage[0].action[0].configuration"
WEBHOOK_BRANCH_FILTER = "refs/heads/{Branch}"

SOURCE_ARTIFACT = "source"
BUILD_ARTIFACT = "build"


def resource_names(application_name: str) -> dict[str, str]:
    """
    Все имена облачных ресурсов выводятся из application_name.
    """
    return {
        "codepipeline_role": f"codepipeline-role-{application_name}",
        "codepipeline_policy": f"codepipeline-policy-{application_name}",
        "codebuild_role": f"codebuild-role-{application_name}",
        "codebuild_policy": f"codebuild-policy-{application_name}",
        "build_project": f"{application_name}-build",
        "pipeline": f"{application_name}-pipeline",
        "webhook": f"{application_name}-webhook",
    }


def _iam_resources(variables: StackVariables, names: dict[str, str]) -> List[Resource]:
    bucket = variables.artifact_bucket
    app = variables.application_name

    return [
        Resource(
            type="aws_iam_role",
            name="codepipeline_role",
            attributes={
                "name": names["codepipeline_role"],
                "assume_role_policy": policies.assume_role_policy(
                    policies.CODEPIPELINE_PRINCIPAL
                ),
            },
        ),
        Resource(
            type="aws_iam_role_policy",
            name="codepipeline_policy",
            attributes={
                "name": names["codepipeline_policy"],
                "role": Ref(address="aws_iam_role.codepipeline_role", attribute="id"),
                "policy": policies.codepipeline_policy(bucket),
            },
        ),
        Resource(
            type="aws_iam_role",
            name="codebuild_role",
            attributes={
                "name": names["codebuild_role"],
                "assume_role_policy": policies.assume_role_policy(
                    policies.CODEBUILD_PRINCIPAL
                ),
            },
        ),
        Resource(
            type="aws_iam_role_policy",
            name="codebuild_policy",
            attributes={
                "name": names["codebuild_policy"],
                "role": Ref(address="aws_iam_role.codebuild_role", attribute="id"),
                "policy": policies.codebuild_policy(bucket, app),
            },
        ),
    ]


def _build_project(variables: StackVariables, names: dict[str, str]) -> Resource:
    return Resource(
        type="aws_codebuild_project",
        name="build",
        attributes={
            "name": names["build_project"],
            "description": f"Build project for {variables.application_name}",
            "build_timeout": variables.build_timeout,
            "service_role": Ref(address="aws_iam_role.codebuild_role", attribute="arn"),
            "artifacts": {"type": "CODEPIPELINE"},
            "environment": {
                "compute_type": "BUILD_GENERAL1_SMALL",
                "image": variables.build_image,
                "type": "LINUX_CONTAINER",
                "image_pull_credentials_type": "CODEBUILD",
                "environment_variable": [
                    {"name": "ARTIFACT_S3_BUCKET", "value": variables.artifact_bucket},
                    {"name": "ARTIFACT_S3_KEY", "value": variables.application_name},
                ],
            },
            "source": {"type": "CODEPIPELINE"},
        },
        # политика должна быть на месте до первого запуска сборки
        depends_on=["aws_iam_role_policy.codebuild_policy"],
    )


def _pipeline(variables: StackVariables, names: dict[str, str]) -> Resource:
    source_action = {
        "name": "Source",
        "category": "Source",
        "owner": "ThirdParty",
        "provider": "GitHub",
        "version": "1",
        "output_artifacts": [SOURCE_ARTIFACT],
        "configuration": {
            "Owner": variables.github_user,
            "Repo": variables.github_repository,
            "Branch": variables.github_branch,
            "OAuthToken": variables.github_token,
            "PollForSourceChanges": "false",
        },
    }
    build_action = {
        "name": "Build",
        "category": "Build",
        "owner": "AWS",
        "provider": "CodeBuild",
        "version": "1",
        "input_artifacts": [SOURCE_ARTIFACT],
        "output_artifacts": [BUILD_ARTIFACT],
        "configuration": {
            "ProjectName": Ref(address="aws_codebuild_project.build", attribute="name"),
        },
    }

    return Resource(
        type="aws_codepipeline",
        name="pipeline",
        attributes={
            "name": names["pipeline"],
            "role_arn": Ref(address="aws_iam_role.codepipeline_role", attribute="arn"),
            "artifact_store": {"location": variables.artifact_bucket, "type": "S3"},
            "stage": [
                {"name": "Source", "action": [source_action]},
                {"name": "Build", "action": [build_action]},
            ],
        },
        depends_on=["aws_iam_role_policy.codepipeline_policy"],
        # Провайдер хранит хэш OAuth-токена; повторное применение хэша вместо
        # токена ломает аутентификацию живого пайплайна.
        lifecycle=Lifecycle(ignore_changes=[SOURCE_STAGE_CONFIGURATION]),
    )


def _webhooks(variables: StackVariables, names: dict[str, str]) -> List[Resource]:
    secret = variables.effective_webhook_secret

    return [
        Resource(
            type="aws_codepipeline_webhook",
            name="webhook",
            attributes={
                "name": names["webhook"],
                "authentication": "GITHUB_HMAC",
                "target_action": "Source",
                "target_pipeline": Ref(address="aws_codepipeline.pipeline", attribute="name"),
                "authentication_configuration": {"secret_token": secret},
                "filter": [
                    {"json_path": "$.ref", "match_equals": WEBHOOK_BRANCH_FILTER},
                ],
            },
        ),
        Resource(
            type="github_repository_webhook",
            name="webhook",
            attributes={
                "repository": variables.github_repository,
                "active": True,
                "events": ["push"],
                "configuration": {
                    "url": Ref(address="aws_codepipeline_webhook.webhook", attribute="url"),
                    "content_type": "json",
                    "insecure_ssl": False,
                    "secret": secret,
                },
            },
        ),
    ]


def build_stack(variables: StackVariables) -> Tuple[StackDefinition, List[str], List[str]]:
    """
    Строим граф ресурсов пайплайна Source → Build по входным переменным.

    Возвращает (StackDefinition, logs, warnings).
    """
    logs: List[str] = []
    warnings: List[str] = []

    app = variables.application_name
    names = resource_names(app)
    click.echo(f"Строим стек для приложения {app!r} в регионе {variables.region}")
    logs.append(f"Строим стек для приложения {app!r} в регионе {variables.region}")

    resources: List[Resource] = []
    resources.extend(_iam_resources(variables, names))
    resources.append(_build_project(variables, names))
    resources.append(_pipeline(variables, names))
    resources.extend(_webhooks(variables, names))

    logs.append(
        "Добавлены ресурсы: " + ", ".join(r.address for r in resources)
    )
    logs.append(
        f"Артефакты сборки: s3://{variables.artifact_bucket}/{app}/"
    )

    warnings.append(
        f"Фильтр вебхука сравнивает $.ref с буквальной строкой {WEBHOOK_BRANCH_FILTER!r}, "
        f"а не с refs/heads/{variables.github_branch}. Push-события ветки "
        "не будут совпадать с фильтром — проверьте, что это ожидаемо."
    )

    if variables.webhook_secret is None:
        logs.append("webhook_secret не задан — для HMAC вебхука используется github_token.")

    stack = StackDefinition(
        resources=resources,
        outputs={
            "pipeline_name": Ref(address="aws_codepipeline.pipeline", attribute="name"),
            "build_project_name": Ref(address="aws_codebuild_project.build", attribute="name"),
            "webhook_url": Ref(address="aws_codepipeline_webhook.webhook", attribute="url"),
        },
    )
    click.echo(f"Стек сформирован: {len(stack.resources)} ресурсов.")
    logs.append(f"Стек сформирован: {len(stack.resources)} ресурсов.")

    return stack, logs, warnings


def summarize_stack(stack: StackDefinition) -> PlanSummary:
    """
    Строит краткое резюме стека (всё будет создано с нуля).
    """
    addresses = stack.addresses
    count = len(addresses)

    if count == 0:
        description = "Стек пустой. Проверьте входные переменные."
    else:
        types = sorted({r.type for r in stack.resources})
        description = (
            f"Стек из {count} ресурсов: типы {', '.join(types)}."
        )

    return PlanSummary(
        to_add=count,
        to_change=0,
        to_destroy=0,
        addresses=addresses,
        description=description,
    )
