import json

from typing import Any, Dict

from pydantic import SecretStr

from model import Ref, StackDefinition
from provision.models import BackendConfig, StackVariables

# атрибуты, которые Terraform ожидает JSON-строкой, а не объектом
_JSON_DOCUMENTS = {"assume_role_policy", "policy"}

_SECRET_VARIABLES = ("github_token", "webhook_secret")


def _secret_reference(value: SecretStr, variables: StackVariables) -> str:
    for name in _SECRET_VARIABLES:
        candidate = getattr(variables, name)
        if candidate is not None and candidate == value:
            return f"${{var.{name}}}"
    raise ValueError("Секрет не соответствует ни одной переменной стека")


def _render_value(value: Any, variables: StackVariables) -> Any:
    if isinstance(value, Ref):
        return f"${{{value.address}.{value.attribute}}}"
    if isinstance(value, SecretStr):
        return _secret_reference(value, variables)
    if isinstance(value, dict):
        return {k: _render_value(v, variables) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_render_value(v, variables) for v in value]
    return value


def _variables_block(variables: StackVariables) -> Dict[str, Any]:
    block: Dict[str, Any] = {
        name: {"type": "string"}
        for name in (
            "region",
            "application_name",
            "github_user",
            "github_repository",
            "github_branch",
            "build_image",
        )
    }
    block["github_token"] = {"type": "string", "sensitive": True}
    block["artifact_bucket"] = {"type": "string", "default": variables.artifact_bucket}
    block["build_timeout"] = {"type": "number", "default": variables.build_timeout}
    if variables.webhook_secret is not None:
        block["webhook_secret"] = {"type": "string", "sensitive": True}
    return block


def render(stack: StackDefinition, variables: StackVariables, backend: BackendConfig) -> str:
    """
    Рендерит стек в конфигурацию Terraform JSON (main.tf.json).
    Секреты не попадают в файл — вместо них ссылки ${var.<name>}.
    """
    resources: Dict[str, Dict[str, Any]] = {}
    for resource in stack.resources:
        body = {}
        for key, value in resource.attributes.items():
            rendered = _render_value(value, variables)
            if key in _JSON_DOCUMENTS and isinstance(rendered, dict):
                rendered = json.dumps(rendered, sort_keys=True)
            body[key] = rendered
        if resource.depends_on:
            body["depends_on"] = list(resource.depends_on)
        if resource.lifecycle.ignore_changes:
            body["lifecycle"] = {"ignore_changes": list(resource.lifecycle.ignore_changes)}
        resources.setdefault(resource.type, {})[resource.name] = body

    document = {
        "terraform": {
            "backend": {
                "s3": {
                    "bucket": backend.bucket,
                    "key": backend.key,
                    "region": backend.region or variables.region,
                }
            },
            "required_providers": {
                "aws": {"source": "hashicorp/aws"},
                "github": {"source": "integrations/github"},
            },
        },
        "variable": _variables_block(variables),
        "provider": {
            "aws": {"region": "${var.region}"},
            "github": {"owner": "${var.github_user}", "token": "${var.github_token}"},
        },
        "resource": resources,
        "output": {
            name: {"value": f"${{{ref.address}.{ref.attribute}}}"}
            for name, ref in stack.outputs.items()
        },
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
