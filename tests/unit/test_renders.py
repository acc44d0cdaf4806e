"""Unit tests for plan text and Terraform JSON rendering."""

import json
from typing import Any, Dict

from provision.models import BackendConfig, StackVariables, StateFile
from provision.renders import plan as plan_render
from provision.renders import terraform_json
from provision.services.builders.pipeline import build_stack
from provision.services.planner import core as planner
from provision.services.provider import SimulatedCloud


class TestPlanRender:
    def test_create_plan(self, variables: StackVariables, cloud: SimulatedCloud) -> None:
        stack, _, _ = build_stack(variables)
        plan, _, _ = planner.plan(stack, StateFile(), cloud)

        text = plan_render.render(plan)

        assert "  + aws_codepipeline.pipeline" in text
        assert "(known after apply)" in text
        assert "(sensitive value)" in text
        assert variables.github_token.get_secret_value() not in text
        assert "План: 8 создать, 0 изменить, 0 удалить." in text

    def test_no_changes(self) -> None:
        text = plan_render.render(planner.plan_destroy(StateFile())[0])

        assert text.startswith("Изменений нет.")


class TestTerraformJson:
    def _render(self, variables: StackVariables) -> Dict[str, Any]:
        stack, _, _ = build_stack(variables)
        backend = BackendConfig.for_application("tf-states", variables.application_name, variables.region)
        return json.loads(terraform_json.render(stack, variables, backend))

    def test_document(self, variables: StackVariables) -> None:
        document = self._render(variables)

        assert document["terraform"]["backend"]["s3"] == {
            "bucket": "tf-states",
            "key": "shop/terraform.tfstate",
            "region": "eu-west-1",
        }
        resources = document["resource"]
        pipeline = resources["aws_codepipeline"]["pipeline"]
        assert pipeline["role_arn"] == "${aws_iam_role.codepipeline_role.arn}"
        assert pipeline["lifecycle"] == {"ignore_changes": ["stage[0].action[0].configuration"]}
        assert pipeline["stage"][0]["action"][0]["configuration"]["OAuthToken"] == "${var.github_token}"
        assert isinstance(resources["aws_iam_role"]["codebuild_role"]["assume_role_policy"], str)
        assert resources["github_repository_webhook"]["webhook"]["configuration"]["url"] == (
            "${aws_codepipeline_webhook.webhook.url}"
        )
        assert document["output"]["webhook_url"] == {"value": "${aws_codepipeline_webhook.webhook.url}"}
        assert document["variable"]["github_token"]["sensitive"] is True
        assert "webhook_secret" not in document["variable"]

    def test_no_plaintext_secrets(self, variables_data: Dict[str, Any]) -> None:
        variables = StackVariables(**variables_data, webhook_secret="hmac-secret")
        raw = json.dumps(self._render(variables))

        assert variables.github_token.get_secret_value() not in raw
        assert "hmac-secret" not in raw
        assert "${var.webhook_secret}" in raw
