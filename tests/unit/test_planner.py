"""Unit tests for diffing and planning."""

from pydantic import SecretStr

from model import Unknown
from provision.models import ResourceState, StackVariables, StateFile
from provision.paths import parse_path
from provision.secrets import to_stored
from provision.services.builders.pipeline import build_stack
from provision.services.planner import core as planner
from provision.services.provider import SimulatedCloud
from provision.services.state import LocalStateBackend


class TestDiff:
    def test_mask_applied_before_comparison(self) -> None:
        actual = {"stage": [{"action": [{"configuration": {"Branch": "main"}}]}], "name": "p"}
        desired = {"stage": [{"action": [{"configuration": {"Branch": "dev"}}]}], "name": "p"}

        result = planner.diff(actual, desired, ignore=[parse_path("stage[0].action[0].configuration")])

        assert not result
        assert result.ignored == [("stage", 0, "action", 0, "configuration", "Branch")]

    def test_secret_compared_with_prior_digest(self) -> None:
        prior = to_stored({"token": SecretStr("old")})
        actual = {"token": "****"}

        assert not planner.diff(actual, {"token": SecretStr("old")}, prior=prior)
        assert planner.diff(actual, {"token": SecretStr("new")}, prior=prior).changed == [("token",)]

    def test_computed_attributes_skipped(self) -> None:
        result = planner.diff({"name": "r", "arn": "arn:1"}, {"name": "r"}, computed=["arn"])

        assert not result

    def test_unknown_is_a_change(self) -> None:
        assert planner.diff({"role": "r"}, {"role": Unknown}).changed == [("role",)]


class TestPlan:
    def test_empty_state_creates_everything(self, variables: StackVariables, cloud: SimulatedCloud) -> None:
        stack, _, _ = build_stack(variables)
        plan, logs, _ = planner.plan(stack, StateFile(), cloud)

        assert [c.action for c in plan.changes] == ["create"] * 8
        assert plan.get("aws_iam_role_policy.codepipeline_policy").after["role"] is Unknown
        assert plan.get("github_repository_webhook.webhook").dependencies == ["aws_codepipeline_webhook.webhook"]
        assert any(line.startswith("Порядок создания") for line in logs)

        summary = planner.summarize_plan(plan)
        assert (summary.to_add, summary.to_change, summary.to_destroy) == (8, 0, 0)

    def test_orphans_deleted_first(
        self,
        variables: StackVariables,
        cloud: SimulatedCloud,
        backend: LocalStateBackend,
        apply_stack,
    ) -> None:
        _, state = apply_stack(variables, cloud, backend)
        resources = dict(state.resources)
        resources["aws_iam_role.legacy"] = ResourceState(type="aws_iam_role", name="legacy", id="legacy-role")
        state = state.model_copy(update={"resources": resources})

        stack, _, _ = build_stack(variables)
        plan, _, warnings = planner.plan(stack, state, cloud)

        assert plan.changes[0].address == "aws_iam_role.legacy"
        assert plan.changes[0].action == "delete"
        assert plan.by_action("create", "update", "replace") == []
        assert any("legacy" in w for w in warnings)

    def test_out_of_band_deletion_recreated(
        self,
        variables: StackVariables,
        cloud: SimulatedCloud,
        backend: LocalStateBackend,
        apply_stack,
        plan_stack,
    ) -> None:
        _, state = apply_stack(variables, cloud, backend)
        hook = state.resources["github_repository_webhook.webhook"]
        cloud.delete(hook.type, hook.id)

        plan = plan_stack(variables, cloud, backend)

        assert plan.get("github_repository_webhook.webhook").action == "create"
        assert any("отсутствует в облаке" in w for w in plan.warnings)

    def test_drift_reported(
        self,
        variables: StackVariables,
        cloud: SimulatedCloud,
        backend: LocalStateBackend,
        apply_stack,
        plan_stack,
    ) -> None:
        _, state = apply_stack(variables, cloud, backend)
        project = state.resources["aws_codebuild_project.build"]
        cloud._resources["aws_codebuild_project"][project.id]["build_timeout"] = 60

        plan = plan_stack(variables, cloud, backend)

        change = plan.get("aws_codebuild_project.build")
        assert change.action == "update"
        assert change.changed_paths == ["build_timeout"]
        assert any("изменены вне pipe2cloud" in w for w in plan.warnings)

    def test_rename_cascades_replace(
        self,
        variables: StackVariables,
        variables_data,
        cloud: SimulatedCloud,
        backend: LocalStateBackend,
        apply_stack,
        plan_stack,
    ) -> None:
        apply_stack(variables, cloud, backend)
        renamed = StackVariables(**dict(variables_data, application_name="market"))

        plan = plan_stack(renamed, cloud, backend)

        role = plan.get("aws_iam_role.codebuild_role")
        policy = plan.get("aws_iam_role_policy.codebuild_policy")
        assert role.action == "replace"
        assert role.replace_paths == ["name"]
        # новая роль ещё не создана: её id неизвестен, политика тоже пересоздаётся
        assert policy.action == "replace"
        assert "role" in policy.replace_paths


class TestPlanDestroy:
    def test_reverse_dependency_order(
        self,
        variables: StackVariables,
        cloud: SimulatedCloud,
        backend: LocalStateBackend,
        apply_stack,
    ) -> None:
        _, state = apply_stack(variables, cloud, backend)

        plan, _, warnings = planner.plan_destroy(state)
        order = [c.address for c in plan.changes]

        assert plan.destroy
        assert warnings == []
        assert order.index("github_repository_webhook.webhook") < order.index("aws_codepipeline_webhook.webhook")
        assert order.index("aws_codepipeline_webhook.webhook") < order.index("aws_codepipeline.pipeline")
        assert order.index("aws_iam_role_policy.codebuild_policy") < order.index("aws_iam_role.codebuild_role")

    def test_empty_state(self) -> None:
        plan, _, warnings = planner.plan_destroy(StateFile())

        assert not plan.has_changes
        assert warnings
