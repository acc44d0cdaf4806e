"""Unit tests for the simulated cloud provider."""

from pathlib import Path

import pytest

from pydantic import SecretStr

from provision.paths import parse_path
from provision.secrets import StoredSecret
from provision.services.builders import policies
from provision.services.provider import (
    ProviderConflictError,
    ProviderError,
    ProviderNotFoundError,
    ProviderValidationError,
    SimulatedCloud,
    UnsupportedResourceError,
)


def _role(cloud: SimulatedCloud, name: str = "codebuild-role-shop") -> str:
    resource_id, _ = cloud.create(
        "aws_iam_role",
        {"name": name, "assume_role_policy": policies.assume_role_policy(policies.CODEBUILD_PRINCIPAL)},
    )
    return resource_id


class TestCreate:
    def test_role_computed_attributes(self, cloud: SimulatedCloud) -> None:
        resource_id, view = cloud.create(
            "aws_iam_role",
            {"name": "codebuild-role-shop", "assume_role_policy": {}},
        )

        assert resource_id == "codebuild-role-shop"
        assert view["arn"] == "arn:aws:iam::123456789012:role/codebuild-role-shop"
        assert view["unique_id"].startswith("AROA")

    def test_duplicate_name(self, cloud: SimulatedCloud) -> None:
        _role(cloud)

        with pytest.raises(ProviderConflictError):
            _role(cloud)

    def test_reference_must_exist(self, cloud: SimulatedCloud) -> None:
        with pytest.raises(ProviderNotFoundError):
            cloud.create("aws_iam_role_policy", {"name": "p", "role": "missing-role", "policy": {}})

    def test_unsupported_type(self, cloud: SimulatedCloud) -> None:
        with pytest.raises(UnsupportedResourceError):
            cloud.create("aws_s3_bucket", {"bucket": "b"})

    def test_rejects_stored_secret(self, cloud: SimulatedCloud) -> None:
        with pytest.raises(ProviderValidationError):
            cloud.create(
                "aws_iam_role",
                {"name": "r", "assume_role_policy": {}, "tags": {"t": StoredSecret(digest="sha256:00")}},
            )
        assert cloud.count() == 0

    def test_github_webhook_ids_are_numeric(self, cloud: SimulatedCloud) -> None:
        _role(cloud, "codepipeline-role-shop")
        project_id, _ = cloud.create(
            "aws_codebuild_project",
            {"name": "shop-build", "service_role": "arn:aws:iam::123456789012:role/codepipeline-role-shop"},
        )
        cloud.create(
            "aws_codepipeline",
            {"name": "shop-pipeline", "role_arn": "arn:aws:iam::123456789012:role/codepipeline-role-shop", "stage": []},
        )
        _, hook = cloud.create("aws_codepipeline_webhook", {"name": "shop-webhook", "target_pipeline": "shop-pipeline"})
        first, _ = cloud.create(
            "github_repository_webhook",
            {"repository": "shop-service", "configuration": {"url": hook["url"], "secret": SecretStr("s")}},
        )
        second, _ = cloud.create(
            "github_repository_webhook",
            {"repository": "shop-service", "configuration": {"url": hook["url"], "secret": SecretStr("s")}},
        )

        assert project_id.startswith("arn:aws:codebuild:eu-west-1:")
        assert hook["url"].startswith("https://eu-west-1.webhooks.aws/trigger?t=")
        assert (first, second) == ("1", "2")


class TestSecrets:
    def test_read_masks_raw_keeps(self, cloud: SimulatedCloud) -> None:
        resource_id = _role(cloud)
        cloud.create(
            "aws_iam_role_policy",
            {"name": "p", "role": resource_id, "policy": {}, "token": SecretStr("plain")},
        )
        policy_id = f"{resource_id}:p"

        assert cloud.read("aws_iam_role_policy", policy_id)["token"] == "****"
        assert cloud.raw("aws_iam_role_policy", policy_id)["token"].get_secret_value() == "plain"


class TestUpdate:
    def test_force_new_rejected(self, cloud: SimulatedCloud) -> None:
        resource_id = _role(cloud)

        with pytest.raises(ProviderValidationError):
            cloud.update("aws_iam_role", resource_id, {"name": "renamed", "assume_role_policy": {}})

    def test_preserve_keeps_live_subtree(self, cloud: SimulatedCloud) -> None:
        resource_id = _role(cloud)
        cloud.update(
            "aws_iam_role",
            resource_id,
            {"name": "codebuild-role-shop", "assume_role_policy": {}, "tags": {"a": {"x": SecretStr("old")}}},
        )

        view = cloud.update(
            "aws_iam_role",
            resource_id,
            {"name": "codebuild-role-shop", "assume_role_policy": {"Version": "1"}, "tags": {}},
            preserve=[parse_path("tags.a")],
        )

        assert view["assume_role_policy"] == {"Version": "1"}
        assert cloud.raw("aws_iam_role", resource_id)["tags"]["a"]["x"].get_secret_value() == "old"
        # вычисляемые атрибуты сохраняются
        assert view["arn"].endswith(":role/codebuild-role-shop")

    def test_missing_resource(self, cloud: SimulatedCloud) -> None:
        with pytest.raises(ProviderNotFoundError):
            cloud.update("aws_iam_role", "nope", {"name": "nope"})


class TestDelete:
    def test_role_with_policy(self, cloud: SimulatedCloud) -> None:
        resource_id = _role(cloud)
        cloud.create("aws_iam_role_policy", {"name": "p", "role": resource_id, "policy": {}})

        with pytest.raises(ProviderConflictError):
            cloud.delete("aws_iam_role", resource_id)

        cloud.delete("aws_iam_role_policy", f"{resource_id}:p")
        cloud.delete("aws_iam_role", resource_id)
        assert cloud.count() == 0

    def test_missing(self, cloud: SimulatedCloud) -> None:
        with pytest.raises(ProviderNotFoundError):
            cloud.delete("aws_codepipeline", "nope")


class TestPersistence:
    def test_json_roundtrip_keeps_secrets(self, tmp_path: Path) -> None:
        path = tmp_path / "cloud" / "eu-west-1.json"
        cloud = SimulatedCloud(region="eu-west-1", path=path)
        resource_id = _role(cloud)
        cloud.create("aws_iam_role_policy", {"name": "p", "role": resource_id, "token": SecretStr("plain")})

        reloaded = SimulatedCloud(region="eu-west-1", path=path)

        assert reloaded.count() == 2
        assert reloaded.raw("aws_iam_role_policy", f"{resource_id}:p")["token"].get_secret_value() == "plain"

    def test_save_leaves_no_temp_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cloud" / "eu-west-1.json"
        cloud = SimulatedCloud(region="eu-west-1", path=path)
        _role(cloud)

        assert [p.name for p in path.parent.iterdir()] == ["eu-west-1.json"]

    @pytest.mark.parametrize("content", ["{broken", "[]", '{"resources": {"aws_iam_role": []}}'])
    def test_unreadable_file(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "eu-west-1.json"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ProviderError):
            SimulatedCloud(region="eu-west-1", path=path)
