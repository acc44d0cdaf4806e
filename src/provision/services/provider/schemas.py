from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ResourceSchema:
    """
    Описание типа ресурса для планировщика и провайдера.

    force_new — атрибуты, изменение которых требует пересоздания ресурса;
    computed  — атрибуты, которые вычисляет провайдер (id, arn, url ...);
    unique_by — атрибуты, уникальные в пределах аккаунта/региона.
    """

    type: str
    force_new: List[str] = field(default_factory=list)
    computed: List[str] = field(default_factory=list)
    unique_by: Optional[List[str]] = None


SCHEMAS: Dict[str, ResourceSchema] = {
    "aws_iam_role": ResourceSchema(
        type="aws_iam_role",
        force_new=["name"],
        computed=["id", "arn", "unique_id"],
        unique_by=["name"],
    ),
    "aws_iam_role_policy": ResourceSchema(
        type="aws_iam_role_policy",
        force_new=["name", "role"],
        computed=["id"],
        unique_by=["role", "name"],
    ),
    "aws_codebuild_project": ResourceSchema(
        type="aws_codebuild_project",
        force_new=["name"],
        computed=["id", "arn"],
        unique_by=["name"],
    ),
    "aws_codepipeline": ResourceSchema(
        type="aws_codepipeline",
        force_new=["name"],
        computed=["id", "arn"],
        unique_by=["name"],
    ),
    "aws_codepipeline_webhook": ResourceSchema(
        type="aws_codepipeline_webhook",
        force_new=[
            "name",
            "authentication",
            "authentication_configuration",
            "filter",
            "target_action",
            "target_pipeline",
        ],
        computed=["id", "arn", "url"],
        unique_by=["name"],
    ),
    "github_repository_webhook": ResourceSchema(
        type="github_repository_webhook",
        force_new=["repository"],
        computed=["id", "url", "etag"],
    ),
}
