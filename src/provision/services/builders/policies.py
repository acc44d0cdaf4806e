from typing import Any, Dict, List

"""
IAM-документы стека: trust-политики ролей и inline-политики доступа.
"""

POLICY_VERSION = "2012-10-17"

CODEPIPELINE_PRINCIPAL = "codepipeline.amazonaws.com"
CODEBUILD_PRINCIPAL = "codebuild.amazonaws.com"


def bucket_arn(bucket: str) -> str:
    return f"arn:aws:s3:::{bucket}"


def artifact_prefix_arn(bucket: str, application_name: str) -> str:
    return f"{bucket_arn(bucket)}/{application_name}/*"


def assume_role_policy(service: str) -> Dict[str, Any]:
    """
    Trust-политика: AssumeRole разрешён ровно одному сервисному принципалу.
    """
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": service},
                "Action": "sts:AssumeRole",
            }
        ],
    }


def _statement(actions: List[str], resources: List[str]) -> Dict[str, Any]:
    return {"Effect": "Allow", "Action": actions, "Resource": resources}


def codepipeline_policy(bucket: str) -> Dict[str, Any]:
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            _statement(
                [
                    "s3:GetObject",
                    "s3:GetObjectVersion",
                    "s3:GetBucketVersioning",
                    "s3:PutObject",
                ],
                [bucket_arn(bucket), f"{bucket_arn(bucket)}/*"],
            ),
            _statement(["codebuild:BatchGetBuilds", "codebuild:StartBuild"], ["*"]),
            _statement(
                [
                    "codedeploy:CreateDeployment",
                    "codedeploy:GetApplication",
                    "codedeploy:GetApplicationRevision",
                    "codedeploy:GetDeployment",
                    "codedeploy:GetDeploymentConfig",
                    "codedeploy:RegisterApplicationRevision",
                ],
                ["*"],
            ),
        ],
    }


def codebuild_policy(bucket: str, application_name: str) -> Dict[str, Any]:
    """
    Политика сборки: запись в S3 только под префиксом <bucket>/<application_name>/*.
    """
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            _statement(
                ["logs:CreateLogGroup", "logs:CreateLogStream", "logs:PutLogEvents"],
                ["*"],
            ),
            _statement(
                ["s3:GetObject", "s3:GetObjectVersion"],
                [f"{bucket_arn(bucket)}/*"],
            ),
            _statement(
                ["s3:PutObject"],
                [artifact_prefix_arn(bucket, application_name)],
            ),
        ],
    }
