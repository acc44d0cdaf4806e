import uuid

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_serializer, field_validator, model_validator
from typing import Any, List, Literal, Dict, Optional

import settings
from provision.secrets import decode_from_state, encode_for_state

ChangeAction = Literal["create", "update", "replace", "delete", "no-op"]


class StackVariables(BaseModel):
    """
    Входные переменные стека.

    Обязательные: region, application_name, github_user, github_repository,
    github_branch, github_token, build_image.
    artifact_bucket, build_timeout и webhook_secret — необязательные,
    со значениями по умолчанию.
    """

    region: str
    application_name: str = Field(pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]*$", max_length=40)
    github_user: str
    github_repository: str
    github_branch: str
    github_token: SecretStr
    build_image: str

    artifact_bucket: Optional[str] = None
    build_timeout: int = Field(default=settings.DEFAULT_BUILD_TIMEOUT, ge=5, le=480)
    webhook_secret: Optional[SecretStr] = None

    @field_validator(
        "region", "github_user", "github_repository", "github_branch", "build_image",
        "artifact_bucket",
    )
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("значение не может быть пустым")
        return value

    @field_validator("github_token", "webhook_secret")
    @classmethod
    def _secret_not_blank(cls, value: Optional[SecretStr]) -> Optional[SecretStr]:
        if value is not None and not value.get_secret_value().strip():
            raise ValueError("секрет не может быть пустым")
        return value

    @model_validator(mode="after")
    def _fill_defaults(self) -> "StackVariables":
        if self.artifact_bucket is None:
            self.artifact_bucket = f"codepipeline-{self.region}-artifacts"
        return self

    @property
    def effective_webhook_secret(self) -> SecretStr:
        return self.webhook_secret if self.webhook_secret is not None else self.github_token


class BackendConfig(BaseModel):
    """
    Расположение состояния: бакет + ключ (как у s3-backend'а Terraform).
    """

    bucket: str
    key: str = settings.DEFAULT_STATE_KEY
    region: Optional[str] = None

    @classmethod
    def for_application(
        cls, bucket: str, application_name: str, region: Optional[str] = None
    ) -> "BackendConfig":
        return cls(
            bucket=bucket,
            key=f"{application_name}/{settings.DEFAULT_STATE_KEY}",
            region=region,
        )


class ResourceState(BaseModel):
    """
    Запись о живом ресурсе в состоянии.
    attributes — атрибуты, как их вернул провайдер; секреты — только StoredSecret.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: str
    name: str
    id: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    dependencies: List[str] = Field(default_factory=list)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    # на диске секрет хранится как {"__sensitive__": "sha256:..."}
    @field_validator("attributes", mode="before")
    @classmethod
    def _decode_attributes(cls, value: Any) -> Any:
        return decode_from_state(value)

    @field_serializer("attributes", when_used="json")
    def _encode_attributes(self, value: Dict[str, Any]) -> Dict[str, Any]:
        return encode_for_state(value)


class StateFile(BaseModel):
    """
    Файл состояния: serial растёт с каждой записью, lineage неизменен
    за всю жизнь состояния.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    version: int = 1
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resources: Dict[str, ResourceState] = Field(default_factory=dict)
    outputs: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("outputs", mode="before")
    @classmethod
    def _decode_outputs(cls, value: Any) -> Any:
        return decode_from_state(value)

    @field_serializer("outputs", when_used="json")
    def _encode_outputs(self, value: Dict[str, Any]) -> Dict[str, Any]:
        return encode_for_state(value)


class ResourceChange(BaseModel):
    """
    Планируемое действие над одним ресурсом.

    changed_paths — пути атрибутов, которые будут изменены;
    ignored_paths — пути, изменения которых подавлены lifecycle.ignore_changes;
    replace_paths — пути force-new атрибутов, из-за которых нужно пересоздание.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    address: str
    type: str
    name: str
    action: ChangeAction
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    changed_paths: List[str] = Field(default_factory=list)
    ignored_paths: List[str] = Field(default_factory=list)
    replace_paths: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class Plan(BaseModel):
    """
    Упорядоченный план: сначала удаления, затем создания/изменения.
    """

    changes: List[ResourceChange] = Field(default_factory=list)
    destroy: bool = False
    warnings: List[str] = Field(default_factory=list)

    def get(self, address: str) -> Optional[ResourceChange]:
        for change in self.changes:
            if change.address == address:
                return change
        return None

    def by_action(self, *actions: str) -> List[ResourceChange]:
        return [c for c in self.changes if c.action in actions]

    @property
    def has_changes(self) -> bool:
        return any(c.action != "no-op" for c in self.changes)


class PlanSummary(BaseModel):
    to_add: int
    to_change: int
    to_destroy: int
    addresses: List[str]
    # Короткое текстовое описание для CLI
    description: str


class ProvisionResponse(BaseModel):
    status: Literal["ok", "error"]
    summary: Optional[PlanSummary] = None
    outputs: Dict[str, Any] = {}
    violations: List[str] = []
    warnings: List[str] = []
    logs: List[str] = []
