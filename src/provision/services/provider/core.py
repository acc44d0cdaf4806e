import copy
import json
import os
import uuid

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from pydantic import SecretStr

import settings
from model import Ref, UnknownValue
from provision.paths import Path as AttrPath, get_path, set_path
from provision.secrets import StoredSecret

from .exceptions import (
    ProviderConflictError,
    ProviderError,
    ProviderNotFoundError,
    ProviderValidationError,
    UnsupportedResourceError,
)
from .schemas import SCHEMAS, ResourceSchema

_PLAINTEXT_MARKER = "__secret__"


class Provider(Protocol):
    """
    Контракт внешнего API, с которым работает движок.

    Провайдер получает только конкретные значения: без Ref, без Unknown и
    без StoredSecret. Секреты приходят как SecretStr, а read() возвращает
    их замаскированными.
    """

    def schema(self, resource_type: str) -> ResourceSchema:
        ...

    def create(self, resource_type: str, attributes: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        ...

    def read(self, resource_type: str, resource_id: str) -> Optional[Dict[str, Any]]:
        ...

    def update(
        self,
        resource_type: str,
        resource_id: str,
        attributes: Dict[str, Any],
        preserve: Iterable[AttrPath] = (),
    ) -> Dict[str, Any]:
        ...

    def delete(self, resource_type: str, resource_id: str) -> None:
        ...


def _mask(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return settings.SENSITIVE_MASK
    if isinstance(value, dict):
        return {k: _mask(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_mask(v) for v in value]
    return value


def _check_concrete(resource_type: str, value: Any, path: str = "") -> None:
    if isinstance(value, StoredSecret):
        raise ProviderValidationError(
            resource_type=resource_type,
            reason=f"{path or '<root>'} содержит дайджест секрета вместо значения",
        )
    if isinstance(value, (Ref, UnknownValue)):
        raise ProviderValidationError(
            resource_type=resource_type,
            reason=f"{path or '<root>'} содержит неразрешённое значение {value}",
        )
    if isinstance(value, dict):
        for k, v in value.items():
            _check_concrete(resource_type, v, f"{path}.{k}" if path else str(k))
    elif isinstance(value, list):
        for i, v in enumerate(value):
            _check_concrete(resource_type, v, f"{path}[{i}]")


def _encode(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return {_PLAINTEXT_MARKER: value.get_secret_value()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value.keys()) == {_PLAINTEXT_MARKER}:
            return SecretStr(value[_PLAINTEXT_MARKER])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


class SimulatedCloud:
    """
    Локальная замена облачного API и API GitHub.

    Хранит "живые" ресурсы в памяти или в JSON-файле (path), выдаёт id/ARN/URL,
    проверяет уникальность имён и ссылки между ресурсами, запрещает удалять
    роль с привязанными политиками и пайплайн с зарегистрированным вебхуком.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        account_id: str = settings.DEFAULT_ACCOUNT_ID,
        path: Optional[Path] = None,
    ) -> None:
        self.region = region
        self.account_id = account_id
        self.path = Path(path) if path is not None else None
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self._resources: Dict[str, Dict[str, Dict[str, Any]]] = {t: {} for t in SCHEMAS}
        self._load()

    # ---------- persistence ----------

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ProviderError(description=f"Simulated cloud file {self.path} is unreadable: {e}")

        resources = data.get("resources", {}) if isinstance(data, dict) else None
        if not isinstance(resources, dict) or not all(isinstance(r, dict) for r in resources.values()):
            raise ProviderError(description=f"Simulated cloud file {self.path} has unexpected layout")

        for resource_type, records in resources.items():
            self._resources.setdefault(resource_type, {})
            for resource_id, attributes in records.items():
                self._resources[resource_type][resource_id] = _decode(attributes)

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "region": self.region,
            "account_id": self.account_id,
            "resources": {t: {i: _encode(a) for i, a in r.items()} for t, r in self._resources.items()},
        }
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self.path)

    # ---------- helpers ----------

    def schema(self, resource_type: str) -> ResourceSchema:
        try:
            return SCHEMAS[resource_type]
        except KeyError:
            raise UnsupportedResourceError(resource_type=resource_type)

    def _records(self, resource_type: str) -> Dict[str, Dict[str, Any]]:
        self.schema(resource_type)
        return self._resources.setdefault(resource_type, {})

    def _find(self, resource_type: str, attribute: str, value: Any) -> Optional[str]:
        for resource_id, attributes in self._records(resource_type).items():
            if attributes.get(attribute) == value:
                return resource_id
        return None

    def _require(self, resource_type: str, attribute: str, value: Any, owner: str) -> None:
        if self._find(resource_type, attribute, value) is None:
            raise ProviderNotFoundError(
                resource_type=resource_type,
                identifier=f"{value} (referenced by {owner})",
            )

    def _check_unique(self, schema: ResourceSchema, attributes: Dict[str, Any], skip_id: Optional[str] = None) -> None:
        if not schema.unique_by:
            return
        key = tuple(attributes.get(a) for a in schema.unique_by)
        for resource_id, existing in self._records(schema.type).items():
            if resource_id == skip_id:
                continue
            if tuple(existing.get(a) for a in schema.unique_by) == key:
                raise ProviderConflictError(
                    resource_type=schema.type,
                    identifier="/".join(str(k) for k in key),
                    reason="resource with the same name already exists",
                )

    def _check_references(self, resource_type: str, attributes: Dict[str, Any]) -> None:
        owner = f"{resource_type} {attributes.get('name', attributes.get('repository', ''))}"
        if resource_type == "aws_iam_role_policy":
            self._require("aws_iam_role", "id", attributes.get("role"), owner)
        elif resource_type == "aws_codebuild_project":
            self._require("aws_iam_role", "arn", attributes.get("service_role"), owner)
        elif resource_type == "aws_codepipeline":
            self._require("aws_iam_role", "arn", attributes.get("role_arn"), owner)
            for stage in attributes.get("stage", []):
                for action in stage.get("action", []):
                    if action.get("provider") == "CodeBuild":
                        project = action.get("configuration", {}).get("ProjectName")
                        self._require("aws_codebuild_project", "name", project, owner)
        elif resource_type == "aws_codepipeline_webhook":
            self._require("aws_codepipeline", "name", attributes.get("target_pipeline"), owner)
        elif resource_type == "github_repository_webhook":
            url = get_path(attributes, ("configuration", "url"))
            self._require("aws_codepipeline_webhook", "url", url, owner)

    def _computed(self, resource_type: str, attributes: Dict[str, Any], resource_id: str) -> Dict[str, Any]:
        name = attributes.get("name")
        region, account = self.region, self.account_id
        if resource_type == "aws_iam_role":
            return {
                "id": name,
                "arn": f"arn:aws:iam::{account}:role/{name}",
                "unique_id": "AROA" + uuid.uuid4().hex[:17].upper(),
            }
        if resource_type == "aws_iam_role_policy":
            return {"id": f"{attributes.get('role')}:{name}"}
        if resource_type == "aws_codebuild_project":
            arn = f"arn:aws:codebuild:{region}:{account}:project/{name}"
            return {"id": arn, "arn": arn}
        if resource_type == "aws_codepipeline":
            return {"id": name, "arn": f"arn:aws:codepipeline:{region}:{account}:{name}"}
        if resource_type == "aws_codepipeline_webhook":
            arn = f"arn:aws:codepipeline:{region}:{account}:webhook:{name}"
            return {
                "id": arn,
                "arn": arn,
                "url": f"https://{region}.webhooks.aws/trigger?t={uuid.uuid4().hex}&v=1",
            }
        if resource_type == "github_repository_webhook":
            return {
                "id": resource_id,
                "url": f"https://api.github.com/repos/{attributes.get('repository')}/hooks/{resource_id}",
                "etag": uuid.uuid4().hex,
            }
        return {}

    def _new_id(self, resource_type: str) -> str:
        if resource_type == "github_repository_webhook":
            numeric = [int(i) for i in self._records(resource_type) if i.isdigit()]
            return str(max(numeric, default=0) + 1)
        return uuid.uuid4().hex

    # ---------- API ----------

    def create(self, resource_type: str, attributes: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        schema = self.schema(resource_type)
        _check_concrete(resource_type, attributes)
        self._check_unique(schema, attributes)
        self._check_references(resource_type, attributes)

        internal_id = self._new_id(resource_type)
        stored = copy.deepcopy(attributes)
        stored.update(self._computed(resource_type, attributes, internal_id))
        resource_id = stored.get("id", internal_id)

        self._records(resource_type)[resource_id] = stored
        self.calls.append(("create", resource_type, copy.deepcopy(stored)))
        self._save()
        return resource_id, _mask(stored)

    def read(self, resource_type: str, resource_id: str) -> Optional[Dict[str, Any]]:
        stored = self._records(resource_type).get(resource_id)
        if stored is None:
            return None
        return _mask(copy.deepcopy(stored))

    def update(
        self,
        resource_type: str,
        resource_id: str,
        attributes: Dict[str, Any],
        preserve: Iterable[AttrPath] = (),
    ) -> Dict[str, Any]:
        schema = self.schema(resource_type)
        current = self._records(resource_type).get(resource_id)
        if current is None:
            raise ProviderNotFoundError(resource_type=resource_type, identifier=resource_id)
        _check_concrete(resource_type, attributes)

        for attribute in schema.force_new:
            if attribute in attributes and attributes[attribute] != current.get(attribute):
                raise ProviderValidationError(
                    resource_type=resource_type,
                    reason=f"атрибут {attribute} нельзя изменить без пересоздания",
                )

        updated = copy.deepcopy(attributes)
        for path in preserve:
            updated = set_path(updated, path, get_path(current, path))
        for attribute in schema.computed:
            updated[attribute] = current.get(attribute)

        self._check_unique(schema, updated, skip_id=resource_id)
        self._check_references(resource_type, updated)

        self._records(resource_type)[resource_id] = updated
        self.calls.append(("update", resource_type, copy.deepcopy(updated)))
        self._save()
        return _mask(updated)

    def delete(self, resource_type: str, resource_id: str) -> None:
        records = self._records(resource_type)
        current = records.get(resource_id)
        if current is None:
            raise ProviderNotFoundError(resource_type=resource_type, identifier=resource_id)

        if resource_type == "aws_iam_role":
            attached = [
                p["name"] for p in self._resources["aws_iam_role_policy"].values()
                if p.get("role") == current.get("id")
            ]
            if attached:
                raise ProviderConflictError(
                    resource_type=resource_type,
                    identifier=resource_id,
                    reason=f"role has attached policies: {', '.join(attached)}",
                )
        if resource_type == "aws_codepipeline":
            hooks = [
                w["name"] for w in self._resources["aws_codepipeline_webhook"].values()
                if w.get("target_pipeline") == current.get("name")
            ]
            if hooks:
                raise ProviderConflictError(
                    resource_type=resource_type,
                    identifier=resource_id,
                    reason=f"pipeline is targeted by webhooks: {', '.join(hooks)}",
                )

        del records[resource_id]
        self.calls.append(("delete", resource_type, {"id": resource_id}))
        self._save()

    # ---------- inspection ----------

    def list_resources(self, resource_type: str) -> List[Dict[str, Any]]:
        return [_mask(copy.deepcopy(a)) for a in self._records(resource_type).values()]

    def raw(self, resource_type: str, resource_id: str) -> Optional[Dict[str, Any]]:
        """
        Атрибуты как они лежат в "облаке", с открытыми секретами.
        """
        stored = self._records(resource_type).get(resource_id)
        return copy.deepcopy(stored) if stored is not None else None

    def count(self) -> int:
        return sum(len(r) for r in self._resources.values())

    def grants_on_bucket(self, bucket: str) -> List[str]:
        """
        Имена inline-политик, которые упоминают бакет в Resource.
        """
        bucket_arn = f"arn:aws:s3:::{bucket}"
        names: List[str] = []
        for policy in self._resources["aws_iam_role_policy"].values():
            document = policy.get("policy") or {}
            for statement in document.get("Statement", []):
                resources = statement.get("Resource", [])
                if isinstance(resources, str):
                    resources = [resources]
                if any(r == bucket_arn or r.startswith(bucket_arn + "/") for r in resources):
                    names.append(policy["name"])
                    break
        return names
