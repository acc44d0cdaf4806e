from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class Ref(BaseModel):
    """
    Ссылка на атрибут другого ресурса графа.
    Значение становится известным только после создания ресурса address.
    """

    model_config = ConfigDict(frozen=True)

    address: str
    attribute: str

    def __str__(self) -> str:
        return f"{self.address}.{self.attribute}"


class Lifecycle(BaseModel):
    """
    Правила жизненного цикла ресурса.

    ignore_changes — пути атрибутов в нотации Terraform
    (например, "stage[0].action[0].configuration"), изменения которых
    после создания ресурса не применяются.
    """

    ignore_changes: List[str] = Field(default_factory=list)


class Resource(BaseModel):
    """
    Абстрактный ресурс: тип, локальное имя и желаемые атрибуты.
    Атрибуты могут содержать Ref и SecretStr на любом уровне вложенности.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: str
    name: str
    attributes: Dict[str, Any]
    depends_on: List[str] = Field(default_factory=list)
    lifecycle: Lifecycle = Field(default_factory=Lifecycle)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


class StackDefinition(BaseModel):
    """
    Абстрактный стек: набор ресурсов в порядке объявления + выходные значения.
    """

    resources: List[Resource]
    outputs: Dict[str, Ref] = Field(default_factory=dict)

    def get(self, address: str) -> Optional[Resource]:
        for resource in self.resources:
            if resource.address == address:
                return resource
        return None

    @property
    def addresses(self) -> List[str]:
        return [r.address for r in self.resources]


class UnknownValue:
    """
    Значение, которое станет известно только после apply
    (ссылка на ещё не созданный ресурс).
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(known after apply)"

    __str__ = __repr__


Unknown = UnknownValue()
