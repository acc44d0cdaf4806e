import hashlib
from typing import Any

from pydantic import BaseModel, ConfigDict, SecretStr

"""
Работа с секретами.

Открытое значение секрета живёт только в SecretStr (переменные стека
и payload'ы к провайдеру). В состоянии хранится лишь дайджест — StoredSecret.
Сравнение секретов идёт строго дайджест-с-дайджестом: открытое значение
никогда не сравнивается с хэшем и хэш никогда не подставляется вместо значения.
"""

DIGEST_PREFIX = "sha256:"
STATE_MARKER = "__sensitive__"


class StoredSecret(BaseModel):
    """
    Дайджест секрета, сохранённый в состоянии.
    Не является секретом и не может быть отправлен провайдеру.
    """

    model_config = ConfigDict(frozen=True)

    digest: str

    def matches(self, value: "SecretStr | StoredSecret") -> bool:
        if isinstance(value, StoredSecret):
            return value.digest == self.digest
        return digest_secret(value) == self.digest

    def __str__(self) -> str:
        return "(sensitive value)"


def digest_secret(secret: SecretStr) -> str:
    raw = secret.get_secret_value().encode("utf-8")
    return DIGEST_PREFIX + hashlib.sha256(raw).hexdigest()


def to_stored(value: Any) -> Any:
    """
    Рекурсивно заменяет все SecretStr на StoredSecret.
    """
    if isinstance(value, SecretStr):
        return StoredSecret(digest=digest_secret(value))
    if isinstance(value, dict):
        return {k: to_stored(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_stored(v) for v in value]
    return value


def encode_for_state(value: Any) -> Any:
    """
    Готовит атрибуты к записи в JSON: секреты → {"__sensitive__": "sha256:..."}.
    """
    value = to_stored(value)
    if isinstance(value, StoredSecret):
        return {STATE_MARKER: value.digest}
    if isinstance(value, dict):
        return {k: encode_for_state(v) for k, v in value.items()}
    if isinstance(value, list):
        return [encode_for_state(v) for v in value]
    return value


def decode_from_state(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value.keys()) == {STATE_MARKER}:
            return StoredSecret(digest=value[STATE_MARKER])
        return {k: decode_from_state(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_from_state(v) for v in value]
    return value


def secrets_equal(left: Any, right: Any) -> bool:
    """
    Сравнение двух значений, хотя бы одно из которых секретное.
    SecretStr и StoredSecret приводятся к дайджесту; всё остальное
    (в т.ч. маска "****" из API) секрету не равно.
    """
    if isinstance(left, StoredSecret):
        return isinstance(right, (SecretStr, StoredSecret)) and left.matches(right)
    if isinstance(right, StoredSecret):
        return isinstance(left, SecretStr) and right.matches(left)
    if isinstance(left, SecretStr) and isinstance(right, SecretStr):
        return digest_secret(left) == digest_secret(right)
    return False


def is_secret(value: Any) -> bool:
    return isinstance(value, (SecretStr, StoredSecret))
