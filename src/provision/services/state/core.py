import json
import os
import uuid

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from provision.models import BackendConfig, StateFile

from .exceptions import StateCorruptedError, StateLockError


class LocalStateBackend:
    """
    Backend состояния в локальной директории, организованной как бакет:
    <root>/<bucket>/<key>.

    - read()   — читает состояние (пустое, если файла ещё нет);
    - write()  — пишет состояние, увеличивая serial;
    - lock()   — эксклюзивная блокировка на время plan/apply/destroy.

    Секреты попадают на диск только в виде дайджестов.
    """

    def __init__(self, root: Path, config: BackendConfig) -> None:
        self.root = Path(root)
        self.config = config

    @property
    def location(self) -> str:
        return f"{self.config.bucket}/{self.config.key}"

    @property
    def path(self) -> Path:
        return self.root / self.config.bucket / self.config.key

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> StateFile:
        if not self.path.exists():
            return StateFile()

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateCorruptedError(location=self.location, reason=str(e))

        try:
            state = StateFile.model_validate_json(raw)
        except ValidationError as e:
            raise StateCorruptedError(
                location=self.location,
                reason=_first_error(e),
            )

        if "lineage" not in state.model_fields_set:
            raise StateCorruptedError(location=self.location, reason="missing field 'lineage'")
        return state

    def write(self, state: StateFile) -> StateFile:
        """
        Записывает состояние атомарно (через временный файл) и возвращает его
        с увеличенным serial.
        """
        if self.path.exists():
            current = self.read()
            if current.lineage != state.lineage:
                raise StateCorruptedError(
                    location=self.location,
                    reason=f"lineage {state.lineage} does not match stored {current.lineage}",
                )

        state = state.model_copy(update={"serial": state.serial + 1})

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
        return state

    def read_lock(self) -> Optional[dict]:
        if not self.lock_path.exists():
            return None
        try:
            return json.loads(self.lock_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}

    @contextmanager
    def lock(self, operation: str = "apply") -> Iterator[str]:
        """
        Берёт эксклюзивную блокировку состояния.
        :raises StateLockError: если блокировка уже удерживается.
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_info = {
            "id": str(uuid.uuid4()),
            "operation": operation,
            "path": self.location,
            "created": datetime.now(timezone.utc).isoformat(),
        }
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            raise StateLockError(location=self.location, lock_info=self.read_lock())

        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(lock_info, f)

        try:
            yield lock_info["id"]
        finally:
            self.lock_path.unlink(missing_ok=True)

    def force_unlock(self, lock_id: Optional[str] = None) -> bool:
        """
        Снимает чужую блокировку. Если передан lock_id — только при совпадении.
        """
        info = self.read_lock()
        if info is None:
            return False
        if lock_id is not None and info.get("id") != lock_id:
            raise StateLockError(location=self.location, lock_info=info)
        self.lock_path.unlink(missing_ok=True)
        return True


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"{location}: {first['msg']}"
