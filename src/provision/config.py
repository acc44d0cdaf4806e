from pathlib import Path
import os
from tempfile import gettempdir

"""
Базовая настройка рабочего каталога pipe2cloud.

По умолчанию всё складывается в системный /tmp/pipe2cloud (или аналог на Windows).
Можно переопределить переменной окружения PIPE2CLOUD_WORKDIR.

Внутри рабочего каталога:
  state/ : корень локального backend'а состояния (<bucket>/<key>);
  cloud/ : файлы симулированного облака (по одному на регион).
"""

BASE_WORKDIR = Path(
    os.getenv("PIPE2CLOUD_WORKDIR", Path(gettempdir()) / "pipe2cloud")
)

STATE_SUBDIR = "state"
CLOUD_SUBDIR = "cloud"


def resolve_workdir(workdir: Path | str | None = None) -> Path:
    """
    Возвращает рабочий каталог и гарантирует, что он существует.
    """
    base = Path(workdir) if workdir is not None else BASE_WORKDIR
    base.mkdir(parents=True, exist_ok=True)
    return base
