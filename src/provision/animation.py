import asyncio
import threading
import time
import sys
from typing import Any, Callable, TextIO, TypeVar

T = TypeVar("T")

SPINNER_CHARS = "|/-\\"


async def run_blocking(
    func: Callable[..., T],
    *args: Any,
    text: str = "Применение",
    interval: float = 0.1,
    enabled: bool = True,
    stream: TextIO | None = None,
    **kwargs: Any,
) -> T:
    """
    Выполняет блокирующую функцию func в рабочем потоке и крутит спиннер
    в ОТДЕЛЬНОМ потоке, пока функция не завершится.

    При включённом спиннере func получает echo=...: строка прогресса
    печатается поверх стёртого спиннера, а не вклеивается в него.
    Поэтому func должна принимать аргумент echo.

    enabled=False — просто выполнить func без вывода (тесты, не-TTY).
    """
    if not enabled:
        return await asyncio.to_thread(func, *args, **kwargs)

    out = stream or sys.stdout
    stop_event = threading.Event()
    write_lock = threading.Lock()
    blank = "\r" + " " * (len(text) + 2) + "\r"

    def echo(message: str) -> None:
        with write_lock:
            out.write(f"{blank}{message}\n")
            out.flush()

    def spinner():
        i = 0
        while not stop_event.is_set():
            frame = SPINNER_CHARS[i % len(SPINNER_CHARS)]
            with write_lock:
                out.write(f"\r{text} {frame}")
                out.flush()
            i += 1
            time.sleep(interval)

    thread = threading.Thread(target=spinner, daemon=True)
    thread.start()

    success = False

    try:
        result = await asyncio.to_thread(func, *args, echo=echo, **kwargs)
        success = True
        return result
    finally:
        stop_event.set()
        await asyncio.to_thread(thread.join)

        out.write(blank)
        if success:
            out.write(f"{text} - ✅ Успешно\n")
        else:
            out.write(f"{text} - ❌ Ошибка\n")
        out.flush()
