"""Unit tests for the apply/destroy spinner."""

import asyncio
import io
import time

import pytest

from provision.animation import run_blocking

TEXT = "Применение плана"
BLANK = "\r" + " " * (len(TEXT) + 2) + "\r"


def _steps(count: int, echo=print):
    for i in range(count):
        echo(f"step {i}")
        time.sleep(0.02)
    return count


class TestRunBlocking:
    def test_progress_lines_clear_spinner(self) -> None:
        stream = io.StringIO()

        result = asyncio.run(run_blocking(_steps, 3, text=TEXT, interval=0.005, stream=stream))

        output = stream.getvalue()
        assert result == 3
        for i in range(3):
            assert f"{BLANK}step {i}\n" in output
        assert output.endswith(f"{BLANK}{TEXT} - ✅ Успешно\n")

    def test_failure_reported(self) -> None:
        stream = io.StringIO()

        def broken(echo):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(run_blocking(broken, text=TEXT, interval=0.005, stream=stream))

        assert stream.getvalue().endswith(f"{TEXT} - ❌ Ошибка\n")

    def test_disabled_keeps_default_echo(self, capsys) -> None:
        stream = io.StringIO()

        result = asyncio.run(run_blocking(_steps, 2, text=TEXT, enabled=False, stream=stream))

        assert result == 2
        assert stream.getvalue() == ""
        assert capsys.readouterr().out == "step 0\nstep 1\n"
