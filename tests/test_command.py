"""
Tests for running external commands.
"""

import asyncio
import logging

import pytest

from metrics_plugin.utils.command import cut, describe_exit, run_command


def test_lines_transformed_in_order(script) -> None:
    cmd = script("for i in range(1, 7):\n    print(f'line {i}')\n")

    def odd_only(line: str) -> str | None:
        number = int(line.split()[1])
        return line.upper() if number % 2 else None

    result = asyncio.run(run_command(cmd, odd_only))

    assert result == ["LINE 1", "LINE 3", "LINE 5"]


def test_arguments_are_passed_without_shell(script) -> None:
    cmd = script("import sys\nprint(' '.join(sys.argv[1:]))\n")

    result = asyncio.run(run_command(f"{cmd} a  b\t$HOME", lambda line: line))

    assert result == ["a b $HOME"]


def test_killed_command_returns_partial_output(script, caplog: pytest.LogCaptureFixture) -> None:
    cmd = script(
        "import os, signal, sys\n"
        "print('1')\n"
        "print('2')\n"
        "sys.stdout.flush()\n"
        "os.kill(os.getpid(), signal.SIGKILL)\n"
    )

    with caplog.at_level(logging.DEBUG, logger="metrics_plugin"):
        result = asyncio.run(run_command(cmd, int))

    assert result == [1, 2]
    assert "killed by signal 9" in caplog.text


def test_nonzero_exit_is_not_an_error(script, caplog: pytest.LogCaptureFixture) -> None:
    cmd = script("print('42')\nraise SystemExit(3)\n")

    with caplog.at_level(logging.DEBUG, logger="metrics_plugin"):
        result = asyncio.run(run_command(cmd, float))

    assert result == [42.0]
    assert "exited normally with code 3" in caplog.text


def test_no_output(script) -> None:
    cmd = script("pass\n")
    assert asyncio.run(run_command(cmd, str)) == []


def test_empty_command_line() -> None:
    with pytest.raises(ValueError):
        asyncio.run(run_command("   ", str))


def test_missing_program() -> None:
    with pytest.raises(FileNotFoundError):
        asyncio.run(run_command("/nonexistent/metrics-helper --all", str))


def test_transform_error_propagates(script) -> None:
    cmd = script("print('ok')\nprint('not a number')\n")

    with pytest.raises(ValueError):
        asyncio.run(run_command(cmd, float))


def test_cut() -> None:
    assert cut("cpu0  0.42\t\tgauge ") == ["cpu0", "0.42", "gauge"]
    assert cut("") == []


def test_describe_exit() -> None:
    assert describe_exit(12, 0) == "Process 12 exited normally with code 0"
    assert describe_exit(12, -9) == "Process 12 was killed by signal 9 (SIGKILL)"


def test_overlong_line_keeps_earlier_output(script, caplog: pytest.LogCaptureFixture) -> None:
    """A line over the read limit ends the read; earlier lines are returned."""
    cmd = script(
        "import sys\n"
        "print('1')\n"
        "sys.stdout.flush()\n"
        "print('x' * (2 * 1024 * 1024))\n"
        "print('2')\n"
    )

    with caplog.at_level(logging.WARNING, logger="metrics_plugin"):
        result = asyncio.run(run_command(cmd, int))

    assert result == [1]
    assert "has a line over" in caplog.text
