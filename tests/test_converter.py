"""Tests for the epub2md wrapper."""

import subprocess
from pathlib import Path

import pytest

from booktools import converter as converter_module
from booktools.converter import INSTALL_COMMAND, Epub2md
from booktools.exceptions import ConversionError


class FakeRun:
    """Records commands; only commands starting with an allowed prefix succeed."""

    def __init__(self, working: tuple = ()):
        self.working = [list(prefix) for prefix in working]
        self.calls: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        if any(cmd[: len(prefix)] == prefix for prefix in self.working):
            return subprocess.CompletedProcess(cmd, 0, "", "")
        if cmd[0] == "epub2md":
            raise FileNotFoundError(cmd[0])
        raise subprocess.CalledProcessError(1, cmd, "", "boom")


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch):
    def install(*working):
        run = FakeRun(working)
        monkeypatch.setattr(converter_module.subprocess, "run", run)
        return run

    return install


def test_is_available_is_cached(fake_run) -> None:
    """Availability is checked once per instance unless refreshed."""
    run = fake_run(["epub2md"])
    tool = Epub2md()

    assert tool.is_available() is True
    assert tool.is_available() is True
    assert run.calls == [["epub2md", "--help"]]

    tool.is_available(refresh=True)
    assert len(run.calls) == 2


def test_is_available_falls_back_to_npx(fake_run) -> None:
    run = fake_run(["npx", "epub2md"])
    assert Epub2md().is_available() is True
    assert run.calls == [["epub2md", "--help"], ["npx", "epub2md", "--help"]]


def test_is_available_without_npx(fake_run) -> None:
    fake_run(["npx", "epub2md"])
    assert Epub2md(use_npx=False).is_available() is False


def test_ensure_respects_declined_install(fake_run) -> None:
    run = fake_run()
    tool = Epub2md()

    assert tool.ensure(confirm=lambda: False) is False
    assert INSTALL_COMMAND not in run.calls


def test_ensure_without_auto_install(fake_run) -> None:
    run = fake_run(INSTALL_COMMAND)
    assert Epub2md().ensure(auto_install=False) is False
    assert INSTALL_COMMAND not in run.calls


def test_ensure_installs_when_missing(fake_run) -> None:
    run = fake_run(INSTALL_COMMAND)
    tool = Epub2md()

    assert tool.ensure(confirm=lambda: True) is True
    assert INSTALL_COMMAND in run.calls


def test_convert_uses_first_working_invocation(fake_run, tmp_path: Path) -> None:
    run = fake_run(["npx", "epub2md"])
    epub = tmp_path / "book.epub"

    Epub2md().convert(epub, tmp_path)

    assert run.calls[-1] == ["npx", "epub2md", "-c", str(epub), str(tmp_path)]


def test_convert_failure(fake_run, tmp_path: Path) -> None:
    fake_run()
    with pytest.raises(ConversionError):
        Epub2md().convert(tmp_path / "book.epub", tmp_path)


def test_custom_executable(fake_run, tmp_path: Path) -> None:
    run = fake_run(["/opt/bin/epub2md"])
    tool = Epub2md("/opt/bin/epub2md", use_npx=False)

    assert tool.is_available() is True
    tool.convert(tmp_path / "book.epub", tmp_path)
    assert run.calls[-1][0] == "/opt/bin/epub2md"
