"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from booktools import __version__
from booktools import cli as cli_module
from booktools.cli import cli

IMAGE = "![](./images/00318.jpeg)"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner: CliRunner) -> None:
    """--version prints the installed package version."""
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__
    assert f"booktools, version {__version__}" in result.output


def test_clean_command(runner: CliRunner, tmp_path: Path) -> None:
    book = tmp_path / "book.md"
    book.write_text(f"Text\n{IMAGE}\nMore", encoding="utf-8")

    result = runner.invoke(cli, ["clean", str(tmp_path), "--no-backup"])

    assert result.exit_code == 0, result.output
    assert book.read_text(encoding="utf-8") == "Text\nMore"
    assert not (tmp_path / "book.md.backup").exists()


def test_clean_command_fails_on_unreadable_file(runner: CliRunner, tmp_path: Path) -> None:
    (tmp_path / "broken.md").write_bytes(b"\xff\xfe")

    result = runner.invoke(cli, ["clean", str(tmp_path)])

    assert result.exit_code == 1


def test_merge_command(runner: CliRunner, tmp_path: Path) -> None:
    chapters = tmp_path / "chapters"
    chapters.mkdir()
    (chapters / "b.md").write_text("B", encoding="utf-8")
    (chapters / "a.md").write_text("A", encoding="utf-8")
    output = tmp_path / "book.md"

    result = runner.invoke(cli, ["merge", str(chapters), str(output), "--headings"])

    assert result.exit_code == 0, result.output
    assert "2/2" in result.output
    assert output.read_text(encoding="utf-8") == "# a\n\nA\n\n# b\n\nB"


def test_merge_command_empty_directory(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["merge", str(tmp_path), str(tmp_path / "out.md")])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_process_command(
    runner: CliRunner,
    tmp_path: Path,
    epub_file: Path,
    converter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(cli_module, "Epub2md", lambda executable: converter)

    result = runner.invoke(
        cli, ["process", str(epub_file), str(tmp_path / "out"), "--no-template"]
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "My_Book" / "wiki" / "My_Book.md").exists()
    assert converter.converted == [epub_file.resolve()]


@pytest.mark.parametrize(
    "args, env, expected",
    [
        (["--epub2md", "/opt/bin/epub2md"], {}, "/opt/bin/epub2md"),
        ([], {"BOOKTOOLS_EPUB2MD": "custom-epub2md"}, "custom-epub2md"),
        ([], {}, "epub2md"),
    ],
)
def test_process_command_epub2md_executable(
    runner: CliRunner,
    tmp_path: Path,
    epub_file: Path,
    converter,
    monkeypatch: pytest.MonkeyPatch,
    args: list,
    env: dict,
    expected: str,
) -> None:
    """The executable comes from --epub2md or the environment, in the group or the command."""
    executables = []

    def build(executable):
        executables.append(executable)
        return converter

    monkeypatch.delenv("BOOKTOOLS_EPUB2MD", raising=False)
    monkeypatch.setattr(cli_module, "Epub2md", build)

    result = runner.invoke(
        cli,
        ["process", str(epub_file), str(tmp_path / "out"), "--no-template", *args],
        env=env,
    )

    assert result.exit_code == 0, result.output
    assert executables[-1] == expected


def test_process_command_standalone(
    runner: CliRunner,
    tmp_path: Path,
    epub_file: Path,
    converter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """book-process works without the group and still honours --epub2md."""
    executables = []

    def build(executable):
        executables.append(executable)
        return converter

    monkeypatch.setattr(cli_module, "Epub2md", build)

    result = runner.invoke(
        cli_module.process,
        [str(epub_file), str(tmp_path / "out"), "--no-template", "--epub2md", "my-epub2md"],
    )

    assert result.exit_code == 0, result.output
    assert executables == ["my-epub2md"]


def test_process_command_missing_converter(
    runner: CliRunner,
    tmp_path: Path,
    epub_file: Path,
    make_converter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    converter = make_converter(available=False)
    monkeypatch.setattr(cli_module, "Epub2md", lambda executable: converter)

    result = runner.invoke(cli, ["process", str(epub_file), str(tmp_path)])

    assert result.exit_code == 1
    assert "epub2md" in result.output


def test_organize_command(runner: CliRunner, tmp_path: Path) -> None:
    wiki = tmp_path / "wiki"
    wiki.mkdir()
    (wiki / "Book.md").write_text("merged", encoding="utf-8")

    result = runner.invoke(cli, ["organize", "Book", "--dir", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "Book").is_dir()
    assert (tmp_path / "backup" / "Book.md").exists()


def test_tidy_command(runner: CliRunner, tmp_path: Path) -> None:
    (tmp_path / "notes.md").write_text("n", encoding="utf-8")

    result = runner.invoke(cli, ["tidy", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / tmp_path.name / "notes.md").exists()


def test_template_command(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["template", "--list"])
    assert "GEMINI.md" in result.output

    result = runner.invoke(cli, ["template", "GEMINI.md", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "GEMINI.md").exists()

    result = runner.invoke(cli, ["template", "nope.md", str(tmp_path)])
    assert result.exit_code == 1
