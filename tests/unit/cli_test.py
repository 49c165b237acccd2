"""Tests for the codex-prose command line."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from codex_prose.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CODEX_PROSE_RENDERER_URL", "CODEX_PROSE_BUILT"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize(
    "args",
    [[], ["spans"], ["mask"], ["lint"], ["probe"]],
    ids=["root", "spans", "mask", "lint", "probe"],
)
def test_short_help_flag(args: list[str]) -> None:
    result = runner.invoke(app, [*args, "-h"])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_spans_lists_docstrings_and_comments(tmp_path: Path) -> None:
    source = tmp_path / "mod.py"
    source.write_text('"""Docs here."""\n# note\n', encoding="utf-8")

    result = runner.invoke(app, ["spans", str(source)])

    assert result.exit_code == 0
    assert "module_docstring" in result.output
    assert "Docs here." in result.output
    assert "(2 spans)" in result.output


def test_spans_rejects_unknown_language(tmp_path: Path) -> None:
    source = tmp_path / "prog.cob"
    source.write_text("* comment\n", encoding="utf-8")

    result = runner.invoke(app, ["spans", str(source), "--language", "cobol"])

    assert result.exit_code == 1


def test_mask_prints_masked_document(tmp_path: Path) -> None:
    doc = tmp_path / "guide.md"
    doc.write_text("Hello {{ name }}!\n", encoding="utf-8")

    result = runner.invoke(app, ["mask", str(doc), "--token-ignore", r"*.md=\{\{[^}]+\}\}"])

    assert result.exit_code == 0
    assert result.output == "Hello `{{ name }}`!\n"


def test_mask_reports_bad_pattern(tmp_path: Path) -> None:
    doc = tmp_path / "guide.md"
    doc.write_text("text\n", encoding="utf-8")

    result = runner.invoke(app, ["mask", str(doc), "--token-ignore", "*.md=(bad"])

    assert result.exit_code == 1
    assert "Invalid ignore pattern" in result.output


def test_mask_rejects_malformed_rule(tmp_path: Path) -> None:
    doc = tmp_path / "guide.md"
    doc.write_text("text\n", encoding="utf-8")

    result = runner.invoke(app, ["mask", str(doc), "--block-ignore", "no-separator"])

    assert result.exit_code == 2


def test_lint_reports_prose_blocks(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    Path("a.md").write_text("# Title\n\nSome prose.\n", encoding="utf-8")

    result = runner.invoke(app, ["lint", "a.md"])

    assert result.exit_code == 0
    assert "heading.h1" in result.output
    assert "Title" in result.output
    assert "paragraph" in result.output


def test_lint_exits_nonzero_when_a_document_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    Path("a.md").write_text("Fine.\n", encoding="utf-8")
    Path("b.rst").write_text("Title\n=====\n", encoding="utf-8")

    result = runner.invoke(app, ["lint", "a.md", "b.rst"])

    assert result.exit_code == 1
    assert "Fine." in result.output
    assert "no renderer configured" in result.output


def test_probe_fails_for_closed_port(unused_port: int) -> None:
    result = runner.invoke(app, ["probe", f"127.0.0.1:{unused_port}", "--timeout", "0.05"])

    assert result.exit_code == 1
    assert "Failed to start renderer" in result.output
