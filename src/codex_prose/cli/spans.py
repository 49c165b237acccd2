from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from codex_prose.core.languages import resolve_language
from codex_prose.core.profiles import build_default_registry
from codex_prose.core.spans import extract_spans
from codex_prose.errors import CodexProseError

console = Console()


def spans(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Path to a source file.")],
    language: Annotated[str | None, typer.Option(help="Language name or alias (e.g. python, js, golang).")] = None,
) -> None:
    """List the comments and docstrings a linter would check."""
    try:
        resolved = resolve_language(language, path)
        profile = build_default_registry([resolved]).lookup(resolved)
    except (ValueError, CodexProseError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    table = Table(show_lines=False)
    for header in ("Line", "Query", "Bytes", "Text"):
        table.add_column(header)
    found = extract_spans(path.read_bytes(), profile)
    for span in found:
        table.add_row(
            str(span.start_point.row + 1),
            span.query,
            f"{span.start_byte}-{span.end_byte}",
            span.text.strip(),
        )
    console.print(table)
    console.print(f"({len(found)} spans)")
