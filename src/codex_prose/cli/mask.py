from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from codex_prose.core.masking import mask
from codex_prose.errors import CodexProseError
from codex_prose.models import Document
from codex_prose.settings import MARKUP_TEMPLATES, IgnoreRules, MarkupTemplates

console = Console()

RULE_SOURCE = "command line"


def build_rules(block_ignore: list[str] | None, token_ignore: list[str] | None) -> IgnoreRules:
    try:
        return IgnoreRules.from_pairs(block_ignore, token_ignore, source=RULE_SOURCE)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def mask_command(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Path to a markup document.")],
    block_ignore: Annotated[
        list[str] | None, typer.Option("--block-ignore", help="GLOB=REGEX block to mask (repeatable).")
    ] = None,
    token_ignore: Annotated[
        list[str] | None, typer.Option("--token-ignore", help="GLOB=REGEX inline token to mask (repeatable).")
    ] = None,
) -> None:
    """Print a document with its ignored regions masked."""
    rules = build_rules(block_ignore, token_ignore)
    document = Document.from_path(path)
    templates = MARKUP_TEMPLATES.get(document.normed_ext, MarkupTemplates.of("%s", "%s"))
    try:
        masked = mask(document, templates.block, templates.inline, rules)
    except CodexProseError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    typer.echo(masked, nl=False)
