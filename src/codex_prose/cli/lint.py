import asyncio
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from codex_prose.cli.mask import build_rules
from codex_prose.core.pipeline import LintReport, lint_paths
from codex_prose.core.profiles import build_default_registry
from codex_prose.errors import CodexProseError
from codex_prose.models import TextBlock
from codex_prose.render.gateway import RendererGateway
from codex_prose.render.probe import DEFAULT_TIMEOUT, wait_until_reachable
from codex_prose.settings import get_settings

console = Console()


class BlockReporter:
    """Reports every prose block; stands in for a real rule catalog."""

    def evaluate(self, block: TextBlock) -> Iterable[TextBlock]:
        return [block]


def _print_report(report: LintReport) -> None:
    table = Table(show_lines=False)
    for header in ("File", "Line", "Scope", "Text"):
        table.add_column(header)
    for path, findings in report.findings.items():
        for finding in findings:
            block: TextBlock = finding.payload
            table.add_row(path, str(finding.line or "?"), block.scope, " ".join(block.text.split()))
    console.print(table)
    for path, error in report.errors.items():
        console.print(f"[red]{path}[/red]: {error}")


def lint(
    paths: Annotated[list[Path], typer.Argument(help="Documents or source files to lint.")],
    renderer_url: Annotated[str | None, typer.Option(help="Renderer endpoint to POST markup to.")] = None,
    built: Annotated[Path | None, typer.Option(help="Pre-built HTML file shared by every document.")] = None,
    block_ignore: Annotated[
        list[str] | None, typer.Option("--block-ignore", help="GLOB=REGEX block to mask (repeatable).")
    ] = None,
    token_ignore: Annotated[
        list[str] | None, typer.Option("--token-ignore", help="GLOB=REGEX inline token to mask (repeatable).")
    ] = None,
) -> None:
    """Extract prose from each file and report the blocks rules would see."""
    rules = build_rules(block_ignore, token_ignore)
    settings = get_settings(renderer_url=renderer_url, built=built)
    registry = build_default_registry()

    async def _run() -> LintReport:
        async with RendererGateway(settings) as gateway:
            return await lint_paths(paths, registry=registry, gateway=gateway, evaluator=BlockReporter(), rules=rules)

    report = asyncio.run(_run())
    _print_report(report)
    if not report.ok:
        raise typer.Exit(code=1)


def probe(
    address: Annotated[str, typer.Argument(help="host:port or URL of the renderer.")],
    timeout: Annotated[float, typer.Option(help="Overall deadline in seconds.")] = DEFAULT_TIMEOUT,
) -> None:
    """Check that a renderer accepts TCP connections."""
    try:
        asyncio.run(wait_until_reachable(address, timeout))
    except (ValueError, CodexProseError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Reachable[/green] {address}")
