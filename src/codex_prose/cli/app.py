import logging
from typing import Annotated

import typer

from codex_prose.cli.lint import lint, probe
from codex_prose.cli.mask import mask_command
from codex_prose.cli.spans import spans

app = typer.Typer(
    name="codex-prose",
    help="Codex Prose CLI: find, mask and lint the prose in docs and source code.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


app.command("spans")(spans)
app.command("mask")(mask_command)
app.command("lint")(lint)
app.command("probe")(probe)


def main() -> None:
    app()
