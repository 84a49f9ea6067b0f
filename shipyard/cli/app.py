from __future__ import annotations

import os
from pathlib import Path

import typer

from shipyard import __version__
from shipyard.cli.commands.menu_cmd import menu
from shipyard.cli.commands.pipeline_cmd import (
    debug_install,
    debug_package,
    debug_run,
    deliver,
    deliver_push,
    release_install,
    release_package,
    release_run,
    run,
    verify,
)
from shipyard.cli.commands.upload_cmd import upload
from shipyard.cli.context import ROOT_ENV
from shipyard.core.config import CONFIG_FILENAME
from shipyard.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
    help="Build, package, sign, notarize and deliver the app.",
)


# Operations
app.command("verify")(verify)
app.command("debug-run")(debug_run)
app.command("debug-package")(debug_package)
app.command("debug-install")(debug_install)
app.command("release-run")(release_run)
app.command("release-package")(release_package)
app.command("release-install")(release_install)
app.command("deliver")(deliver)
app.command("deliver-push")(deliver_push)

# Entry points
app.command("run", context_settings={"ignore_unknown_options": True})(run)
app.command()(upload)
app.command()(menu)


@app.command("help")
def _help(ctx: typer.Context) -> None:  # pyright: ignore[reportUnusedFunction]
    """Show this message and exit."""
    parent = ctx.parent if ctx.parent is not None else ctx
    typer.echo(parent.get_help())


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    root: Path | None = typer.Option(
        None,
        "--root",
        help=f"Project root (default: current directory; reads {CONFIG_FILENAME})",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        os.environ[ROOT_ENV] = str(resolved)

    if ctx.invoked_subcommand is None:
        menu()


def main() -> None:
    app()
