"""Interactive numbered menu (0-9)."""

from __future__ import annotations

from collections.abc import Callable

import typer

from shipyard.cli.commands._helpers import exit_with_code, run_operation
from shipyard.cli.context import CLIContext, build_context
from shipyard.core.errors import ErrorCode
from shipyard.core.result import Err
from shipyard.output.console import Style
from shipyard.output.errors import delivery_error_exit_code, print_delivery_error
from shipyard.services.operations import EXIT_MENU_KEY, OPERATIONS, resolve_menu_choice

Prompt = Callable[[str], str]


def _prompt(text: str) -> str:
    return typer.prompt(text, default="", show_default=False)


def run_menu(ctx: CLIContext, *, prompt: Prompt = _prompt) -> int:
    """Show the menu, run the chosen operation once, return the exit code."""
    console = ctx.console
    console.header(f"{ctx.settings.app.name} build menu")
    for spec in OPERATIONS:
        console.print(f"{spec.menu_key}) {spec.description}")
    console.print(f"{EXIT_MENU_KEY}) Exit")
    console.newline()

    choice = prompt(f"Enter your choice (0-{EXIT_MENU_KEY})").strip()
    if choice == str(EXIT_MENU_KEY):
        console.print("Goodbye!", Style.DIM)
        return int(ErrorCode.OK)

    resolved = resolve_menu_choice(choice)
    if isinstance(resolved, Err):
        print_delivery_error(resolved.error, console)
        return delivery_error_exit_code(resolved.error)

    spec = resolved.value
    version: str | None = None
    if spec.requires_version:
        version = prompt("Enter version number (e.g., 1.3.0)")
    return run_operation(ctx, spec, version)


def menu() -> None:
    """Open the interactive menu."""
    ctx = build_context()
    code = run_menu(ctx)
    if code:
        exit_with_code(code)
