from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import typer

from shipyard.core.config import Settings, load_settings_or_default
from shipyard.core.errors import ErrorCode
from shipyard.core.result import Err
from shipyard.output.console import ConsoleProtocol, RichConsole
from shipyard.platform.detection import Platform, detect_platform
from shipyard.platform.process import CommandRunner, SubprocessRunner
from shipyard.services.credentials import Credentials
from shipyard.services.notary import CancelToken

ROOT_ENV = "SHIPYARD_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    settings: Settings
    credentials: Credentials
    platform: Platform
    console: ConsoleProtocol
    runner: CommandRunner
    cancel: CancelToken = field(default_factory=CancelToken)


def project_root() -> Path:
    override = os.environ.get(ROOT_ENV)
    if override:
        return Path(override)
    return Path.cwd()


def build_context() -> CLIContext:
    root = project_root()
    console = RichConsole()

    settings_result = load_settings_or_default(root)
    if isinstance(settings_result, Err):
        typer.echo(f"error: {settings_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    # The only place credentials are read from the environment.
    credentials = Credentials.from_env(os.environ)

    return CLIContext(
        root=root,
        settings=settings_result.value,
        credentials=credentials,
        platform=detect_platform(),
        console=console,
        runner=SubprocessRunner(),
    )
