from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from autorel.core.config import DEFAULT_CONFIG_FILE, Config, load_config
from autorel.core.errors import ErrorCode
from autorel.core.result import Err
from autorel.git.repository import Repository
from autorel.output.console import ConsoleProtocol, RichConsole
from autorel.platform.http import HttpClient, RealHttpClient


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo: Repository
    config: Config
    console: ConsoleProtocol
    http: HttpClient


def build_context(*, repo_path: Path | None, config_path: Path | None) -> CLIContext:
    try:
        root = (repo_path or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --repo: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    repo = Repository(root)
    if not repo.exists():
        typer.echo(f"error: not a git checkout: {root}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    # Secrets are read from the environment here, once, and nowhere else.
    config_result = load_config(config_path or root / DEFAULT_CONFIG_FILE, os.environ)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    return CLIContext(
        repo=repo,
        config=config_result.value,
        console=RichConsole(),
        http=RealHttpClient(),
    )
