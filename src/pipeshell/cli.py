"""CLI entry point using typer."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from pipeshell import __version__
from pipeshell.config import (
    CONFIG_FILE,
    AppConfig,
    get_config,
    load_config,
    save_config,
)
from pipeshell.session import LineReader, Session

app = typer.Typer(
    name="pipeshell",
    help="A small interactive command interpreter with pipelines and history.",
    add_completion=False,
)
console = Console()


def _setup_logging(config: AppConfig, verbose: bool = False) -> None:
    log_path = Path(config.logging.file).expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(str(log_path)),
            *([logging.StreamHandler()] if verbose else []),
        ],
    )


def _line_reader(prompt: str) -> LineReader:
    def read_line() -> str | None:
        try:
            return console.input(f"{prompt} ", markup=False)
        except EOFError:
            console.print()
            return None

    return read_line


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    """Start an interactive session."""
    config = get_config()
    _setup_logging(config, verbose)

    session = Session(config)
    status = session.run(_line_reader(config.shell.prompt))
    raise typer.Exit(status)


@app.command("exec")
def exec_line(
    line: str = typer.Argument(..., help="Command line, e.g. '/bin/ls -l | /usr/bin/wc -l'"),
) -> None:
    """Run a single command line and exit with its status."""
    config = get_config()
    _setup_logging(config)

    session = Session(config)
    raise typer.Exit(session.run_line(line))


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., shell.prompt)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    cfg = load_config()

    if key is None:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("shell.prompt", cfg.shell.prompt)
        table.add_row("shell.history_max_items", str(cfg.shell.history_max_items))
        table.add_row("shell.arg_max_count", str(cfg.shell.arg_max_count))
        table.add_row("logging.level", cfg.logging.level)
        table.add_row("logging.file", cfg.logging.file)

        console.print(table)
        if not CONFIG_FILE.exists():
            console.print(f"[dim]Using defaults ({CONFIG_FILE} not found).[/dim]")
        return

    if value is None:
        console.print("[red]Usage: pipeshell config <key> <value>[/red]")
        raise typer.Exit(1)

    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., shell.prompt)[/red]")
        raise typer.Exit(1)

    section, attr = parts
    section_map = {"shell": cfg.shell, "logging": cfg.logging}

    if section not in section_map:
        console.print(f"[red]Unknown section: {section}[/red]")
        raise typer.Exit(1)

    obj = section_map[section]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {key}[/red]")
        raise typer.Exit(1)

    # Type coercion
    current = getattr(obj, attr)
    try:
        if isinstance(current, int):
            typed_value: str | int = int(value)
            if typed_value < 1:
                raise ValueError(value)
        else:
            typed_value = value
    except ValueError:
        console.print(f"[red]Invalid value for {key}: expected a positive integer[/red]")
        raise typer.Exit(1)

    setattr(obj, attr, typed_value)
    save_config(cfg)
    console.print(f"[green]{key} = {typed_value}[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"pipeshell v{__version__}")
    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
