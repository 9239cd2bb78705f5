"""CLI entry point using typer."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from smallshell import __version__
from smallshell.config import (
    CONFIG_FILE,
    DETECTION_STRATEGIES,
    AppConfig,
    load_config,
    save_config,
    validate_config,
)
from smallshell.errors import ConfigurationError, SpawnError

app = typer.Typer(
    name="smallshell",
    help="A small command interpreter that never leaks zombie processes.",
    add_completion=False,
)
console = Console()


def setup_logging(config: AppConfig) -> None:
    """Send diagnostics to the log file, never to the terminal."""
    log_path = Path(config.logging.file).expanduser().resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.FileHandler(str(log_path))],
    )


@app.command()
def run(
    detection: str = typer.Option(None, "--detection", "-d", help="Termination detection: signal or poll"),
    report_status: bool | None = typer.Option(None, "--status/--no-status", help="Include exit status in reports"),
) -> None:
    """Start the interactive interpreter."""
    from smallshell.shell import run_session

    config = load_config()
    if detection is not None:
        config.shell.detection = detection
    if report_status is not None:
        config.shell.report_status = report_status

    try:
        validate_config(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    setup_logging(config)

    try:
        code = run_session(config)
    except SpawnError:
        logging.getLogger(__name__).exception("Fatal spawn failure")
        raise typer.Exit(1)
    raise typer.Exit(code)


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., shell.detection)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    cfg = load_config()

    if key is None:
        # Show all config
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("shell.detection", cfg.shell.detection)
        table.add_row("shell.max_line_length", str(cfg.shell.max_line_length))
        table.add_row("shell.max_args", str(cfg.shell.max_args))
        table.add_row("shell.prompt", repr(cfg.shell.prompt))
        table.add_row("shell.report_status", str(cfg.shell.report_status))
        table.add_row("logging.level", cfg.logging.level)
        table.add_row("logging.file", cfg.logging.file)

        console.print(table)
        if not CONFIG_FILE.exists():
            console.print("[dim]Using defaults; no config file saved yet.[/dim]")
        return

    if value is None:
        console.print("[red]Usage: smallshell config <key> <value>[/red]")
        raise typer.Exit(1)

    # Set config value
    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., shell.detection)[/red]")
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
        if isinstance(current, bool):
            typed_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            typed_value = int(value)
        else:
            typed_value = value
    except ValueError:
        console.print(f"[red]Invalid value type for {key}[/red]")
        raise typer.Exit(1)

    setattr(obj, attr, typed_value)
    try:
        validate_config(cfg)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    save_config(cfg)
    console.print(f"[green]{key} = {typed_value}[/green]")


@app.command()
def strategies() -> None:
    """List the available termination detection strategies."""
    for name, description in DETECTION_STRATEGIES.items():
        console.print(f"[bold]{name}[/bold]  {description}")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"smallshell v{__version__}")
    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
