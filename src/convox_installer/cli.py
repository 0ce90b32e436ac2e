#!/usr/bin/env python3
"""Convox Installer CLI"""

from __future__ import annotations

import logging
import os
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from convox_installer.installation import PROMPTS, run_installation
from convox_installer.installer import ConvoxInstaller
from convox_installer.paths import Paths

CONSOLE = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=CONSOLE, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.command()
@click.option(
    "--config-file",
    "-c",
    default=None,
    help="Installer config file path (default: ./.installer_config.json)",
)
@click.option("--convox-dir", default=None, help="Convox CLI config directory (default depends on the platform)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging verbosity",
)
@click.option("--debug", is_flag=True, help="Shortcut for --log-level DEBUG")
def main(
    config_file: os.PathLike | str | None,
    convox_dir: os.PathLike | str | None,
    log_level: str,
    debug: bool,
):
    """Convox Installer - installs a Convox rack on AWS and sets up your app"""
    setup_logging("DEBUG" if debug else log_level)

    CONSOLE.print(
        Panel.fit(
            "[bold blue]Convox Installer[/bold blue]\n"
            "Installs a Convox rack on AWS, then creates your app, registry, S3 bucket, database and cache.\n"
            "[green]Safe to re-run: every step checks what already exists.[/green]",
            border_style="blue",
        )
    )

    installer: ConvoxInstaller | None = None
    try:
        installer = ConvoxInstaller(
            Paths.detect(installer_config_file=config_file, convox_dir=convox_dir),
            prompts=PROMPTS,
        )
        run_installation(installer)
    except Exception as e:
        if installer is not None:
            display_results(installer.results)
        CONSOLE.print(f"\n[bold red]❌ Error: {e.__class__.__name__}: {e}[/bold red]")
        raise click.Abort()

    display_results(installer.results)


def display_results(result: dict[str, Any]):
    """Display installation results in a table"""
    if not result:
        return

    table = Table(title="Installation Results", show_header=True, header_style="bold magenta")
    table.add_column("Step", style="cyan", width=22)
    table.add_column("Status", style="green", width=10)
    table.add_column("Details", style="white")

    for step, details in result.items():
        status = "✅ Success" if details.get("success", False) else "❌ Failed"
        table.add_row(
            step.replace("_", " ").title(),
            status,
            str(details.get("details", "")),
        )

    CONSOLE.print("\n")
    CONSOLE.print(table)


if __name__ == "__main__":
    main()
