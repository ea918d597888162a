#!/usr/bin/env python3

import logging
import sys

import click
from rich.panel import Panel

from mfinstaller import __version__
from mfinstaller.config import console, load_config, logger
from mfinstaller.exit_codes import GENERAL_ERROR, INTERRUPTED, SUCCESS
from mfinstaller.commands.new import new_handler
from mfinstaller.commands.config import config_cmd

BANNER = (
    "[bold]MiniFramework PHP Global Installer[/bold]\n"
    "Create projects anywhere"
)


@click.group()
@click.version_option(version=__version__, prog_name="MiniFramework PHP Installer")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.pass_context
def cli(ctx, verbose):
    """MiniFramework PHP project generator."""
    level = "DEBUG" if verbose else load_config().get("logging", {}).get("level", "INFO")
    logging.getLogger().setLevel(getattr(logging, str(level).upper(), logging.INFO))
    # Keep machine-readable config output clean
    if ctx.invoked_subcommand != "config":
        console.print(Panel(BANNER, expand=False))


@cli.command("help")
@click.pass_context
def help_handler(ctx):
    """Show this help message."""
    click.echo(ctx.parent.get_help())


@cli.command("version")
def version_handler():
    """Show version information."""
    click.echo(f"MiniFramework PHP Installer v{__version__}")
    click.echo("Global project generator for MiniFramework PHP")


cli.add_command(new_handler)
cli.add_command(config_cmd)


def main(argv=None):
    """
    Entry point of the `miniframework` script.

    Usage errors (unknown command, missing project name) exit with status 1
    like every other failure.
    """
    try:
        rv = cli.main(args=argv, prog_name="miniframework", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(GENERAL_ERROR)
    except click.Abort:
        logger.error("Aborted!")
        sys.exit(INTERRUPTED)
    sys.exit(rv if isinstance(rv, int) else SUCCESS)


if __name__ == "__main__":
    main()
