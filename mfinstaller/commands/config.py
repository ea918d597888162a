import json

import click

from mfinstaller.config import generate_config_example, get_config_path, load_config


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("generate")
def generate_config():
    """Generate an example configuration file."""
    generate_config_example()
    click.echo(f"Copy it to {get_config_path()} and edit the values you want to change.")


@config_cmd.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output in compact JSON format.")
def show_config(as_json):
    """Show the current configuration with all merges applied."""
    config = load_config()
    if as_json:
        click.echo(json.dumps(config, ensure_ascii=False))
    else:
        click.echo(json.dumps(config, indent=2, ensure_ascii=False))
