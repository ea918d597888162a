"""
Handles the 'new' command for creating MiniFramework PHP projects.
"""
import click

from ..config import load_config
from ..installer import InstallOptions, ProjectInstaller


@click.command("new")
@click.argument("project_name")
@click.option(
    "--path",
    "path",
    help="Custom path for the project (default: ./<project-name>).",
)
@click.option(
    "--namespace",
    help="Root PHP namespace (default: generated from the project name).",
)
@click.option(
    "--description",
    help="Project description.",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite an existing, non-empty directory.",
)
@click.option(
    "--no-git",
    is_flag=True,
    help="Skip Git repository initialization.",
)
@click.option(
    "--no-install",
    is_flag=True,
    help="Skip dependency installation.",
)
@click.option(
    "--dev",
    is_flag=True,
    help="Install development dependencies.",
)
@click.pass_context
def new_handler(ctx, project_name, path, namespace, description, force, no_git, no_install, dev):
    """
    Create a new MiniFramework PHP project.

    Examples:

        miniframework new my-api

        miniframework new blog --namespace=Blog --path=/var/www/blog

        miniframework new ecommerce --description="E-commerce platform"
    """
    config = load_config()
    options = InstallOptions.resolve(
        project_name,
        path=path,
        namespace=namespace,
        description=description,
        force=force,
        no_git=no_git,
        no_install=no_install,
        dev=dev,
        config=config,
    )
    exit_code = ProjectInstaller(options, config=config).install()
    ctx.exit(exit_code)
