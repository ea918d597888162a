"""
The project creation pipeline.

ProjectInstaller validates the target directory, fetches the framework into a
temporary workspace, copies it into place, rewrites it for the new project,
writes the generated files, and finally runs git and composer if asked to.
"""

import os
import re
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from rich.panel import Panel

from .config import console, load_config, logger
from .exit_codes import (
    SUCCESS, CommandError, ExternalToolWarning, TemplateIOError, ValidationError
)
from .filters import ExclusionRuleSet
from .materialize import copy_tree
from .rewrite import namespace_rules, rewrite_tree, update_manifest
from .source import build_template_source
from .templates import FRAMEWORK_URL, emit
from .utils import CommandProbe, ToolStatus, run_command, working_directory

WORKSPACE_PREFIX = "miniframework_temp_"
DEFAULT_NAMESPACE = "App"


class InstallState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ACQUIRING = "acquiring"
    MATERIALIZING = "materializing"
    REWRITING = "rewriting"
    EMITTING = "emitting"
    POST_PROCESSING = "post-processing"
    DONE = "done"
    FAILED = "failed"


def generate_namespace(project_name: str) -> str:
    """
    Derives a PHP root namespace from a project name.

    "my-blog" becomes "MyBlog". Names that leave nothing usable, or that would
    start with a digit, fall back to "App".
    """
    words = re.split(r"[-_ ]", project_name)
    namespace = "".join(word[:1].upper() + word[1:] for word in words)
    namespace = re.sub(r"[^a-zA-Z0-9]", "", namespace)
    if not namespace or not namespace[0].isalpha():
        return DEFAULT_NAMESPACE
    return namespace


def generate_package_name(project_name: str, vendor: str = "mycompany") -> str:
    """Composer package name, e.g. "My Blog" -> "mycompany/my-blog"."""
    package = project_name.lower()
    package = package.replace(" ", "-").replace("_", "-")
    package = re.sub(r"[^a-z0-9\-]", "", package)
    return f"{vendor}/{package}"


@dataclass(frozen=True)
class InstallOptions:
    project_name: str
    target_path: Path
    namespace: str
    description: str
    force: bool = False
    no_git: bool = False
    no_install: bool = False
    dev: bool = False

    @classmethod
    def resolve(cls, project_name, path=None, namespace=None, description=None,
                force=False, no_git=False, no_install=False, dev=False, config=None):
        """Fills in the defaults for every option not given on the command line."""
        config = config if config is not None else load_config()
        project = config.get("project", {})

        if path:
            target_path = Path(str(path).rstrip("/\\") or str(path)).expanduser()
        else:
            target_path = Path(os.getcwd()) / project_name

        return cls(
            project_name=project_name,
            target_path=target_path.absolute(),
            namespace=namespace or generate_namespace(project_name),
            description=description or project.get("description", "A new project built with MiniFramework PHP"),
            force=force,
            no_git=no_git,
            no_install=no_install,
            dev=dev,
        )


@contextmanager
def workspace(prefix=WORKSPACE_PREFIX):
    """A uniquely named temporary directory, removed when the block exits."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug(f"Created workspace {path}")
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug(f"Removed workspace {path}")


class ProjectInstaller:
    """
    Runs the pipeline for one project.

    The capability probe and the template source can be injected; by default
    they are built from the configuration.
    """

    def __init__(self, options: InstallOptions, config=None, probe: Optional[CommandProbe] = None,
                 source=None):
        self.options = options
        self.config = config if config is not None else load_config()
        self.probe = probe or CommandProbe()
        self.source = source or build_template_source(self.config, probe=self.probe)
        self.rules = ExclusionRuleSet.from_config(self.config)
        self.state = InstallState.IDLE
        self.history = [InstallState.IDLE]
        self.warnings = []

    def _enter(self, state: InstallState):
        self.state = state
        self.history.append(state)
        logger.debug(f"Installer state: {state.value}")

    def install(self) -> int:
        """
        Creates the project.

        Returns:
            int: The process exit code, 0 on success.
        """
        opts = self.options
        logger.info(f"Creating new MiniFramework PHP project: {opts.project_name}")
        logger.info(f"Target path: {opts.target_path}")
        logger.info(f"Namespace: {opts.namespace}")

        try:
            self._enter(InstallState.VALIDATING)
            self.validate_target()

            with workspace() as temp_dir:
                self._enter(InstallState.ACQUIRING)
                self.acquire(temp_dir)

                self._enter(InstallState.MATERIALIZING)
                copy_tree(
                    temp_dir,
                    opts.target_path,
                    self.rules,
                    self.config["template"]["directories"],
                )

            self._enter(InstallState.REWRITING)
            self.customize()

            self._enter(InstallState.EMITTING)
            logger.info("Generating project files...")
            emit(opts.target_path, opts)

            self._enter(InstallState.POST_PROCESSING)
            self.post_process()
        except CommandError as e:
            self._enter(InstallState.FAILED)
            logger.error(str(e))
            if isinstance(e, ValidationError):
                logger.info("Use --force to overwrite existing directory.")
            return e.exit_code

        self._enter(InstallState.DONE)
        self.show_success_message()
        return SUCCESS

    def validate_target(self):
        target = self.options.target_path
        if not target.exists():
            return
        if not target.is_dir():
            raise ValidationError(f"'{target}' already exists and is not a directory.")
        if not any(target.iterdir()):
            return
        if not self.options.force:
            raise ValidationError(f"Directory '{target}' already exists and is not empty.")

        logger.warning(f"Overwriting existing directory: {target}")
        try:
            shutil.rmtree(target)
        except OSError as e:
            raise TemplateIOError(f"Failed to remove {target}: {e}", path=target) from e

    def acquire(self, temp_dir: Path):
        logger.info("Downloading latest MiniFramework PHP...")
        try:
            return self.source.resolve(temp_dir)
        except OSError as e:
            raise TemplateIOError(f"Failed to prepare workspace {temp_dir}: {e}", path=temp_dir) from e

    def customize(self):
        opts = self.options
        project = self.config["project"]
        logger.info("Customizing project...")

        update_manifest(
            opts.target_path,
            generate_package_name(opts.project_name, project["vendor"]),
            opts.namespace,
            opts.description,
            source_dir=project["source_dir"],
            manifest=project["manifest"],
        )
        report = rewrite_tree(
            opts.target_path / project["source_dir"],
            namespace_rules(project["placeholder_namespace"], opts.namespace),
            project["source_extensions"],
        )
        logger.debug(f"Namespaces updated in {len(report.rewritten)} of {report.processed} source files")

    def post_process(self):
        steps = []
        if not self.options.no_git:
            steps.append(self.initialize_git_repository)
        if not self.options.no_install:
            steps.append(self.install_dependencies)

        for step in steps:
            try:
                step()
            except ExternalToolWarning as e:
                self.warnings.append(e)
                logger.warning(str(e))

    def _require_tool(self, key, purpose):
        tool = self.config["tools"][key]
        status = self.probe.check(tool)
        if status is not ToolStatus.AVAILABLE:
            raise ExternalToolWarning(f"{tool} not available ({status.value}), skipping {purpose}", tool=tool)
        return tool

    def initialize_git_repository(self):
        git = self._require_tool("git", "repository initialization")
        logger.info("Initializing Git repository...")

        message = (
            f"🎉 Initial commit: {self.options.project_name} project created with MiniFramework PHP"
        )
        try:
            with working_directory(self.options.target_path):
                run_command([git, "init"], capture_output=True)
                run_command([git, "add", "."], capture_output=True)
                run_command([git, "commit", "-m", message], capture_output=True)
        except (subprocess.CalledProcessError, OSError) as e:
            raise ExternalToolWarning(f"Git repository initialization failed: {e}", tool=git) from e
        logger.info("Git repository initialized")

    def install_dependencies(self):
        composer = self._require_tool("composer", "dependency installation")
        logger.info("Installing dependencies...")

        command = [composer, "install"]
        if not self.options.dev:
            command.append("--no-dev")
        command.append("--optimize-autoloader")

        try:
            with working_directory(self.options.target_path):
                run_command(command, capture_output=True)
        except (subprocess.CalledProcessError, OSError) as e:
            raise ExternalToolWarning(
                "Failed to install dependencies. Please run 'composer install' manually.", tool=composer
            ) from e
        logger.info("Dependencies installed successfully")

    def show_success_message(self):
        opts = self.options
        steps = [f"cd {opts.target_path.name}"]
        if opts.no_install or any(w.tool == self.config["tools"]["composer"] for w in self.warnings):
            steps.append("composer install")
        steps += [
            "cp .env.example .env",
            "php bin/console key:generate",
            "php bin/console db:setup",
            "php bin/console serve",
        ]
        lines = "\n".join(f"  {i}. {step}" for i, step in enumerate(steps, 1))

        console.print(Panel(
            f"[bold green]Project '{opts.project_name}' created successfully![/bold green]\n\n"
            f"📁 Location: {opts.target_path}\n\n"
            f"Next steps:\n{lines}\n\n"
            f"🚀 Visit http://localhost:8000 to see your application!\n"
            f"📚 Documentation: {FRAMEWORK_URL}",
            expand=False,
        ))
