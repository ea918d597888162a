"""
Shared utility functions for mfinstaller.
"""
import os
import shlex
import subprocess
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from .config import logger


def format_command(command):
    if isinstance(command, str):
        return command
    return " ".join(shlex.quote(str(part)) for part in command)


def run_command(command, cwd=".", capture_output=False, check=True, log_stderr=True):
    """
    Runs an external command and logs the output.

    Args:
        command (str | list): The command to run. Strings go through the shell,
            argument lists are executed directly.
        cwd (str): The working directory.
        capture_output (bool): If True, return stdout.
        check (bool): If True, raise CalledProcessError on non-zero exit codes.
        log_stderr (bool): If False, do not log stderr as an error.

    Returns:
        str: The command's stdout if capture_output is True, otherwise None.
    """
    display = format_command(command)
    try:
        logger.debug(f"Running command in '{cwd}': {display}")
        result = subprocess.run(
            command,
            shell=isinstance(command, str),
            capture_output=True,
            text=True,
            cwd=cwd,
            check=False,  # Disable check here to handle output manually
            encoding='utf-8'
        )

        if result.stdout and result.stdout.strip():
            logger.debug(result.stdout.strip())

        # Log stderr only if the command failed
        if result.returncode != 0:
            if log_stderr and result.stderr and result.stderr.strip():
                logger.error(result.stderr.strip())
            if check:
                raise subprocess.CalledProcessError(
                    result.returncode, command, output=result.stdout, stderr=result.stderr
                )

        return result.stdout.strip() if capture_output else None
    except subprocess.CalledProcessError as e:
        if log_stderr:
            logger.error(f"Command failed with exit code {e.returncode}: {display}")
        raise
    except OSError as e:
        logger.error(f"Could not run command '{display}': {e}")
        if check:
            raise
        return None


@contextmanager
def working_directory(path):
    """
    Changes the process working directory for the duration of the block.

    The previous directory is restored on every exit path, including when the
    block raises.
    """
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield Path(path)
    finally:
        os.chdir(previous)


class ToolStatus(Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    INDETERMINATE = "indeterminate"


class CommandProbe:
    """
    Checks whether external tools can be run, by calling `<tool> --version`.

    A tool is AVAILABLE when the probe exits 0 with some output, UNAVAILABLE
    when it cannot be found or answers with an error, and INDETERMINATE when
    the probe itself could not be carried out.
    """

    def __init__(self, version_flag="--version"):
        self.version_flag = version_flag
        self._cache = {}

    def check(self, tool):
        if tool not in self._cache:
            self._cache[tool] = self._probe(tool)
            logger.debug(f"Tool '{tool}' is {self._cache[tool].value}")
        return self._cache[tool]

    def is_available(self, tool):
        return self.check(tool) is ToolStatus.AVAILABLE

    def _probe(self, tool):
        try:
            result = subprocess.run(
                [tool, self.version_flag],
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            return ToolStatus.UNAVAILABLE
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Probe for '{tool}' failed: {e}")
            return ToolStatus.INDETERMINATE

        if result.returncode == 0 and result.stdout.strip():
            return ToolStatus.AVAILABLE
        return ToolStatus.UNAVAILABLE
