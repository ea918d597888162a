"""
Exit codes and the error taxonomy of the installer.

Every fatal error raised by the pipeline is a CommandError carrying the exit
code the CLI should return.
"""

from enum import Enum

SUCCESS = 0
GENERAL_ERROR = 1
INTERRUPTED = 130


class CommandError(Exception):
    """Base class for errors that end a command with a specific exit code."""

    exit_code = GENERAL_ERROR

    def __init__(self, message, exit_code=None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ValidationError(CommandError):
    """The target directory is not in a state we may write to."""


class AcquisitionCause(Enum):
    CLONE_FAILED = "clone-failed"
    DOWNLOAD_FAILED = "download-failed"
    EXTRACT_FAILED = "extract-failed"
    NO_METHOD_AVAILABLE = "no-method-available"


class AcquisitionError(CommandError):
    """The template could not be fetched into the workspace."""

    def __init__(self, message, cause):
        super().__init__(message)
        self.cause = cause


class TemplateIOError(CommandError):
    """A filesystem operation on the template or project tree failed."""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class RewriteError(TemplateIOError):
    """
    Rewriting stopped on a file.

    `report` lists the files already rewritten before the failure, so the
    caller can tell which part of the tree is in its new state.
    """

    def __init__(self, message, path, report):
        super().__init__(message, path)
        self.report = report


class ExternalToolWarning(Exception):
    """An optional external tool is missing or failed. Never fatal."""

    def __init__(self, message, tool=None):
        super().__init__(message)
        self.tool = tool
