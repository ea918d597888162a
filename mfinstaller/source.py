"""
Acquisition of the framework template into a local directory.

The template is fetched by trying an ordered list of strategies: a local copy
(when configured), a shallow git clone, and finally the zip archive that the
code host exports for the default branch.
"""

import shutil
import subprocess
import zipfile
from pathlib import Path
from typing import List, Optional

import requests

from .config import logger
from .exit_codes import AcquisitionCause, AcquisitionError
from .utils import CommandProbe, run_command

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _reset_directory(path: Path):
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def _remove_path(path: Path):
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists():
        path.unlink()


def _copy_contents(source: Path, destination: Path):
    destination.mkdir(parents=True, exist_ok=True)
    for item in source.iterdir():
        target = destination / item.name
        if item.is_dir():
            shutil.copytree(item, target, dirs_exist_ok=True)
        else:
            shutil.copy2(item, target)


class LocalTemplateStrategy:
    """Copies a template that already exists on disk."""

    name = "local"

    def __init__(self, path):
        self.path = Path(path).expanduser() if path else None

    def is_available(self) -> bool:
        return self.path is not None and self.path.is_dir()

    def acquire(self, destination: Path):
        logger.info(f"Using local template at {self.path}")
        try:
            _copy_contents(self.path, destination)
        except OSError as e:
            raise AcquisitionError(
                f"Failed to copy local template {self.path}: {e}",
                AcquisitionCause.EXTRACT_FAILED,
            ) from e


class GitCloneStrategy:
    """Shallow clone of the template repository."""

    name = "git"

    def __init__(self, url, probe: Optional[CommandProbe] = None, git="git"):
        self.url = url
        self.probe = probe or CommandProbe()
        self.git = git

    def is_available(self) -> bool:
        return self.probe.is_available(self.git)

    def acquire(self, destination: Path):
        logger.info(f"Cloning {self.url}...")
        try:
            run_command(
                [self.git, "clone", "--depth", "1", self.url, str(destination)],
                capture_output=True,
                log_stderr=False,
            )
        except (subprocess.CalledProcessError, OSError) as e:
            stderr = getattr(e, "stderr", None)
            detail = stderr.strip() if stderr else str(e)
            raise AcquisitionError(f"git clone of {self.url} failed: {detail}", AcquisitionCause.CLONE_FAILED) from e


class ArchiveDownloadStrategy:
    """
    Downloads and unpacks a zip export of the template.

    The archive is saved next to the destination as `<destination>.zip` and
    unpacked into `<destination>_extract`; both are removed afterwards whether
    or not the extraction worked. Code hosts wrap the export in a single
    top-level directory, which is unwrapped when present.
    """

    name = "archive"

    def __init__(self, url, session: Optional[requests.Session] = None, timeout=60,
                 user_agent="MiniFramework-Installer/1.0", verify_ssl=True):
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent
        self.verify_ssl = verify_ssl

    def is_available(self) -> bool:
        return True

    def acquire(self, destination: Path):
        archive_path = Path(f"{destination}.zip")
        extract_dir = Path(f"{destination}_extract")
        try:
            self.download(archive_path)
            self.extract(archive_path, extract_dir, destination)
        finally:
            _remove_path(archive_path)
            _remove_path(extract_dir)

    def download(self, archive_path: Path):
        logger.info(f"Downloading {self.url}...")
        try:
            with self.session.get(
                self.url,
                stream=True,
                timeout=self.timeout,
                allow_redirects=True,
                headers={"User-Agent": self.user_agent},
                verify=self.verify_ssl,
            ) as response:
                if response.status_code != 200:
                    raise AcquisitionError(
                        f"Failed to download framework from {self.url} (HTTP {response.status_code})",
                        AcquisitionCause.DOWNLOAD_FAILED,
                    )
                size = 0
                with open(archive_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            size += len(chunk)
        except requests.exceptions.RequestException as e:
            raise AcquisitionError(
                f"Failed to download framework from {self.url}: {e}", AcquisitionCause.DOWNLOAD_FAILED
            ) from e
        except OSError as e:
            raise AcquisitionError(
                f"Failed to save archive to {archive_path}: {e}", AcquisitionCause.DOWNLOAD_FAILED
            ) from e

        if size == 0:
            raise AcquisitionError(
                f"Downloaded archive from {self.url} is empty", AcquisitionCause.DOWNLOAD_FAILED
            )
        logger.debug(f"Downloaded {size} bytes to {archive_path}")

    def extract(self, archive_path: Path, extract_dir: Path, destination: Path):
        try:
            extract_dir.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive_path, "r") as zip_ref:
                zip_ref.extractall(extract_dir)

            extracted_items = list(extract_dir.iterdir())
            source_dir = extract_dir
            if len(extracted_items) == 1 and extracted_items[0].is_dir():
                # Export wrapped in <repo>-<branch>/, move its contents up one level
                source_dir = extracted_items[0]
                logger.debug(f"Unwrapping archive root {source_dir.name}")
            _copy_contents(source_dir, destination)
        except (zipfile.BadZipFile, OSError) as e:
            raise AcquisitionError(f"Failed to extract {archive_path}: {e}", AcquisitionCause.EXTRACT_FAILED) from e


class TemplateSource:
    """
    Tries each acquisition strategy in order until one succeeds.

    The destination is emptied before every attempt, so a fallback never sees
    leftovers of the attempt before it.
    """

    def __init__(self, strategies: List):
        self.strategies = list(strategies)

    def resolve(self, destination) -> str:
        """
        Fills `destination` with the template.

        Returns:
            str: The name of the strategy that succeeded.

        Raises:
            AcquisitionError: The last failure when every available strategy
                failed, or NO_METHOD_AVAILABLE when none could be tried.
        """
        destination = Path(destination)
        last_error = None
        for strategy in self.strategies:
            if not strategy.is_available():
                logger.debug(f"Acquisition method '{strategy.name}' not available, skipping")
                continue
            try:
                _reset_directory(destination)
                strategy.acquire(destination)
            except AcquisitionError as e:
                logger.warning(f"{e} ({e.cause.value}), trying next method...")
                last_error = e
                continue
            logger.info(f"Framework downloaded successfully ({strategy.name})")
            return strategy.name

        if last_error is not None:
            raise last_error
        raise AcquisitionError(
            "No way to download the framework: git is not available and no archive URL is configured",
            AcquisitionCause.NO_METHOD_AVAILABLE,
        )


def build_template_source(config, probe: Optional[CommandProbe] = None,
                          session: Optional[requests.Session] = None) -> TemplateSource:
    """Builds the strategy list from the `template`, `network` and `tools` config sections."""
    template = config.get("template", {})
    network = config.get("network", {})
    tools = config.get("tools", {})

    strategies = []
    if template.get("local_path"):
        strategies.append(LocalTemplateStrategy(template["local_path"]))
    if template.get("git_url"):
        strategies.append(GitCloneStrategy(template["git_url"], probe=probe, git=tools.get("git", "git")))
    if template.get("archive_url"):
        strategies.append(ArchiveDownloadStrategy(
            template["archive_url"],
            session=session,
            timeout=network.get("timeout_seconds", 60),
            user_agent=network.get("user_agent", "MiniFramework-Installer/1.0"),
            verify_ssl=network.get("verify_ssl", True),
        ))
    return TemplateSource(strategies)


def resolve(git_url, archive_url, destination, probe: Optional[CommandProbe] = None,
            session: Optional[requests.Session] = None) -> str:
    """Fetches the template with a git clone, falling back to the archive download."""
    strategies = []
    if git_url:
        strategies.append(GitCloneStrategy(git_url, probe=probe))
    if archive_url:
        strategies.append(ArchiveDownloadStrategy(archive_url, session=session))
    return TemplateSource(strategies).resolve(destination)
