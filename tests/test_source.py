"""
Unit tests for mfinstaller.source module
"""
import io
import subprocess
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from mfinstaller.config import get_default_config
from mfinstaller.exit_codes import AcquisitionCause, AcquisitionError
from mfinstaller.source import (
    ArchiveDownloadStrategy,
    GitCloneStrategy,
    LocalTemplateStrategy,
    TemplateSource,
    build_template_source,
    resolve,
)
from mfinstaller.utils import ToolStatus
from tests.conftest import FakeProbe

ARCHIVE_URL = "https://example.test/archive/main.zip"
GIT_URL = "https://example.test/framework.git"


def make_zip(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def make_session(status_code=200, body=b"", error=None):
    response = MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = [body[i:i + 1024] for i in range(0, len(body), 1024)]
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return session


class StubStrategy:

    def __init__(self, name, available=True, error=None, files=None):
        self.name = name
        self.available = available
        self.error = error
        self.files = files or {}
        self.calls = 0
        self.seen = None

    def is_available(self):
        return self.available

    def acquire(self, destination):
        self.calls += 1
        self.seen = sorted(p.name for p in Path(destination).iterdir())
        for name, content in self.files.items():
            (Path(destination) / name).write_text(content)
        if self.error:
            raise self.error


class TestArchiveDownloadStrategy:

    def test_wrapped_archive_is_unwrapped(self, tmp_path):
        body = make_zip({
            "mini-php-framework-main/composer.json": "{}",
            "mini-php-framework-main/src/Kernel.php": "<?php\n",
        })
        destination = tmp_path / "ws"
        destination.mkdir()

        ArchiveDownloadStrategy(ARCHIVE_URL, session=make_session(body=body)).acquire(destination)

        assert (destination / "composer.json").read_text() == "{}"
        assert (destination / "src/Kernel.php").is_file()
        assert not (destination / "mini-php-framework-main").exists()

    def test_flat_archive_is_copied(self, tmp_path):
        body = make_zip({"composer.json": "{}", "src/Kernel.php": "<?php\n"})
        destination = tmp_path / "ws"
        destination.mkdir()

        ArchiveDownloadStrategy(ARCHIVE_URL, session=make_session(body=body)).acquire(destination)

        assert (destination / "composer.json").is_file()
        assert (destination / "src/Kernel.php").is_file()

    def test_scratch_files_are_removed(self, tmp_path):
        body = make_zip({"repo-main/composer.json": "{}"})
        destination = tmp_path / "ws"
        destination.mkdir()

        ArchiveDownloadStrategy(ARCHIVE_URL, session=make_session(body=body)).acquire(destination)

        assert sorted(p.name for p in tmp_path.iterdir()) == ["ws"]

    def test_request_headers(self, tmp_path):
        session = make_session(body=make_zip({"a.txt": "a"}))
        destination = tmp_path / "ws"
        destination.mkdir()

        ArchiveDownloadStrategy(ARCHIVE_URL, session=session, timeout=5, user_agent="UA/1").acquire(destination)

        args, kwargs = session.get.call_args
        assert args[0] == ARCHIVE_URL
        assert kwargs["headers"] == {"User-Agent": "UA/1"}
        assert kwargs["timeout"] == 5
        assert kwargs["allow_redirects"] is True

    def test_http_error(self, tmp_path):
        strategy = ArchiveDownloadStrategy(ARCHIVE_URL, session=make_session(status_code=404, body=b"nope"))
        with pytest.raises(AcquisitionError) as exc_info:
            strategy.acquire(tmp_path / "ws")
        assert exc_info.value.cause is AcquisitionCause.DOWNLOAD_FAILED
        assert not Path(f"{tmp_path / 'ws'}.zip").exists()

    def test_empty_body(self, tmp_path):
        strategy = ArchiveDownloadStrategy(ARCHIVE_URL, session=make_session(body=b""))
        with pytest.raises(AcquisitionError) as exc_info:
            strategy.acquire(tmp_path / "ws")
        assert exc_info.value.cause is AcquisitionCause.DOWNLOAD_FAILED

    def test_network_error(self, tmp_path):
        session = make_session(error=requests.exceptions.ConnectionError("offline"))
        with pytest.raises(AcquisitionError) as exc_info:
            ArchiveDownloadStrategy(ARCHIVE_URL, session=session).acquire(tmp_path / "ws")
        assert exc_info.value.cause is AcquisitionCause.DOWNLOAD_FAILED

    def test_corrupt_archive(self, tmp_path):
        destination = tmp_path / "ws"
        destination.mkdir()
        strategy = ArchiveDownloadStrategy(ARCHIVE_URL, session=make_session(body=b"not a zip file"))

        with pytest.raises(AcquisitionError) as exc_info:
            strategy.acquire(destination)

        assert exc_info.value.cause is AcquisitionCause.EXTRACT_FAILED
        assert sorted(p.name for p in tmp_path.iterdir()) == ["ws"]


class TestGitCloneStrategy:

    def test_availability_comes_from_probe(self):
        assert GitCloneStrategy(GIT_URL, probe=FakeProbe(git=ToolStatus.AVAILABLE)).is_available()
        assert not GitCloneStrategy(GIT_URL, probe=FakeProbe(git=ToolStatus.INDETERMINATE)).is_available()

    @patch("mfinstaller.source.run_command")
    def test_shallow_clone(self, mock_run_command, tmp_path):
        GitCloneStrategy(GIT_URL, probe=FakeProbe()).acquire(tmp_path)

        command = mock_run_command.call_args[0][0]
        assert command == ["git", "clone", "--depth", "1", GIT_URL, str(tmp_path)]

    @patch("mfinstaller.source.run_command")
    def test_clone_failure(self, mock_run_command, tmp_path):
        mock_run_command.side_effect = subprocess.CalledProcessError(128, "git", stderr="fatal: repository not found")

        with pytest.raises(AcquisitionError) as exc_info:
            GitCloneStrategy(GIT_URL, probe=FakeProbe()).acquire(tmp_path)

        assert exc_info.value.cause is AcquisitionCause.CLONE_FAILED
        assert "repository not found" in str(exc_info.value)


class TestLocalTemplateStrategy:

    def test_copies_directory(self, template_dir, tmp_path):
        destination = tmp_path / "ws"
        destination.mkdir()
        LocalTemplateStrategy(template_dir).acquire(destination)
        assert (destination / "composer.json").is_file()
        assert (destination / "src/Service/Greeter.php").is_file()

    def test_missing_path_is_unavailable(self, tmp_path):
        assert not LocalTemplateStrategy(tmp_path / "missing").is_available()
        assert not LocalTemplateStrategy("").is_available()


class TestTemplateSource:

    def test_first_success_wins(self, tmp_path):
        first = StubStrategy("git", files={"a": "1"})
        second = StubStrategy("archive")

        assert TemplateSource([first, second]).resolve(tmp_path / "ws") == "git"
        assert second.calls == 0

    def test_fallback_starts_from_clean_directory(self, tmp_path):
        failing = StubStrategy(
            "git",
            files={"partial.txt": "half"},
            error=AcquisitionError("clone broke", AcquisitionCause.CLONE_FAILED),
        )
        fallback = StubStrategy("archive", files={"composer.json": "{}"})

        assert TemplateSource([failing, fallback]).resolve(tmp_path / "ws") == "archive"
        assert fallback.seen == []
        assert sorted(p.name for p in (tmp_path / "ws").iterdir()) == ["composer.json"]

    def test_unavailable_strategies_are_skipped(self, tmp_path):
        skipped = StubStrategy("git", available=False)
        used = StubStrategy("archive")

        assert TemplateSource([skipped, used]).resolve(tmp_path / "ws") == "archive"
        assert skipped.calls == 0

    def test_last_error_is_raised(self, tmp_path):
        strategies = [
            StubStrategy("git", error=AcquisitionError("clone", AcquisitionCause.CLONE_FAILED)),
            StubStrategy("archive", error=AcquisitionError("download", AcquisitionCause.DOWNLOAD_FAILED)),
        ]
        with pytest.raises(AcquisitionError) as exc_info:
            TemplateSource(strategies).resolve(tmp_path / "ws")
        assert exc_info.value.cause is AcquisitionCause.DOWNLOAD_FAILED

    def test_no_method_available(self, tmp_path):
        with pytest.raises(AcquisitionError) as exc_info:
            TemplateSource([StubStrategy("git", available=False)]).resolve(tmp_path / "ws")
        assert exc_info.value.cause is AcquisitionCause.NO_METHOD_AVAILABLE

    @patch("mfinstaller.source.run_command")
    def test_resolve_falls_back_to_archive(self, mock_run_command, tmp_path):
        mock_run_command.side_effect = subprocess.CalledProcessError(128, "git")
        session = make_session(body=make_zip({"repo-main/composer.json": "{}"}))
        destination = tmp_path / "ws"

        used = resolve(GIT_URL, ARCHIVE_URL, destination,
                       probe=FakeProbe(git=ToolStatus.AVAILABLE), session=session)

        assert used == "archive"
        assert (destination / "composer.json").is_file()


class TestBuildTemplateSource:

    def test_default_order(self):
        source = build_template_source(get_default_config(), probe=FakeProbe(), session=MagicMock())
        assert [s.name for s in source.strategies] == ["git", "archive"]

    def test_local_path_goes_first(self, template_dir):
        config = get_default_config()
        config["template"]["local_path"] = str(template_dir)
        source = build_template_source(config, probe=FakeProbe(), session=MagicMock())
        assert [s.name for s in source.strategies] == ["local", "git", "archive"]

    def test_network_settings_are_passed(self):
        config = get_default_config()
        config["network"]["timeout_seconds"] = 7
        source = build_template_source(config, probe=FakeProbe(), session=MagicMock())
        archive = source.strategies[-1]
        assert archive.timeout == 7
        assert archive.user_agent == "MiniFramework-Installer/1.0"
