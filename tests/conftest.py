import json
import os
import tempfile

import pytest
from pyfakefs.fake_filesystem_unittest import Patcher

from mfinstaller.utils import ToolStatus

COMPOSER_JSON = {
    "name": "nastmz/mini-php-framework",
    "description": "A modern PHP micro-framework",
    "type": "project",
    "require": {"php": ">=8.1"},
    "autoload": {"psr-4": {"App\\": "src/"}},
    "scripts": {
        "create:project": "php create-miniframework-project.php",
        "test": "phpunit",
    },
}

HOME_CONTROLLER = (
    "<?php\n\n"
    "namespace App\\Controller;\n\n"
    "use App\\Service\\Greeter;\n"
    "use Psr\\Http\\Message\\ResponseInterface;\n\n"
    "class HomeController\n{\n"
    "    private string $name = 'App';\n"
    "}\n"
)

GREETER = (
    "<?php\n\n"
    "namespace App\\Service;\n\n"
    "use App\\Support\\Str;\n"
    "use App\\Support\\Arr;\n\n"
    "class Greeter {}\n"
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff\xfe\x00"


@pytest.fixture
def fs():
    with Patcher() as patcher:
        yield patcher.fs


class FakeProbe:
    """Capability probe answering from a fixed table instead of running tools."""

    def __init__(self, **statuses):
        self.statuses = statuses
        self.checked = []

    def check(self, tool):
        self.checked.append(tool)
        return self.statuses.get(tool, ToolStatus.UNAVAILABLE)

    def is_available(self, tool):
        return self.check(tool) is ToolStatus.AVAILABLE


@pytest.fixture
def fake_probe():
    return FakeProbe()


def write_file(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def template_dir(tmp_path):
    """A small copy of the framework repository, including paths that must not be copied."""
    root = tmp_path / "template"
    files = {
        "composer.json": json.dumps(COMPOSER_JSON, indent=4),
        "src/Controller/HomeController.php": HOME_CONTROLLER,
        "src/Service/Greeter.php": GREETER,
        "src/views/home.html": "<p>namespace App\\Views</p>\n",
        "public/index.php": "<?php\nrequire __DIR__ . '/../vendor/autoload.php';\n",
        "public/logo.png": PNG_BYTES,
        "bin/console": "#!/usr/bin/env php\n<?php\n",
        "README.md": "# MiniFramework PHP\n",
        # excluded
        ".git/HEAD": "ref: refs/heads/main\n",
        "vendor/autoload.php": "<?php\n",
        "node_modules/pkg/index.js": "",
        "composer.lock": "{}",
        ".env": "APP_KEY=secret\n",
        "logs/app.log": "log line\n",
        "storage/logs/framework.log": "log line\n",
        "storage/database/app.sqlite": b"SQLite format 3\x00",
        "installer/install.php": "<?php\n",
        "create-miniframework-project.php": "<?php\n",
        "GENERATOR_README.md": "# generator\n",
    }
    for relative, content in files.items():
        write_file(root / relative, content)
    return root


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Points HOME at an empty directory and clears MFINSTALLER_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.startswith("MFINSTALLER_"):
            monkeypatch.delenv(key)
    return home


@pytest.fixture
def system_temp(tmp_path, monkeypatch):
    """Redirects tempfile's default directory so leftover workspaces can be counted."""
    root = tmp_path / "systemp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root
