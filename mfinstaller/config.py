import copy
import json
import logging
import os
from pathlib import Path

import toml
from rich.console import Console
from rich.logging import RichHandler

# Initialize Rich Console
console = Console()

# Configure logging to use RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True)]
)

logger = logging.getLogger("rich")

ENV_PREFIX = "MFINSTALLER_"
CONFIG_FILENAME = ".mfinstallerrc"

FRAMEWORK_ARCHIVE_URL = "https://github.com/nastmz/mini-php-framework/archive/refs/heads/main.zip"
FRAMEWORK_GIT_URL = "https://github.com/nastmz/mini-php-framework.git"


def get_default_config():
    """
    Returns the built-in configuration.

    Every leaf in this structure can be overridden from the user config file
    or from an MFINSTALLER_<SECTION>_<KEY> environment variable.
    """
    return {
        "template": {
            "git_url": FRAMEWORK_GIT_URL,
            "archive_url": FRAMEWORK_ARCHIVE_URL,
            "local_path": "",
            "exclude": [
                ".git/",
                "node_modules/",
                "vendor/",
                "storage/cache/templates/",
                "storage/logs/",
                "logs/",
                "public/uploads/",
                "storage/uploads/",
                "storage/database/app.sqlite",
                "composer.lock",
                ".env",
                "installer/",
                "create-miniframework-project.php",
                "create-miniframework-project.ps1",
                "create-miniframework-project.bat",
                "GENERATOR_README.md",
                "USAGE_EXAMPLES.md",
            ],
            "directories": [
                "storage/cache/templates",
                "storage/logs",
                "storage/uploads",
                "storage/avatars",
                "public/uploads/avatars",
                "logs",
            ],
        },
        "project": {
            "vendor": "mycompany",
            "description": "A new project built with MiniFramework PHP",
            "placeholder_namespace": "App",
            "source_dir": "src",
            "source_extensions": ["php"],
            "manifest": "composer.json",
        },
        "network": {
            "timeout_seconds": 60,
            "user_agent": "MiniFramework-Installer/1.0",
            "verify_ssl": True,
        },
        "tools": {
            "git": "git",
            "composer": "composer",
        },
        "logging": {
            "level": "INFO",
        },
    }


def get_config_path():
    """Path of the JSON user config file."""
    return Path.home() / CONFIG_FILENAME


def merge_configs(base, override):
    """
    Recursively merges `override` into a copy of `base`.

    Nested dictionaries are merged key by key; any other value in `override`
    replaces the one in `base`.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _load_config_file():
    json_path = get_config_path()
    toml_path = json_path.with_name(CONFIG_FILENAME + ".toml")

    if json_path.exists():
        with open(json_path, "r", encoding="utf-8") as f:
            return json.load(f)
    if toml_path.exists():
        with open(toml_path, "r", encoding="utf-8") as f:
            return toml.load(f)
    return {}


def _coerce_env_value(raw, current):
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def _apply_env_overrides(config, path=()):
    for key, value in config.items():
        key_path = path + (key,)
        if isinstance(value, dict):
            _apply_env_overrides(value, key_path)
            continue
        env_name = ENV_PREFIX + "_".join(key_path).upper()
        if env_name in os.environ:
            try:
                config[key] = _coerce_env_value(os.environ[env_name], value)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {env_name}: {os.environ[env_name]!r}")


def load_config():
    """
    Loads the effective configuration.

    Defaults are merged with ~/.mfinstallerrc (JSON) or ~/.mfinstallerrc.toml,
    then environment variables are applied on top.

    Returns:
        dict: The merged configuration.
    """
    config = get_default_config()
    try:
        user_config = _load_config_file()
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read configuration file: {e}")
        user_config = {}

    if user_config:
        config = merge_configs(config, user_config)

    _apply_env_overrides(config)
    return config


def save_config(config, path=None):
    """Writes `config` as JSON to `path` (defaults to ~/.mfinstallerrc)."""
    config_path = Path(path) if path else get_config_path()
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    return config_path


def generate_config_example():
    """Writes the default configuration to ~/.mfinstallerrc.example."""
    example_path = get_config_path().with_name(CONFIG_FILENAME + ".example")
    save_config(get_default_config(), example_path)
    console.print(f"An example configuration file has been saved to {example_path}")
    return example_path
