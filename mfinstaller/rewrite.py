"""
Rewrites the copied template for the new project.

Two passes live here: literal token substitution across the PHP sources, and
regeneration of the composer.json manifest.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import logger
from .exit_codes import RewriteError, TemplateIOError

DEFAULT_SOURCE_EXTENSIONS = ("php",)
INSTALLER_SCRIPTS = ("create:project",)


@dataclass(frozen=True)
class SubstitutionRule:
    token: str
    replacement: str

    def apply(self, text: str) -> str:
        return text.replace(self.token, self.replacement)


def namespace_rules(placeholder: str, namespace: str) -> List[SubstitutionRule]:
    """Rules moving `namespace X\\` and `use X\\` statements to the new root namespace."""
    return [
        SubstitutionRule(f"namespace {placeholder}\\", f"namespace {namespace}\\"),
        SubstitutionRule(f"use {placeholder}\\", f"use {namespace}\\"),
    ]


def apply_rules(text: str, substitutions: Iterable[SubstitutionRule]) -> str:
    for rule in substitutions:
        text = rule.apply(text)
    return text


@dataclass
class RewriteReport:
    rewritten: List[Path] = field(default_factory=list)
    unchanged: List[Path] = field(default_factory=list)
    failed: Optional[Path] = None

    @property
    def processed(self) -> int:
        return len(self.rewritten) + len(self.unchanged)


def _write_atomic(path: Path, content: str):
    # Write next to the target, then swap it in, so a failed write never leaves a truncated file
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(content)
        os.chmod(tmp_name, path.stat().st_mode & 0o7777)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _read_source(path: Path) -> str:
    # Line endings and non-UTF-8 bytes must survive the round trip unchanged
    return path.read_bytes().decode("utf-8", errors="surrogateescape")


def _is_source_file(path: Path, extensions: Sequence[str]) -> bool:
    return path.is_file() and path.suffix.lstrip(".") in extensions


def rewrite_tree(root, substitutions: Sequence[SubstitutionRule],
                 extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS) -> RewriteReport:
    """
    Applies `substitutions` in order to every source file under `root`.

    Every occurrence of each token is replaced. Files with other extensions
    are left alone. A missing `root` is not an error.

    Raises:
        RewriteError: On the first file that cannot be read or written. Files
            rewritten before it keep their new content; the error carries the
            report listing them.
    """
    root = Path(root)
    report = RewriteReport()
    if not root.is_dir():
        logger.debug(f"No source directory at {root}, skipping namespace rewrite")
        return report

    for path in sorted(root.rglob("*")):
        if not _is_source_file(path, extensions):
            continue
        try:
            original = _read_source(path)
            updated = apply_rules(original, substitutions)
            if updated == original:
                report.unchanged.append(path)
                continue
            _write_atomic(path, updated)
        except OSError as e:
            report.failed = path
            raise RewriteError(
                f"Failed to rewrite {path} after updating {len(report.rewritten)} file(s): {e}",
                path,
                report,
            ) from e
        report.rewritten.append(path)
        logger.debug(f"Rewrote {path}")

    return report


def update_manifest(target, package_name: str, namespace: str, description: str,
                    source_dir: str = "src", manifest: str = "composer.json") -> bool:
    """
    Rewrites the Composer manifest for the new project.

    Sets the package name, description and PSR-4 autoload root, and drops the
    scripts that only make sense inside the template repository. Key order is
    preserved so that repeated runs produce the same file.

    Returns:
        bool: False if the template has no manifest, True once it is rewritten.

    Raises:
        TemplateIOError: If the manifest cannot be read, parsed or written.
    """
    manifest_path = Path(target) / manifest
    if not manifest_path.exists():
        logger.warning(f"No {manifest} found in template, skipping manifest update")
        return False

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise TemplateIOError(f"Failed to read {manifest_path}: {e}", path=manifest_path) from e

    data["name"] = package_name
    data["description"] = description
    autoload = data.get("autoload")
    if not isinstance(autoload, dict):
        autoload = data["autoload"] = {}
    autoload["psr-4"] = {f"{namespace}\\": f"{source_dir.rstrip('/')}/"}

    scripts = data.get("scripts")
    if isinstance(scripts, dict):
        for script in INSTALLER_SCRIPTS:
            scripts.pop(script, None)
        if not scripts:
            del data["scripts"]

    try:
        _write_atomic(manifest_path, json.dumps(data, indent=4, ensure_ascii=False) + "\n")
    except OSError as e:
        raise TemplateIOError(f"Failed to write {manifest_path}: {e}", path=manifest_path) from e

    logger.debug(f"Updated {manifest_path}")
    return True
