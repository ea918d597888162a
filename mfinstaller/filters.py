"""
Path exclusion rules applied while copying the template tree.
"""

import fnmatch
from dataclasses import dataclass
from typing import Iterable, Tuple


def normalize_path(relative_path) -> str:
    """Returns `relative_path` as a string with forward slashes."""
    return str(relative_path).replace("\\", "/")


def is_excluded(relative_path, rules: Iterable[str]) -> bool:
    """
    Checks a template-relative path against the exclusion rules.

    A rule matches when the path starts with it, when the path followed by a
    slash starts with it (so "logs/" also matches the directory "logs"), or
    when the rule glob-matches the path. Matching is case-sensitive.

    The prefix checks have no separator boundary: ".env" also excludes
    ".env.example" and "composer.lock" also excludes "composer.lock.bak".
    Existing rule lists rely on this, so it is kept as is.
    """
    path = normalize_path(relative_path)
    for rule in rules:
        if path.startswith(rule) or (path + "/").startswith(rule) or fnmatch.fnmatchcase(path, rule):
            return True
    return False


@dataclass(frozen=True)
class ExclusionRuleSet:
    """An ordered, immutable set of exclusion patterns."""

    rules: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config):
        return cls(tuple(config.get("template", {}).get("exclude", [])))

    def matches(self, relative_path) -> bool:
        return is_excluded(relative_path, self.rules)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self):
        return len(self.rules)
