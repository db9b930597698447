#!/usr/bin/env python3
"""
Classifier Rules - Compile a nested directory layout into flat rules

A layout is a list of directory entries loaded from YAML:

    - dir: bills
      keywords: [bill]
      sub:
        - dir: electric
          keywords: [kwh]

Every entry becomes one ClassifierRule whose destination is the full
relative path (bills/electric) and whose keywords include every keyword
inherited from its parents (bill, kwh).

Key components:
- ClassifierRule: A compiled destination path with its required keywords
- compile_rules: Depth-first, pre-order flattening of the layout
- ConfigError and subclasses: Raised on the first malformed entry
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath

logger = logging.getLogger("ddc.rules")

DIR_KEY = "dir"
KEYWORDS_KEY = "keywords"
SUB_KEY = "sub"


# ==============================================================================
# ERRORS
# ==============================================================================

class ConfigError(ValueError):
    """Base class for malformed layout configuration."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


class MissingFieldError(ConfigError):
    """A directory entry is missing a required key."""

    def __init__(self, field: str, path: Path | None = None):
        location = f" (under '{path}')" if path and str(path) != "." else ""
        super().__init__(f"No '{field}' key found{location}", path)
        self.field = field


class InvalidKeywordsError(ConfigError):
    """The 'keywords' value is not a list of strings."""


class InvalidChildrenError(ConfigError):
    """The 'sub' value is not a list of directory entries."""


class InvalidNodeError(ConfigError):
    """A directory entry is not a mapping or has an unusable 'dir' value."""


# ==============================================================================
# RULES
# ==============================================================================

@dataclass(frozen=True)
class ClassifierRule:
    """A destination directory and every keyword a document must contain."""

    destination: Path
    keywords: tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"(path: {self.destination}, keywords: {list(self.keywords)})"


def _is_list(value) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _is_empty(value) -> bool:
    # "keywords:", "keywords: ~" and "keywords: ''" all mean no keywords
    return value is None or value == ""


def _dir_name(entry: Mapping, parent: Path) -> str:
    """Return the validated 'dir' value of an entry."""
    if DIR_KEY not in entry:
        raise MissingFieldError(DIR_KEY, parent)

    name = entry[DIR_KEY]
    if not isinstance(name, str) or not name.strip():
        raise InvalidNodeError(
            f"'{DIR_KEY}' must be a non-empty string, got {name!r} under '{parent}'",
            parent,
        )

    # Destinations stay relative to the output directory
    parts = name.replace("\\", "/").split("/")
    if PurePath(name).anchor or name.startswith("/") or any(part in (".", "..") for part in parts):
        raise InvalidNodeError(
            f"'{DIR_KEY}' must be a relative directory name, got {name!r} under '{parent}'",
            parent,
        )
    return name


def _own_keywords(entry: Mapping, path: Path) -> list[str]:
    keywords = entry.get(KEYWORDS_KEY)
    if _is_empty(keywords):
        return []
    if not _is_list(keywords):
        raise InvalidKeywordsError(
            f"Unexpected keywords format for directory '{path}': expected a list of strings",
            path,
        )
    for word in keywords:
        if not isinstance(word, str) or not word:
            raise InvalidKeywordsError(
                f"Unexpected keyword {word!r} for directory '{path}': keywords must be non-empty strings",
                path,
            )
    return list(keywords)


def _merge_keywords(inherited: tuple[str, ...], own: list[str]) -> tuple[str, ...]:
    """Union of inherited and own keywords, first occurrence wins."""
    return tuple(dict.fromkeys((*inherited, *own)))


def _compile_entries(entries, parent: Path, inherited: tuple[str, ...]) -> list[ClassifierRule]:
    rules = []

    for entry in entries:
        if not isinstance(entry, Mapping):
            raise InvalidNodeError(
                f"Unexpected configuration file format under '{parent}'. Expected a hash map, got {type(entry).__name__}.",
                parent,
            )

        path = parent / _dir_name(entry, parent)
        keywords = _merge_keywords(inherited, _own_keywords(entry, path))
        rules.append(ClassifierRule(destination=path, keywords=keywords))

        children = entry.get(SUB_KEY)
        if _is_empty(children):
            continue
        if not _is_list(children):
            raise InvalidChildrenError(
                f"'{SUB_KEY}' element of '{path}' should be a list of directories",
                path,
            )
        rules.extend(_compile_entries(children, path, keywords))

    return rules


def compile_rules(layout) -> list[ClassifierRule]:
    """Flatten a layout tree into classifier rules.

    Rules come out in pre-order: each directory is followed by its
    subdirectories, siblings keep their configured order.

    Args:
        layout: List of directory entries (already parsed from YAML)

    Returns:
        One ClassifierRule per directory entry

    Raises:
        ConfigError: On the first malformed entry
    """
    if layout is None:
        return []
    if not _is_list(layout):
        raise InvalidChildrenError(
            "Unexpected configuration file format. Expected a list of directories.",
            Path("."),
        )

    rules = _compile_entries(layout, Path(), ())
    for rule in rules:
        logger.debug("Compiled rule %s", rule)
    return rules
