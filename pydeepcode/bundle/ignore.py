"""Gitignore-style exclusion rules for bundle traversal.

Each ``.gitignore`` or ``.dcignore`` file becomes one :class:`ExclusionRule`
anchored to the directory that contains it. Rules are collected into an
:class:`ExclusionFilter` that is copied, never mutated, when a traversal
descends into a directory with its own ignore files.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from pathspec import GitIgnoreSpec

from ..exceptions import FileSystemError
from ..utils import FILE_ENCODING, read_file_bytes

logger = logging.getLogger(__name__)

GITIGNORE_FILE_NAME = ".gitignore"
DCIGNORE_FILE_NAME = ".dcignore"

IGNORE_FILE_NAMES = (GITIGNORE_FILE_NAME, DCIGNORE_FILE_NAME)

# Written by create_dcignore() when no pattern list is supplied
DEFAULT_DCIGNORE_PATTERNS = [
    ".git/",
    ".hg/",
    ".svn/",
    "node_modules/",
    "bower_components/",
    "__pycache__/",
    ".venv/",
    "venv/",
    ".tox/",
    "dist/",
    "build/",
    "target/",
    "*.min.js",
    "*.map",
    ".DS_Store",
]

CUSTOM_DCIGNORE_HEADER = [
    "# Write glob rules for ignored files.",
    "# Check examples on https://github.com/github/gitignore",
]

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ExclusionRule:
    """Patterns from one ignore file, anchored to its directory."""

    base_path: str
    """Directory the patterns are relative to"""

    patterns: tuple[str, ...]
    """Patterns in file order"""

    _spec: GitIgnoreSpec = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_spec", GitIgnoreSpec.from_lines(self.patterns))

    @classmethod
    def from_lines(cls, lines: Iterable[str], base_path: PathLike) -> "ExclusionRule":
        """Build a rule from ignore-file lines.

        Blank, whitespace-only and comment lines are dropped.

        Args:
            lines: Raw lines of an ignore file
            base_path: Directory the patterns are anchored to

        Returns:
            ExclusionRule instance
        """
        patterns = []
        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            patterns.append(stripped)
        return cls(base_path=str(base_path), patterns=tuple(patterns))

    @classmethod
    def from_file(cls, ignore_file: Path) -> "ExclusionRule":
        """Parse an ignore file anchored to its containing directory.

        Raises:
            FileSystemError: If the file cannot be read
        """
        content = read_file_bytes(ignore_file).decode(FILE_ENCODING, errors="replace")
        rule = cls.from_lines(content.splitlines(), ignore_file.parent)
        logger.debug(f"Loaded {len(rule.patterns)} patterns from {ignore_file}")
        return rule

    def matches(self, path: PathLike, is_dir: bool = False) -> bool:
        """Check whether a path is matched by any pattern of this rule.

        Args:
            path: Path to check, in the same form (absolute or relative)
                as base_path
            is_dir: Whether the path is a directory. Patterns ending in
                ``/`` only match the directory itself when this is set;
                paths below a matched directory always match.

        Returns:
            True if the path is excluded by this rule
        """
        if not self.patterns:
            return False
        try:
            relative = Path(path).relative_to(self.base_path).as_posix()
        except ValueError:
            return False
        if relative == ".":
            return False
        if is_dir:
            relative += "/"
        return self._spec.match_file(relative)


class ExclusionFilter:
    """Ordered collection of exclusion rules.

    Rules are immutable and shared between copies; only the list holding
    them is duplicated by :meth:`copy`.

    Examples:
        >>> root_filter = ExclusionFilter()
        >>> sub_filter = root_filter.copy()
        >>> sub_filter.add_exclusion_rule(
        ...     ExclusionRule.from_lines(["*.log"], "/repo/sub")
        ... )
        >>> sub_filter.excludes("/repo/sub/debug.log")
        True
        >>> root_filter.excludes("/repo/sub/debug.log")
        False
    """

    def __init__(self, rules: Optional[Iterable[ExclusionRule]] = None):
        self._rules: list[ExclusionRule] = list(rules or [])

    @property
    def rules(self) -> tuple[ExclusionRule, ...]:
        """Rules in insertion order."""
        return tuple(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"ExclusionFilter(rules={self._rules!r})"

    def copy(self) -> "ExclusionFilter":
        """Return a filter with an independent rule list."""
        return ExclusionFilter(self._rules)

    def add_exclusion_rule(self, rule: ExclusionRule) -> None:
        """Append a rule."""
        self._rules.append(rule)

    def excludes(self, path: PathLike, is_dir: bool = False) -> bool:
        """Check whether any rule matches the path."""
        return any(rule.matches(path, is_dir=is_dir) for rule in self._rules)


def is_ignore_file(name: str) -> bool:
    """Check whether a file name is one of the recognised ignore files."""
    return Path(name).name in IGNORE_FILE_NAMES


def load_ignore_rules(directory: Path, names: Iterable[str]) -> list[ExclusionRule]:
    """Parse the ignore files found in a directory listing.

    Args:
        directory: Directory that was listed
        names: Entry names of the listing

    Returns:
        One rule per ignore file, in IGNORE_FILE_NAMES order. Entries with
        an ignore-file name that are not regular files are skipped.

    Raises:
        FileSystemError: If an ignore file cannot be read
    """
    present = set(names)
    rules = []
    for name in IGNORE_FILE_NAMES:
        ignore_file = directory / name
        if name in present and ignore_file.is_file():
            rules.append(ExclusionRule.from_file(ignore_file))
    return rules


def create_dcignore(
    directory: Path,
    custom: bool = False,
    default_patterns: Optional[list[str]] = None,
    overwrite: bool = False,
) -> Path:
    """Write a .dcignore file into a directory.

    Args:
        directory: Directory to create the file in
        custom: Write a commented template instead of the default patterns
        default_patterns: Patterns to use instead of DEFAULT_DCIGNORE_PATTERNS
        overwrite: Replace an existing .dcignore

    Returns:
        Path of the written file

    Raises:
        FileSystemError: If the file exists (and overwrite is False) or
            cannot be written
    """
    target = directory / DCIGNORE_FILE_NAME
    if target.exists() and not overwrite:
        raise FileSystemError(f"{target} already exists", str(target))

    if custom:
        lines = CUSTOM_DCIGNORE_HEADER
    elif default_patterns is not None:
        lines = default_patterns
    else:
        lines = DEFAULT_DCIGNORE_PATTERNS

    try:
        target.write_text("\n".join(lines) + "\n", encoding=FILE_ENCODING)
    except OSError as e:
        raise FileSystemError(f"Cannot write {target}: {e}", str(target)) from e
    logger.debug(f"Created {target}")
    return target
