"""Tests for exclusion rules and filters."""

from pathlib import Path

import pytest

from pydeepcode.bundle.ignore import (
    CUSTOM_DCIGNORE_HEADER,
    DCIGNORE_FILE_NAME,
    DEFAULT_DCIGNORE_PATTERNS,
    ExclusionFilter,
    ExclusionRule,
    create_dcignore,
    is_ignore_file,
    load_ignore_rules,
)
from pydeepcode.exceptions import FileSystemError


class TestExclusionRule:
    """Tests for ExclusionRule parsing and matching."""

    def test_blank_and_comment_lines_are_dropped(self):
        """Only real patterns are stored."""
        rule = ExclusionRule.from_lines(
            ["*.log", "", "   ", "# a comment", "  build/  ", "\t"], "/repo"
        )
        assert rule.patterns == ("*.log", "build/")
        assert rule.base_path == "/repo"

    def test_wildcard_matches_at_any_depth(self):
        """A pattern without slash matches in every subdirectory."""
        rule = ExclusionRule.from_lines(["*.log"], "/repo")
        assert rule.matches("/repo/debug.log") is True
        assert rule.matches("/repo/a/b/debug.log") is True
        assert rule.matches("/repo/debug.txt") is False

    def test_trailing_slash_matches_directory_and_contents(self):
        """A directory pattern matches the directory and everything below it."""
        rule = ExclusionRule.from_lines(["build/"], "/repo")
        assert rule.matches("/repo/build", is_dir=True) is True
        assert rule.matches("/repo/build/out.txt") is True
        assert rule.matches("/repo/build/deep/out.txt") is True

    def test_trailing_slash_does_not_match_file(self):
        """A directory pattern does not match a plain file of that name."""
        rule = ExclusionRule.from_lines(["build/"], "/repo")
        assert rule.matches("/repo/build", is_dir=False) is False

    def test_anchored_pattern(self):
        """A leading slash anchors the pattern to the rule's directory."""
        rule = ExclusionRule.from_lines(["/config.ini"], "/repo")
        assert rule.matches("/repo/config.ini") is True
        assert rule.matches("/repo/sub/config.ini") is False

    def test_paths_outside_base_never_match(self):
        """Rules only apply below the directory they come from."""
        rule = ExclusionRule.from_lines(["*.log"], "/repo/sub")
        assert rule.matches("/repo/sub/x.log") is True
        assert rule.matches("/repo/x.log") is False
        assert rule.matches("/elsewhere/x.log") is False

    def test_base_path_itself_is_not_matched(self):
        """The owning directory is never excluded by its own rule."""
        rule = ExclusionRule.from_lines(["*"], "/repo")
        assert rule.matches("/repo", is_dir=True) is False

    def test_empty_rule_matches_nothing(self):
        """A rule without patterns never matches."""
        rule = ExclusionRule.from_lines(["", "# only comments"], "/repo")
        assert rule.patterns == ()
        assert rule.matches("/repo/anything.txt") is False

    def test_rule_is_immutable(self):
        """Rules cannot be changed after construction."""
        rule = ExclusionRule.from_lines(["*.log"], "/repo")
        with pytest.raises(AttributeError):
            rule.patterns = ("*.txt",)

    def test_from_file(self, tmp_path):
        """Rules read from a file are anchored to the file's directory."""
        ignore_file = tmp_path / ".gitignore"
        ignore_file.write_text("# generated\n*.pyc\n\nnode_modules/\n")

        rule = ExclusionRule.from_file(ignore_file)

        assert rule.base_path == str(tmp_path)
        assert rule.patterns == ("*.pyc", "node_modules/")
        assert rule.matches(tmp_path / "pkg" / "mod.pyc") is True

    def test_from_file_handles_crlf(self, tmp_path):
        """Windows line endings are stripped from patterns."""
        ignore_file = tmp_path / ".dcignore"
        ignore_file.write_bytes(b"*.tmp\r\ncache/\r\n")

        rule = ExclusionRule.from_file(ignore_file)

        assert rule.patterns == ("*.tmp", "cache/")

    def test_from_missing_file_raises(self, tmp_path):
        """An unreadable ignore file raises FileSystemError."""
        with pytest.raises(FileSystemError):
            ExclusionRule.from_file(tmp_path / ".gitignore")


class TestExclusionFilter:
    """Tests for ExclusionFilter composition."""

    def test_empty_filter_excludes_nothing(self):
        """A new filter has no rules."""
        exclusion_filter = ExclusionFilter()
        assert len(exclusion_filter) == 0
        assert exclusion_filter.excludes("/repo/a.txt") is False

    def test_excludes_when_any_rule_matches(self):
        """The filter excludes what any of its rules matches."""
        exclusion_filter = ExclusionFilter(
            [
                ExclusionRule.from_lines(["*.log"], "/repo"),
                ExclusionRule.from_lines(["secret.txt"], "/repo/sub"),
            ]
        )
        assert exclusion_filter.excludes("/repo/x.log") is True
        assert exclusion_filter.excludes("/repo/sub/secret.txt") is True
        assert exclusion_filter.excludes("/repo/secret.txt") is False

    def test_copy_isolation(self):
        """Adding a rule to a copy never changes the original."""
        original = ExclusionFilter([ExclusionRule.from_lines(["*.log"], "/repo")])
        paths = ["/repo/a.log", "/repo/a.txt", "/repo/sub/b.tmp", "/repo/c.tmp"]
        before = [original.excludes(p) for p in paths]

        derived = original.copy()
        derived.add_exclusion_rule(ExclusionRule.from_lines(["*.tmp"], "/repo"))

        assert [original.excludes(p) for p in paths] == before
        assert len(original) == 1
        assert len(derived) == 2
        assert derived.excludes("/repo/c.tmp") is True
        assert original.excludes("/repo/c.tmp") is False

    def test_copy_shares_rules(self):
        """Copies hold the same immutable rule objects."""
        rule = ExclusionRule.from_lines(["*.log"], "/repo")
        original = ExclusionFilter([rule])
        assert original.copy().rules[0] is rule

    def test_copy_and_add_is_monotonic(self):
        """A derived filter excludes a superset of the original."""
        original = ExclusionFilter([ExclusionRule.from_lines(["*.log"], "/repo")])
        derived = original.copy()
        derived.add_exclusion_rule(ExclusionRule.from_lines(["!keep.log"], "/repo"))

        for path in ["/repo/a.log", "/repo/keep.log", "/repo/a.txt"]:
            if original.excludes(path):
                assert derived.excludes(path) is True

    def test_rules_property_is_read_only_snapshot(self):
        """The rules tuple does not expose the internal list."""
        exclusion_filter = ExclusionFilter()
        rules = exclusion_filter.rules
        exclusion_filter.add_exclusion_rule(ExclusionRule.from_lines(["x"], "/repo"))
        assert rules == ()
        assert len(exclusion_filter.rules) == 1


class TestIgnoreFiles:
    """Tests for ignore-file helpers."""

    def test_is_ignore_file(self):
        """Both ignore file names are recognised, with or without a path."""
        assert is_ignore_file(".gitignore") is True
        assert is_ignore_file(".dcignore") is True
        assert is_ignore_file("src/.dcignore") is True
        assert is_ignore_file("gitignore") is False
        assert is_ignore_file("main.py") is False

    def test_load_ignore_rules_from_listing(self, tmp_path):
        """One rule is loaded per ignore file present in the listing."""
        (tmp_path / ".gitignore").write_text("*.log\n")
        (tmp_path / ".dcignore").write_text("*.tmp\n")

        rules = load_ignore_rules(tmp_path, [".dcignore", "a.txt", ".gitignore"])

        assert [rule.patterns for rule in rules] == [("*.log",), ("*.tmp",)]

    def test_load_ignore_rules_skips_directories(self, tmp_path):
        """An entry with an ignore-file name that is a directory is skipped."""
        (tmp_path / ".gitignore").mkdir()
        (tmp_path / ".dcignore").write_text("*.tmp\n")

        rules = load_ignore_rules(tmp_path, [".gitignore", ".dcignore"])

        assert [rule.patterns for rule in rules] == [("*.tmp",)]

    def test_load_ignore_rules_without_ignore_files(self, tmp_path):
        """No rules are produced for a listing without ignore files."""
        assert load_ignore_rules(tmp_path, ["a.txt", "b.py"]) == []


class TestCreateDcignore:
    """Tests for create_dcignore."""

    def test_default_patterns(self, tmp_path):
        """The default pattern list is written."""
        target = create_dcignore(tmp_path)

        assert target == tmp_path / DCIGNORE_FILE_NAME
        assert target.read_text().splitlines() == DEFAULT_DCIGNORE_PATTERNS

    def test_custom_template(self, tmp_path):
        """The custom template only contains comments."""
        target = create_dcignore(tmp_path, custom=True)

        assert target.read_text().splitlines() == CUSTOM_DCIGNORE_HEADER
        assert ExclusionRule.from_file(target).patterns == ()

    def test_explicit_patterns(self, tmp_path):
        """Caller-supplied patterns replace the defaults."""
        target = create_dcignore(tmp_path, default_patterns=["*.bak"])
        assert target.read_text() == "*.bak\n"

    def test_existing_file_is_kept(self, tmp_path):
        """An existing .dcignore is not overwritten without overwrite=True."""
        existing = tmp_path / DCIGNORE_FILE_NAME
        existing.write_text("mine\n")

        with pytest.raises(FileSystemError, match="already exists"):
            create_dcignore(tmp_path)
        assert existing.read_text() == "mine\n"

        create_dcignore(tmp_path, overwrite=True)
        assert existing.read_text() != "mine\n"

    def test_missing_directory_raises(self, tmp_path):
        """Writing into a missing directory raises FileSystemError."""
        with pytest.raises(FileSystemError):
            create_dcignore(Path(tmp_path / "missing"))
