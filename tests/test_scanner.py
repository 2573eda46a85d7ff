"""Tests for the DirectoryScanner class."""

import os
from unittest.mock import patch

import pytest

from pydeepcode.bundle import ignore
from pydeepcode.bundle.filters import ServerFilterList
from pydeepcode.bundle.ignore import ExclusionFilter, ExclusionRule
from pydeepcode.bundle.progress import FilesProgress
from pydeepcode.bundle.scanner import DirectoryScanner
from pydeepcode.exceptions import FileSystemError


@pytest.fixture
def workspace(tmp_path):
    """Create a workspace with ignore files at two levels.

    root/
        .gitignore      -> "*.log", "build/"
        a.txt
        b.log           (excluded by root)
        build/x.txt     (excluded by root)
        sub/
            .dcignore   -> "secret.txt"
            c.txt
            d.log       (excluded by root)
            secret.txt  (excluded by sub)
        other/
            secret.txt
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / ".gitignore").write_text("*.log\nbuild/\n")
    (root / "a.txt").write_text("a")
    (root / "b.log").write_text("b")
    (root / "build").mkdir()
    (root / "build" / "x.txt").write_text("x")
    (root / "sub").mkdir()
    (root / "sub" / ".dcignore").write_text("secret.txt\n\n   \n")
    (root / "sub" / "c.txt").write_text("c")
    (root / "sub" / "d.log").write_text("d")
    (root / "sub" / "secret.txt").write_text("s")
    (root / "other").mkdir()
    (root / "other" / "secret.txt").write_text("o")
    return root


class TestScan:
    """Tests for DirectoryScanner.scan()."""

    def test_counts_eligible_files(self, workspace):
        """Excluded files and directories are not counted."""
        result = DirectoryScanner().scan(workspace)
        # .gitignore, a.txt, sub/.dcignore, sub/c.txt, other/secret.txt
        assert result.count == 5

    def test_repeated_scans_are_identical(self, workspace):
        """Scanning an unchanged tree twice gives the same count."""
        scanner = DirectoryScanner()
        start = ExclusionFilter()
        assert scanner.scan(workspace, start).count == scanner.scan(
            workspace, start
        ).count

    def test_sibling_does_not_see_subdirectory_rules(self, workspace):
        """Rules of sub/.dcignore do not apply to other/."""
        files = DirectoryScanner().list_files(workspace)
        assert workspace / "other" / "secret.txt" in files
        assert workspace / "sub" / "secret.txt" not in files

    def test_ancestor_rules_apply_to_descendant_scan(self, workspace):
        """A descendant scanned with the ancestor's filter stays excluded."""
        root_result = DirectoryScanner().scan(workspace)

        sub_result = DirectoryScanner().scan(
            workspace / "sub", root_result.exclusion_filter
        )

        # d.log is excluded by the root .gitignore, secret.txt by sub/.dcignore
        assert sub_result.count == 2

    def test_descendant_scan_without_ancestor_filter(self, workspace):
        """Without the inherited filter only local rules apply."""
        result = DirectoryScanner().scan(workspace / "sub")
        # .dcignore, c.txt, d.log
        assert result.count == 3

    def test_no_ignore_files_returns_received_filter(self, workspace):
        """A directory without ignore files passes its filter through."""
        start = ExclusionFilter()
        result = DirectoryScanner().scan(workspace / "other", start)
        assert result.exclusion_filter is start

    def test_input_filter_is_not_modified(self, workspace):
        """Ignore files found during the scan never touch the caller's filter."""
        start = ExclusionFilter([ExclusionRule.from_lines(["*.md"], str(workspace))])

        result = DirectoryScanner().scan(workspace, start)

        assert len(start) == 1
        assert result.exclusion_filter is not start
        assert len(result.exclusion_filter) == 2

    def test_starting_filter_excludes(self, workspace):
        """Rules passed in by the caller are honoured."""
        start = ExclusionFilter(
            [ExclusionRule.from_lines(["other/"], str(workspace))]
        )
        assert DirectoryScanner().scan(workspace, start).count == 4

    def test_filter_derived_once_per_directory(self, workspace):
        """Ignore files are loaded once for each listed directory."""
        with patch(
            "pydeepcode.bundle.scanner.load_ignore_rules",
            wraps=ignore.load_ignore_rules,
        ) as mock_load:
            DirectoryScanner().scan(workspace)

        # root, sub and other; build/ is excluded and never listed
        assert mock_load.call_count == 3

    def test_ignore_file_name_used_by_directory(self, tmp_path):
        """A directory named like an ignore file does not hide its siblings."""
        (tmp_path / "sub" / ".gitignore").mkdir(parents=True)
        (tmp_path / "sub" / "keep1.py").write_text("1")
        (tmp_path / "sub" / "keep2.py").write_text("2")

        assert DirectoryScanner().scan(tmp_path).count == 2

    def test_unreadable_ignore_file_in_subdirectory_raises(self, workspace):
        """Ignore file read errors propagate instead of dropping the directory."""

        def failing_load(directory, names):
            if directory.name == "sub":
                raise FileSystemError(f"Cannot read {directory / '.dcignore'}")
            return ignore.load_ignore_rules(directory, names)

        with patch(
            "pydeepcode.bundle.scanner.load_ignore_rules", side_effect=failing_load
        ):
            with pytest.raises(FileSystemError, match="Cannot read"):
                DirectoryScanner().scan(workspace)

    def test_empty_directory(self, tmp_path):
        """An empty directory has no files."""
        assert DirectoryScanner().scan(tmp_path).count == 0

    def test_missing_folder_raises(self, tmp_path):
        """A folder that cannot be listed raises FileSystemError."""
        with pytest.raises(FileSystemError):
            DirectoryScanner().scan(tmp_path / "missing")

    def test_file_instead_of_folder_raises(self, tmp_path):
        """Scanning a file raises FileSystemError."""
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")
        with pytest.raises(FileSystemError):
            DirectoryScanner().scan(file_path)

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_cycle_is_visited_once(self, workspace):
        """A symlink pointing back to an ancestor does not loop."""
        try:
            os.symlink(workspace, workspace / "sub" / "loop")
        except OSError:
            pytest.skip("cannot create symlinks")

        assert DirectoryScanner().scan(workspace).count == 5

    def test_server_filter_limits_counted_files(self, workspace):
        """Only files accepted by the server filter list are counted."""
        server_filter = ServerFilterList(extensions=frozenset({".txt"}))
        result = DirectoryScanner(server_filter=server_filter).scan(workspace)
        # a.txt, sub/c.txt, other/secret.txt
        assert result.count == 3

    def test_progress_total_matches_count(self, workspace):
        """The progress tracker is told about every counted file."""
        progress = FilesProgress()
        result = DirectoryScanner(progress=progress).scan(workspace)
        assert progress.total == result.count
        assert progress.processed == 0


class TestListFiles:
    """Tests for DirectoryScanner.list_files()."""

    def test_lists_same_files_as_counted(self, workspace):
        """list_files() and scan() agree."""
        scanner = DirectoryScanner()
        files = scanner.list_files(workspace)
        assert len(files) == scanner.scan(workspace).count

    def test_files_are_sorted(self, workspace):
        """Files come back sorted by path."""
        files = DirectoryScanner().list_files(workspace)
        assert files == sorted(files)
        assert [f.relative_to(workspace).as_posix() for f in files] == [
            ".gitignore",
            "a.txt",
            "other/secret.txt",
            "sub/.dcignore",
            "sub/c.txt",
        ]
