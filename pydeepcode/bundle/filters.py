"""Server-supplied filter list of files accepted into a bundle."""

import posixpath
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ServerFilterList:
    """File names and extensions the backend is able to analyse."""

    extensions: frozenset[str] = field(default_factory=frozenset)
    """Accepted extensions including the dot (e.g. ".py")"""

    config_files: frozenset[str] = field(default_factory=frozenset)
    """Accepted file names (e.g. ".dcignore")"""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerFilterList":
        """Create a filter list from the backend response.

        Config file names arrive prefixed with a path separator
        ("/.eslintrc"), which is stripped.
        """
        config_files = [item[1:] for item in data.get("configFiles") or []]
        return cls(
            extensions=frozenset(data.get("extensions") or []),
            config_files=frozenset(config_files),
        )

    def accepts(self, name: str) -> bool:
        """Check whether a file belongs in the bundle.

        Args:
            name: File name or path (only the base name is considered)
        """
        base_name = posixpath.basename(name.replace("\\", "/"))
        if base_name in self.config_files:
            return True
        return posixpath.splitext(base_name)[1] in self.extensions


# Used when no filter list was fetched from the backend or supplied by the user
DEFAULT_SERVER_FILTER_LIST = ServerFilterList(
    extensions=frozenset(
        {
            ".c",
            ".cc",
            ".cpp",
            ".cs",
            ".cxx",
            ".es",
            ".es6",
            ".go",
            ".h",
            ".hpp",
            ".htm",
            ".html",
            ".hxx",
            ".java",
            ".js",
            ".jsx",
            ".kt",
            ".php",
            ".py",
            ".rb",
            ".scala",
            ".swift",
            ".ts",
            ".tsx",
            ".vue",
        }
    ),
    config_files=frozenset(
        {
            ".dcignore",
            ".gitignore",
            ".eslintrc.js",
            ".eslintrc.json",
            ".eslintrc.yml",
            ".pylintrc",
            "pylintrc",
            "tslint.json",
        }
    ),
)
