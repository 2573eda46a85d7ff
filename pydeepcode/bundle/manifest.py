"""Persistence of the last server-confirmed bundle manifest.

The manifest maps workspace-relative paths to content hashes. It is stored
between sessions so that only changed files are uploaded.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class ManifestState:
    """Stored state of one workspace bundle."""

    workspace_path: str
    """Workspace root the manifest paths are relative to"""

    files: dict[str, str] = field(default_factory=dict)
    """Relative path -> content hash confirmed by the server"""

    bundle_id: Optional[str] = None
    """Server-side bundle identifier"""

    last_update: Optional[str] = None
    """ISO timestamp of the last successful upload"""

    def to_dict(self) -> dict:
        """Convert state to dictionary for JSON serialization."""
        return {
            "workspace_path": self.workspace_path,
            "bundle_id": self.bundle_id,
            "files": dict(sorted(self.files.items())),
            "last_update": self.last_update,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ManifestState":
        """Create ManifestState from dictionary."""
        files = data.get("files") or {}
        if not isinstance(files, dict):
            raise ValueError("files must be an object")
        return cls(
            workspace_path=data.get("workspace_path", ""),
            files={str(k): str(v) for k, v in files.items()},
            bundle_id=data.get("bundle_id"),
            last_update=data.get("last_update"),
        )


class ManifestStore:
    """Stores one JSON manifest file per workspace.

    Files are keyed by a hash of the resolved workspace path.
    """

    def __init__(self, state_dir: Optional[Path] = None):
        """Initialize manifest store.

        Args:
            state_dir: Directory to store manifests. Defaults to
                      ~/.config/pydeepcode/bundles/
        """
        if state_dir is None:
            state_dir = Path.home() / ".config" / "pydeepcode" / "bundles"
        self.state_dir = state_dir

    def _get_state_file(self, workspace: Path) -> Path:
        key = hashlib.sha256(str(workspace.resolve()).encode()).hexdigest()[:16]
        return self.state_dir / f"{key}.json"

    def load_state(self, workspace: Path) -> Optional[ManifestState]:
        """Load the stored state of a workspace.

        Returns:
            ManifestState if found and readable, None otherwise
        """
        state_file = self._get_state_file(workspace)

        if not state_file.exists():
            logger.debug(f"No manifest found at {state_file}")
            return None

        try:
            with open(state_file, encoding="utf-8") as f:
                data = json.load(f)
            state = ManifestState.from_dict(data)
        except (OSError, json.JSONDecodeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to load manifest {state_file}: {e}")
            return None

        logger.debug(
            f"Loaded manifest with {len(state.files)} files from {state.last_update}"
        )
        return state

    def load_manifest(self, workspace: Path) -> dict[str, str]:
        """Return the stored manifest, empty if there is none."""
        state = self.load_state(workspace)
        return state.files if state is not None else {}

    def save_manifest(
        self,
        workspace: Path,
        manifest: dict[str, str],
        bundle_id: Optional[str] = None,
    ) -> Path:
        """Persist the manifest of a workspace.

        Returns:
            Path of the written state file

        Raises:
            OSError: If the state file cannot be written
        """
        state = ManifestState(
            workspace_path=str(workspace.resolve()),
            files=dict(manifest),
            bundle_id=bundle_id,
            last_update=datetime.now().isoformat(),
        )
        self.state_dir.mkdir(parents=True, exist_ok=True)
        state_file = self._get_state_file(workspace)
        with open(state_file, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        logger.debug(f"Saved manifest with {len(manifest)} files to {state_file}")
        return state_file

    def clear(self, workspace: Path) -> bool:
        """Remove the stored manifest of a workspace.

        Returns:
            True if a manifest was removed, False if none existed
        """
        state_file = self._get_state_file(workspace)
        if state_file.exists():
            state_file.unlink()
            logger.debug(f"Cleared manifest at {state_file}")
            return True
        return False
