"""Bundle creation - traversal, exclusion, diffing and payload packing."""

from .diff import (
    BundleDiffEngine,
    BundleManifest,
    FileChangeRecord,
    FileStatus,
    build_manifest,
    is_file_changing_bundle,
    deleted_paths,
    missing_files,
)
from .filters import DEFAULT_SERVER_FILTER_LIST, ServerFilterList
from .ignore import (
    DCIGNORE_FILE_NAME,
    GITIGNORE_FILE_NAME,
    IGNORE_FILE_NAMES,
    ExclusionFilter,
    ExclusionRule,
    create_dcignore,
    is_ignore_file,
    load_ignore_rules,
)
from .manifest import ManifestState, ManifestStore
from .payload import (
    ChunkedPayload,
    PayloadAssembler,
    PayloadBatch,
    PayloadChunker,
    PayloadItem,
    UnchunkedPayload,
    payload_item_size,
    payload_size,
)
from .progress import FilesProgress, FilesProgressEvent, FilesProgressInfo
from .scanner import DirectoryScanner, ScanResult

__all__ = [
    "BundleDiffEngine",
    "BundleManifest",
    "FileChangeRecord",
    "FileStatus",
    "build_manifest",
    "is_file_changing_bundle",
    "deleted_paths",
    "missing_files",
    "DEFAULT_SERVER_FILTER_LIST",
    "ServerFilterList",
    "DCIGNORE_FILE_NAME",
    "GITIGNORE_FILE_NAME",
    "IGNORE_FILE_NAMES",
    "ExclusionFilter",
    "ExclusionRule",
    "create_dcignore",
    "is_ignore_file",
    "load_ignore_rules",
    "ManifestState",
    "ManifestStore",
    "ChunkedPayload",
    "PayloadAssembler",
    "PayloadBatch",
    "PayloadChunker",
    "PayloadItem",
    "UnchunkedPayload",
    "payload_item_size",
    "payload_size",
    "FilesProgress",
    "FilesProgressEvent",
    "FilesProgressInfo",
    "DirectoryScanner",
    "ScanResult",
]
