"""CLI interface for pydeepcode."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

from . import messages
from .api import DeepCodeClient
from .bundle.diff import BundleDiffEngine, FileStatus, missing_files
from .bundle.filters import DEFAULT_SERVER_FILTER_LIST, ServerFilterList
from .bundle.ignore import create_dcignore
from .bundle.manifest import ManifestStore
from .bundle.payload import (
    ChunkedPayload,
    PayloadAssembler,
    PayloadChunker,
    payload_item_size,
)
from .bundle.scanner import DirectoryScanner
from .cli_progress import FilesProgressDisplay
from .config import config
from .error_handler import ErrorHandler
from .exceptions import DeepCodeConfigError, DeepCodeError
from .output import OutputFormatter
from .utils import format_size

logger = logging.getLogger(__name__)

# Restarts requested through the error handler before giving up
MAX_RESTARTS = 1


class ConsoleNotifier:
    """Notifier that prints errors and asks for confirmation on a TTY."""

    def __init__(self, out: OutputFormatter, interactive: Optional[bool] = None):
        self.out = out
        self.interactive = sys.stdin.isatty() if interactive is None else interactive

    def show_error(self, message: str, *buttons: str) -> Optional[str]:
        self.out.error(message)
        if buttons and self.interactive:
            if click.confirm(f"{buttons[0]}?", default=False):
                return buttons[0]
        return None


def _load_server_filter(filters_file: Optional[str]) -> ServerFilterList:
    if filters_file is None:
        return DEFAULT_SERVER_FILTER_LIST
    try:
        with open(filters_file, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise click.BadParameter(f"Cannot read filter list: {e}") from e
    return ServerFilterList.from_dict(data)


filters_option = click.option(
    "--filters",
    "filters_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file with the server filter list (extensions, configFiles); "
    "defaults to the built-in list of supported languages",
)

workers_option = click.option(
    "--workers",
    "-j",
    type=int,
    default=1,
    help="Number of parallel workers for hashing (default: 1)",
)


@click.group()
@click.option("--api-key", "-k", envvar="DEEPCODE_API_KEY", help="DeepCode API key")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pydeepcode")
@click.pass_context
def main(
    ctx: Any,
    api_key: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyDeepCode - Bundle and upload workspaces for remote code analysis."""
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["manifest_store"] = ctx.obj.get("manifest_store") or ManifestStore()

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pydeepcode").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@filters_option
@click.pass_context
def scan(ctx: Any, path: Path, filters_file: Optional[str]) -> None:
    """Count the files of PATH that would be bundled.

    .gitignore and .dcignore files are honoured in every directory.
    """
    out: OutputFormatter = ctx.obj["out"]
    path = path.resolve()
    server_filter = _load_server_filter(filters_file)

    try:
        display = FilesProgressDisplay(enabled=not out.quiet and not out.json_output)
        with display:
            scanner = DirectoryScanner(server_filter, display.create_tracker())
            result = scanner.scan(path)
    except DeepCodeError as e:
        out.error(str(e))
        ctx.exit(1)

    rules = result.exclusion_filter.rules
    if out.json_output:
        out.output_json(
            {
                "path": str(path),
                "files": result.count,
                "ignore_rules": [
                    {"base_path": rule.base_path, "patterns": list(rule.patterns)}
                    for rule in rules
                ],
            }
        )
        return

    out.print_summary(
        "Scan Complete",
        [
            ("Folder", str(path)),
            ("Files", str(result.count)),
            ("Top-level ignore rules", str(sum(len(r.patterns) for r in rules))),
        ],
    )


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@filters_option
@workers_option
@click.pass_context
def status(ctx: Any, path: Path, filters_file: Optional[str], workers: int) -> None:
    """Show which files of PATH changed since the last upload."""
    out: OutputFormatter = ctx.obj["out"]
    path = path.resolve()
    store: ManifestStore = ctx.obj["manifest_store"]
    server_filter = _load_server_filter(filters_file)

    try:
        files = DirectoryScanner(server_filter).list_files(path)
        records = BundleDiffEngine().compare_workspace(
            files, path, store.load_manifest(path), max_workers=workers
        )
    except DeepCodeError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(
            [
                {
                    "filePath": record.relative_path,
                    "fileHash": record.file_hash,
                    "status": record.status.value,
                }
                for record in records
            ]
        )
        return

    for record in records:
        if record.status != FileStatus.SAME:
            out.print(f"{record.status.value:>8}  {record.relative_path}")

    counts = {file_status: 0 for file_status in FileStatus}
    for record in records:
        counts[record.status] += 1
    out.print_summary(
        "Workspace Status",
        [(key.value.capitalize(), str(count)) for key, count in counts.items()],
    )


def _run_upload(
    path: Path,
    bundle_id: Optional[str],
    client: Optional[DeepCodeClient],
    store: ManifestStore,
    out: OutputFormatter,
    server_filter: ServerFilterList,
    workers: int,
    dry_run: bool,
) -> None:
    display = FilesProgressDisplay(enabled=not out.quiet and not out.json_output)
    with display:
        progress = display.create_tracker()
        files = DirectoryScanner(server_filter, progress).list_files(path)
        records = BundleDiffEngine(progress).compare_workspace(
            files, path, store.load_manifest(path), max_workers=workers
        )
        missing = missing_files(records)
        items = PayloadAssembler().assemble(missing, path, max_workers=workers)

    chunker = PayloadChunker(config.allowed_payload_size)
    batch = chunker.size_payload(items)

    if isinstance(batch, ChunkedPayload):
        out.info(
            f"Uploading {len(items)} files in {len(batch.chunks_list)} requests "
            f"(limit {format_size(chunker.safe_payload_size)} per request)"
        )
        for index, chunk in enumerate(batch.chunks_list, start=1):
            size = sum(payload_item_size(item) for item in chunk)
            logger.debug(f"Chunk {index}: {len(chunk)} files, {size} bytes")
    else:
        out.info(f"Uploading {len(items)} files in a single request")

    if dry_run:
        out.success("Dry run complete!")
        return

    if client is None or bundle_id is None:
        raise DeepCodeConfigError("A bundle ID and API key are required to upload")

    if items:
        client.upload_files(bundle_id, batch)

    manifest = {
        record.relative_path: record.file_hash
        for record in records
        if record.status != FileStatus.DELETED
    }
    store.save_manifest(path, manifest, bundle_id)
    out.success(f"Upload complete! {len(items)} files sent.")


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--bundle-id", "-b", help="Server-side bundle identifier")
@click.option(
    "--dry-run", is_flag=True, help="Show what would be uploaded without uploading"
)
@filters_option
@workers_option
@click.pass_context
def upload(
    ctx: Any,
    path: Path,
    bundle_id: Optional[str],
    dry_run: bool,
    filters_file: Optional[str],
    workers: int,
) -> None:
    """Upload the changed files of PATH to the analysis backend."""
    out: OutputFormatter = ctx.obj["out"]
    path = path.resolve()
    store: ManifestStore = ctx.obj["manifest_store"]
    server_filter = _load_server_filter(filters_file)

    client: Optional[DeepCodeClient] = None
    if not dry_run:
        if not bundle_id:
            out.error("--bundle-id is required unless --dry-run is given")
            ctx.exit(1)
        if not ctx.obj["api_key"] and not config.is_configured():
            out.error(
                "No API key configured. "
                "Run 'pydeepcode init' or set DEEPCODE_API_KEY."
            )
            ctx.exit(1)
        try:
            client = DeepCodeClient(api_key=ctx.obj["api_key"])
        except DeepCodeConfigError as e:
            out.error(str(e))
            ctx.exit(1)

    out.info(messages.confirm_upload(str(path)))

    restarts = 0
    try:
        while True:
            restart_requested: list[bool] = []
            handler = ErrorHandler(
                notifier=ConsoleNotifier(out),
                restart_command=lambda: restart_requested.append(True),
                reporter=client,
                backend_host=client.host if client is not None else config.api_host,
            )
            try:
                _run_upload(
                    path,
                    bundle_id,
                    client,
                    store,
                    out,
                    server_filter,
                    workers,
                    dry_run,
                )
                return
            except (DeepCodeError, OSError) as e:
                logger.debug(f"Upload failed: {e}")
                handler.process_error(
                    e,
                    message="Upload failed",
                    endpoint=f"/publicapi/file/{bundle_id}" if bundle_id else None,
                    bundle_id=bundle_id,
                )
            if not restart_requested or restarts >= MAX_RESTARTS:
                ctx.exit(1)
            restarts += 1
            out.info("Restarting upload...")
    finally:
        if client is not None:
            client.close()


@main.command()
@click.option(
    "--api-key",
    "-k",
    prompt="Enter your DeepCode API key",
    help="DeepCode API key",
)
@click.option("--url", help="Backend URL (default: https://www.deepcode.ai)")
@click.pass_context
def init(ctx: Any, api_key: str, url: Optional[str]) -> None:
    """Initialize DeepCode configuration.

    Stores your API key in ~/.config/pydeepcode/config.json for future use.
    """
    out: OutputFormatter = ctx.obj["out"]

    if config.is_configured():
        out.warning("Replacing the configured API key")

    try:
        config.save_api_key(api_key)
        if url:
            config.save_api_url(url)
    except OSError as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)

    out.print_summary(
        "Initialization Complete",
        [
            ("Config file", str(config.get_config_path())),
            ("Backend", config.api_url),
        ],
    )


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.pass_context
def reset(ctx: Any, path: Path) -> None:
    """Forget the stored manifest of PATH.

    The next upload sends every file again.
    """
    out: OutputFormatter = ctx.obj["out"]
    path = path.resolve()
    store: ManifestStore = ctx.obj["manifest_store"]

    if store.clear(path):
        out.success(f"Cleared stored manifest of {path}")
    else:
        out.warning(f"No stored manifest for {path}")


@main.command("init-ignore")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--custom", is_flag=True, help="Write an empty, commented template instead"
)
@click.option("--force", is_flag=True, help="Overwrite an existing .dcignore")
@click.pass_context
def init_ignore(ctx: Any, path: Path, custom: bool, force: bool) -> None:
    """Create a .dcignore file in PATH."""
    out: OutputFormatter = ctx.obj["out"]
    path = path.resolve()
    try:
        target = create_dcignore(path, custom=custom, overwrite=force)
    except DeepCodeError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success(f"Created {target}")


if __name__ == "__main__":
    main()
