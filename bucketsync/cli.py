"""CLI interface for bucketsync."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import click

from .cli_progress import run_sync_with_progress
from .config import config
from .exceptions import BucketSyncConfigError, BucketSyncError
from .output import OutputFormatter
from .store import S3Store
from .sync import ErrorPolicy, SyncConfig, SyncDirection, SyncEngine
from .sync.config import load_sync_config_from_json

logger = logging.getLogger(__name__)


def _common_sync_options(func: Callable) -> Callable:
    """Attach the options shared by push and pull."""
    options = [
        click.option("--bucket", "-b", required=True, help="Bucket name"),
        click.option(
            "--endpoint",
            "-e",
            envvar="BUCKETSYNC_ENDPOINT_URL",
            default=None,
            help="Object store endpoint URL (for LocalStack, MinIO, ...)",
        ),
        click.option(
            "--region",
            "-r",
            default=None,
            help="Store region (default: from environment or us-east-1)",
        ),
        click.option(
            "--delete",
            "-d",
            "delete_extra",
            is_flag=True,
            help="Delete destination entries that are not present in the source",
        ),
        click.option(
            "--dry-run", is_flag=True, help="Show what would be synced without syncing"
        ),
        click.option(
            "--workers",
            type=int,
            default=1,
            help="Number of parallel workers for transfers/deletions (default: 1)",
        ),
        click.option(
            "--keep-going",
            is_flag=True,
            help="Attempt every transfer/deletion and report all failures "
            "instead of stopping at the first one",
        ),
        click.option("--no-progress", is_flag=True, help="Disable progress bars"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="bucketsync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """bucketsync - Sync a local directory with an S3 bucket by content checksum."""
    # Store settings in context for subcommands to access
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        # Enable debug logging for bucketsync modules
        logging.getLogger("bucketsync").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


def _execute(ctx: Any, sync_config: SyncConfig, no_progress: bool) -> None:
    """Run a sync job and translate its outcome into output and exit code."""
    out: OutputFormatter = ctx.obj["out"]

    if sync_config.max_workers > 1 and not out.quiet:
        out.info(f"Using {sync_config.max_workers} parallel workers")

    store = S3Store.from_sync_config(sync_config)
    engine = SyncEngine(store, out)
    show_progress = not (no_progress or out.quiet or out.json_output)

    try:
        report = run_sync_with_progress(engine, sync_config, show_progress)
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
        return
    except BucketSyncError as e:
        out.error(f"Error: {e}")
        if out.json_output and e.report is not None:
            out.output_json(e.report.to_dict())
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(report.to_dict())


def _build_config(ctx: Any, **kwargs: Any) -> SyncConfig:
    out: OutputFormatter = ctx.obj["out"]
    try:
        return SyncConfig(**kwargs)
    except BucketSyncConfigError as e:
        out.error(f"Invalid configuration: {e}")
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


@main.command()
@click.option(
    "--input",
    "-i",
    "input_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Local directory to upload",
)
@_common_sync_options
@click.option(
    "--no-create-bucket",
    is_flag=True,
    help="Fail instead of creating the bucket when it does not exist",
)
@click.pass_context
def push(
    ctx: Any,
    input_dir: Path,
    bucket: str,
    endpoint: Optional[str],
    region: Optional[str],
    delete_extra: bool,
    dry_run: bool,
    workers: int,
    keep_going: bool,
    no_progress: bool,
    no_create_bucket: bool,
) -> None:
    """Push a local directory to a bucket.

    Files whose checksum differs from the object's ETag (or that are missing
    from the bucket) are uploaded; unchanged files are skipped.

    Examples:
        bucketsync push -i ./site -b my-bucket
        bucketsync push -i ./site -b my-bucket --delete
        bucketsync push -i ./data -b test -e http://localhost:4566
    """
    sync_config = _build_config(
        ctx,
        local=input_dir,
        bucket=bucket,
        direction=SyncDirection.UPLOAD,
        delete_extra=delete_extra,
        endpoint_url=endpoint,
        region=region or config.region,
        dry_run=dry_run,
        max_workers=workers,
        error_policy=ErrorPolicy.COLLECT if keep_going else ErrorPolicy.ABORT,
        create_bucket=not no_create_bucket,
    )
    _execute(ctx, sync_config, no_progress)


@main.command()
@click.option(
    "--output",
    "-o",
    "output_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Local directory to download into (created if missing)",
)
@_common_sync_options
@click.pass_context
def pull(
    ctx: Any,
    output_dir: Path,
    bucket: str,
    endpoint: Optional[str],
    region: Optional[str],
    delete_extra: bool,
    dry_run: bool,
    workers: int,
    keep_going: bool,
    no_progress: bool,
) -> None:
    """Pull a bucket into a local directory.

    Objects whose ETag differs from the local file's checksum (or that are
    missing locally) are downloaded; unchanged files are skipped.

    Examples:
        bucketsync pull -o ./site -b my-bucket
        bucketsync pull -o ./site -b my-bucket --delete --workers 4
    """
    sync_config = _build_config(
        ctx,
        local=output_dir,
        bucket=bucket,
        direction=SyncDirection.DOWNLOAD,
        delete_extra=delete_extra,
        endpoint_url=endpoint,
        region=region or config.region,
        dry_run=dry_run,
        max_workers=workers,
        error_policy=ErrorPolicy.COLLECT if keep_going else ErrorPolicy.ABORT,
    )
    _execute(ctx, sync_config, no_progress)


@main.command()
@click.argument("job_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def run(ctx: Any, job_file: str, dry_run: bool, no_progress: bool) -> None:
    """Run a sync job described in a JSON file.

    JOB_FILE holds one object with the keys local, bucket, direction
    ("push"/"upload" or "pull"/"download") and optionally deleteExtra,
    endpointUrl, region, dryRun, maxWorkers, errorPolicy, createBucket.

    Examples:
        bucketsync run site-backup.json
        bucketsync run site-backup.json --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        sync_config = load_sync_config_from_json(job_file)
    except BucketSyncConfigError as e:
        out.error(f"Invalid job file: {e}")
        ctx.exit(1)
        return

    if dry_run:
        sync_config.dry_run = True

    _execute(ctx, sync_config, no_progress)


if __name__ == "__main__":
    main()
