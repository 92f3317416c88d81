"""CLI interface for zipdeploy."""

import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import click

from . import __version__
from .archive import ArchiveFetcher
from .cli_progress import DeployProgressDisplay
from .config import config
from .digest import ABSENT, FingerprintSet
from .exceptions import ZipDeployError
from .locator import SourceLocator
from .output import OutputFormatter
from .storage import S3Storage
from .sync import state as deployment_state
from .sync.engine import SyncEngine
from .sync.modes import UploadStrategy
from .sync.state import DeploymentPhase, DeploymentStateManager
from .utils import parse_size

logger = logging.getLogger(__name__)

# Exit status of `drift` when drift was found
EXIT_DRIFT = 2


def _fail(ctx: Any, message: str) -> NoReturn:
    """Report an error and exit with status 1."""
    out: OutputFormatter = ctx.obj["out"]
    out.error(message)
    ctx.exit(1)


def _create_engine(ctx: Any) -> SyncEngine:
    """Build a sync engine from global options and configuration."""
    logger.debug(
        f"Creating S3 client (profile={ctx.obj['profile'] or 'default'}, "
        f"region={ctx.obj['region'] or 'default'}, "
        f"endpoint={ctx.obj['endpoint_url'] or 'default'})"
    )
    client = config.create_s3_client(
        profile_name=ctx.obj["profile"],
        region_name=ctx.obj["region"],
        endpoint_url=ctx.obj["endpoint_url"],
    )
    storage = S3Storage(client)
    fetcher = ArchiveFetcher(
        storage,
        max_archive_size=config.max_archive_size,
        spool_threshold=config.spool_threshold,
    )
    return SyncEngine(storage, fetcher=fetcher)


def _state_manager(ctx: Any) -> DeploymentStateManager:
    return DeploymentStateManager(ctx.obj["state_dir"])


def _show_fingerprints(
    out: OutputFormatter, fingerprints: FingerprintSet, title: str
) -> None:
    rows = [
        {"name": name, "fingerprint": fp if fp != ABSENT else "(absent)"}
        for name, fp in sorted(fingerprints.items())
    ]
    if not rows:
        out.info("No objects")
        return
    out.output_table(rows, ["name", "fingerprint"], ["Name", "Fingerprint"], title)


@click.group()
@click.option("--profile", "-p", help="AWS profile name")
@click.option("--region", "-r", help="AWS region")
@click.option("--endpoint-url", help="Custom S3 endpoint URL")
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="ZIPDEPLOY_STATE_DIR",
    help="Directory for recorded deployment states",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: Any,
    profile: Optional[str],
    region: Optional[str],
    endpoint_url: Optional[str],
    state_dir: Optional[Path],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """zipdeploy - Deploy ZIP archives from S3 into S3 buckets."""
    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["region"] = region
    ctx.obj["endpoint_url"] = endpoint_url
    ctx.obj["state_dir"] = state_dir
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("zipdeploy").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--aws-profile", help="AWS profile used when --profile is not given")
@click.option("--aws-region", help="AWS region used when --region is not given")
@click.option("--endpoint-url", help="Custom S3 endpoint URL")
@click.option("--max-archive-size", help="Largest accepted source archive (e.g. 500MB)")
@click.option("--spool-threshold", help="Archive size kept in memory (e.g. 64MB)")
@click.option("--strategy", "-s", help="Default upload strategy")
@click.pass_context
def init(
    ctx: Any,
    aws_profile: Optional[str],
    aws_region: Optional[str],
    endpoint_url: Optional[str],
    max_archive_size: Optional[str],
    spool_threshold: Optional[str],
    strategy: Optional[str],
) -> None:
    """Store default settings in the zipdeploy config file.

    Values are merged into ~/.config/zipdeploy/config.json. Environment
    variables still take precedence over the stored values.

    Examples:
        zipdeploy init --aws-region eu-west-1 --strategy skip-unchanged
        zipdeploy init --endpoint-url http://localhost:9000 --max-archive-size 1GB
    """
    out: OutputFormatter = ctx.obj["out"]

    values = {
        "aws_profile": aws_profile,
        "aws_region": aws_region,
        "endpoint_url": endpoint_url,
        "max_archive_size": max_archive_size,
        "spool_threshold": spool_threshold,
        "upload_strategy": strategy,
    }
    values = {key: value for key, value in values.items() if value is not None}
    if not values:
        _fail(ctx, "Nothing to save. Pass at least one option, see --help")

    try:
        for key in ("max_archive_size", "spool_threshold"):
            if key in values:
                parse_size(values[key])
        if "upload_strategy" in values:
            values["upload_strategy"] = UploadStrategy.from_string(
                values["upload_strategy"]
            ).value
        config.save(**values)
    except ValueError as e:
        _fail(ctx, f"Invalid value: {e}")
    except (ZipDeployError, OSError) as e:
        _fail(ctx, f"Initialization failed: {e}")

    config_path = config.get_config_path()
    if out.json_output:
        out.output_json({"config_file": str(config_path), "saved": values})
        return

    out.output_table(
        [{"key": key, "value": value} for key, value in sorted(values.items())],
        ["key", "value"],
        ["Key", "Value"],
        "Saved settings",
    )
    out.success(f"Configuration saved to {config_path}")


@main.command()
@click.argument("source")
@click.argument("target")
@click.option("--version", "source_version", help="Version id of the source archive")
@click.option(
    "--strategy",
    "-s",
    help="Upload strategy: force-all (default) or skip-unchanged",
)
@click.option("--no-save", is_flag=True, help="Do not record the deployment state")
@click.option("--no-progress", is_flag=True, help="Disable the progress display")
@click.pass_context
def deploy(
    ctx: Any,
    source: str,
    target: str,
    source_version: Optional[str],
    strategy: Optional[str],
    no_save: bool,
    no_progress: bool,
) -> None:
    """Deploy the archive SOURCE (bucket/path/to/archive.zip) to bucket TARGET.

    Examples:
        zipdeploy deploy artifacts/site/release.zip www-bucket
        zipdeploy deploy artifacts/site.zip www-bucket --version 3HL4kqtJlcpXroDTDmJ
        zipdeploy deploy artifacts/site.zip www-bucket -s skip-unchanged
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        locator = SourceLocator.parse(source, version=source_version)
        upload_strategy = UploadStrategy.from_string(
            strategy or config.upload_strategy
        )
    except (ZipDeployError, ValueError) as e:
        _fail(ctx, str(e))

    manager = _state_manager(ctx)
    previous = manager.load_state(target)

    out.info(f"Deploying {locator.describe()} to {target}")
    out.info(f"Strategy: {upload_strategy.value}")

    show_progress = not (no_progress or out.quiet or out.json_output)
    try:
        engine = _create_engine(ctx)
        with DeployProgressDisplay(enabled=show_progress) as display:
            new_state = deployment_state.deploy(
                engine,
                previous,
                locator,
                target,
                strategy=upload_strategy,
                progress_callback=display.callback,
            )
    except ZipDeployError as e:
        _fail(ctx, str(e))

    result = engine.last_result
    uploaded = result.uploaded if result else sorted(new_state.fingerprints)
    skipped = result.skipped if result else []

    if not no_save:
        try:
            manager.save_state(new_state)
        except OSError as e:
            out.warning(f"Failed to save deployment state: {e}")

    if out.json_output:
        out.output_json(
            {
                "source": str(locator),
                "source_version": locator.version,
                "target": target,
                "strategy": upload_strategy.value,
                "uploaded": uploaded,
                "skipped": skipped,
                "files": new_state.fingerprints,
            }
        )
        return

    _show_fingerprints(out, new_state.fingerprints, f"Deployed to {target}")
    out.success(
        f"Deployed {len(uploaded)} file(s) to {target}"
        + (f" ({len(skipped)} unchanged)" if skipped else "")
    )


@main.command()
@click.argument("target")
@click.option(
    "--include-new",
    is_flag=True,
    help="Also report archive entries that were never deployed",
)
@click.option("--no-save", is_flag=True, help="Do not record the refreshed state")
@click.pass_context
def drift(ctx: Any, target: str, include_new: bool, no_save: bool) -> None:
    """Check the deployment recorded for bucket TARGET for drift.

    Exits with status 2 when any object drifted, including target objects
    that were changed in the bucket (target_mismatch). The recorded state
    only moves to "drifted" when the source archive itself changed. Running
    deploy again with the same archive repairs a target mismatch.
    """
    out: OutputFormatter = ctx.obj["out"]
    manager = _state_manager(ctx)

    state = manager.load_state(target)
    if state is None or state.phase == DeploymentPhase.ABSENT or state.source is None:
        _fail(ctx, f"No deployment recorded for {target}")

    try:
        engine = _create_engine(ctx)
        report = engine.drift_report(
            state.source, target, state.fingerprints, include_new=include_new
        )
        new_state = deployment_state.refresh_from_report(state, report)
    except ZipDeployError as e:
        _fail(ctx, str(e))

    if not no_save:
        try:
            manager.save_state(new_state)
        except OSError as e:
            out.warning(f"Failed to save deployment state: {e}")

    if out.json_output:
        out.output_json(
            {
                "target": target,
                "source": str(state.source),
                "phase": new_state.phase.value,
                "drift": [
                    {
                        "name": e.name,
                        "status": e.status.value,
                        "recorded": e.recorded,
                        "source": e.source,
                        "target": e.target,
                    }
                    for e in report.entries
                ],
                "files": new_state.fingerprints,
            }
        )
    elif report.has_drift:
        rows = [
            {
                "name": e.name,
                "status": e.status.value,
                "recorded": e.recorded or "-",
                "source": e.source or "(absent)",
                "target": e.target or "(absent)",
            }
            for e in report.drifted
        ]
        out.output_table(
            rows,
            ["name", "status", "recorded", "source", "target"],
            ["Name", "Status", "Recorded", "Source", "Target"],
            f"Drift for {target}",
        )
        out.warning(
            f"{len(report.drifted)} of {len(report.entries)} object(s) drifted"
        )
    else:
        out.success(f"No drift: {len(report.entries)} object(s) match {state.source}")

    if report.has_drift:
        ctx.exit(EXIT_DRIFT)


@main.command()
@click.argument("source")
@click.option("--version", "source_version", help="Version id of the source archive")
@click.pass_context
def hashes(ctx: Any, source: str, source_version: Optional[str]) -> None:
    """Print the fingerprints of the entries of archive SOURCE."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        locator = SourceLocator.parse(source, version=source_version)
        fingerprints = _create_engine(ctx).source_fingerprints(locator)
    except ZipDeployError as e:
        _fail(ctx, str(e))

    if out.json_output:
        out.output_json(fingerprints)
    else:
        _show_fingerprints(out, fingerprints, locator.describe())


@main.command("target-hashes")
@click.argument("bucket")
@click.pass_context
def target_hashes(ctx: Any, bucket: str) -> None:
    """Print the fingerprints of the objects stored in BUCKET."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        fingerprints = _create_engine(ctx).target_fingerprints(bucket)
    except ZipDeployError as e:
        _fail(ctx, str(e))

    if out.json_output:
        out.output_json(fingerprints)
    else:
        _show_fingerprints(out, fingerprints, bucket)


@main.command()
@click.argument("target")
@click.option("--purge", is_flag=True, help="Delete the state file entirely")
@click.pass_context
def forget(ctx: Any, target: str, purge: bool) -> None:
    """Forget the deployment recorded for bucket TARGET.

    Objects in the bucket are not deleted.
    """
    out: OutputFormatter = ctx.obj["out"]
    manager = _state_manager(ctx)

    if purge:
        if manager.clear_state(target):
            out.success(f"Removed recorded state for {target}")
        else:
            out.info(f"No deployment recorded for {target}")
        return

    state = manager.load_state(target)
    if state is None or state.phase == DeploymentPhase.ABSENT:
        out.info(f"No deployment recorded for {target}")
        return

    manager.save_state(deployment_state.teardown(state))
    out.success(f"Forgot deployment of {state.source} to {target}")


if __name__ == "__main__":
    main()
