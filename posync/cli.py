from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional
import asyncio
import logging

import portalocker
import typer
from pydantic import ValidationError

from posync import catalog as pocatalog
from posync import locks
from posync import reconcile
from posync import translator as potrans
from posync.config import Config, load_config_from_root, require_proxy_url, resolve_paths
from posync.report import Reporter

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _exit_with_error(message: str, code: int = 1) -> NoReturn:
    """Print error message to stderr and exit with given code."""
    typer.secho(f"Error: {message}", fg="red", err=True)
    raise typer.Exit(code)


app = typer.Typer(add_completion=False, no_args_is_help=True)


@dataclass
class CLIState:
    root: Path
    config: Config | None = None


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _acquire_run_lock(project_root: Path, ctx: typer.Context) -> None:
    lock_cm = locks.acquire_run_lock(project_root)
    try:
        lock_cm.__enter__()
    except portalocker.exceptions.LockException:
        _exit_with_error("Run lock is held; another posync process is running.")
    ctx.call_on_close(lambda: lock_cm.__exit__(None, None, None))


def _require_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if isinstance(state, CLIState):
        return state
    return CLIState(root=Path.cwd())


def _ensure_config(state: CLIState) -> Config:
    if state.config is not None:
        return state.config
    try:
        state.config = load_config_from_root(state.root)
    except (ValueError, ValidationError) as exc:
        _exit_with_error(f"Invalid configuration: {exc}")
    return state.config


def _load(path: Path, label: str) -> pocatalog.Catalog:
    try:
        return pocatalog.load_catalog(path, label)
    except FileNotFoundError as exc:
        _exit_with_error(str(exc))


def _write(target_catalog: pocatalog.Catalog, path: Path) -> None:
    try:
        pocatalog.write_catalog(target_catalog, path)
    except pocatalog.CatalogChangedError as exc:
        _exit_with_error(str(exc))


async def _run_sync(
    target_catalog: pocatalog.Catalog,
    english: dict[str, str],
    transport: potrans.TransportOptions,
    config: Config,
    reporter: Reporter,
) -> reconcile.SyncStats:
    async with potrans.open_translator(
        transport,
        src=config.translation.source_lang,
        dest=config.translation.dest_lang,
    ) as translate:
        return await reconcile.sync_catalog(
            target_catalog, english, translate, observer=reporter
        )


@app.callback()
def main(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(None, "--root"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    _setup_logging(verbose)
    project_root = (root or Path.cwd()).resolve()
    state = CLIState(root=project_root)
    ctx.obj = state
    _acquire_run_lock(project_root, ctx)
    _ensure_config(state)


@app.command()
def sync(
    ctx: typer.Context,
    reference: Optional[Path] = typer.Option(None, "--reference"),
    target: Optional[Path] = typer.Option(None, "--target"),
    dry_run: bool = typer.Option(False, "--dry-run"),
) -> None:
    """Copy English values into the target catalog and translate leftovers."""
    state = _require_state(ctx)
    config = _ensure_config(state)
    try:
        proxy_url = require_proxy_url(config, state.root)
    except RuntimeError as exc:
        _exit_with_error(str(exc))
    reference_path, target_path, _backup_path = resolve_paths(
        config,
        state.root,
        reference=reference,
        target=target,
    )
    english_catalog = _load(reference_path, "Reference PO file")
    target_catalog = _load(target_path, "Target PO file")
    english = pocatalog.build_lookup(english_catalog)
    logger.debug("Loaded %d English values from %s", len(english), reference_path)

    transport = potrans.TransportOptions.from_config(config, proxy_url)
    reporter = Reporter(dry_run=dry_run)
    reporter.start(reconcile.count_translatable(target_catalog))
    stats = asyncio.run(
        _run_sync(target_catalog, english, transport, config, reporter)
    )
    if not dry_run:
        _write(target_catalog, target_path)
    reporter.sync_summary(stats, target_path)


@app.command()
def rollback(
    ctx: typer.Context,
    target: Optional[Path] = typer.Option(None, "--target"),
    backup: Optional[Path] = typer.Option(None, "--backup"),
    dry_run: bool = typer.Option(False, "--dry-run"),
) -> None:
    """Restore empty or "none" values in the target catalog from its backup."""
    state = _require_state(ctx)
    config = _ensure_config(state)
    _reference_path, target_path, backup_path = resolve_paths(
        config,
        state.root,
        target=target,
        backup=backup,
    )
    if not target_path.is_file():
        _exit_with_error(f"Main PO file not found: {target_path}")
    if not backup_path.is_file():
        _exit_with_error(f"Backup PO file not found: {backup_path}")

    target_catalog = _load(target_path, "Main PO file")
    backup_catalog = _load(backup_path, "Backup PO file")
    backup_values = pocatalog.build_lookup(backup_catalog)
    logger.debug("Loaded %d backup values from %s", len(backup_values), backup_path)

    reporter = Reporter(dry_run=dry_run)
    stats = reconcile.rollback_catalog(target_catalog, backup_values, observer=reporter)
    if not dry_run:
        _write(target_catalog, target_path)
    reporter.rollback_summary(stats, target_path)
