from __future__ import annotations

from pathlib import Path

import typer

from posync.constants import SyncAction
from posync.reconcile import EntryChange, RollbackStats, SyncStats


class Reporter:
    """Console output for sync and rollback runs."""

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def start(self, total: int) -> None:
        typer.echo(f"\nTotal entries to process: {total}\n")

    def __call__(self, change: EntryChange) -> None:
        if change.action == SyncAction.FAILED:
            typer.secho(f"Translation failed for text: {change.before}", err=True)
            typer.secho(change.error, err=True)
            return
        if change.action == SyncAction.ROLLED_BACK:
            typer.echo(f"{change.action}: {change.msgid}")
            typer.echo(f"  From: {change.before or '(empty)'}")
        else:
            typer.echo(f"[{change.progress}%] {change.action}: {change.msgid}")
            typer.echo(f"  From: {change.before}")
        typer.echo(f"  To: {change.after}\n")

    def _completion(self, verb: str, path: Path) -> None:
        if self.dry_run:
            typer.echo(f"\nDry run: {path} was not modified.")
        else:
            typer.echo(f"\n{verb} completed! File saved to: {path}")

    def sync_summary(self, stats: SyncStats, path: Path) -> None:
        typer.echo("\nTranslation Summary:")
        typer.echo(f"Total entries processed: {stats.total}")
        typer.echo(f"Skipped header entries: {stats.skipped}")
        typer.echo(f"Updated from English: {stats.updated}")
        typer.echo(f"Translated non-English entries: {stats.translated}")
        if stats.failures:
            typer.secho(f"Failed translations: {len(stats.failures)}", err=True)
        self._completion("Translation", path)

    def rollback_summary(self, stats: RollbackStats, path: Path) -> None:
        typer.echo("\nRollback Summary:")
        typer.echo(f"Total entries processed: {stats.total}")
        typer.echo(f"Skipped header entries: {stats.skipped}")
        typer.echo(f"Rolled back entries: {stats.rolled_back}")
        self._completion("Rollback", path)
