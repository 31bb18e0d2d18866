from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping
import logging
import re

from posync.catalog import Catalog
from posync.constants import NON_ASCII_PATTERN, NONE_SENTINEL, SyncAction
from posync.translator import TranslateFn

logger = logging.getLogger(__name__)

_NON_ASCII_RE = re.compile(NON_ASCII_PATTERN)


@dataclass(frozen=True)
class EntryChange:
    action: str
    msgid: str
    before: str | None
    after: str | None
    progress: str = ""
    error: str = ""


ChangeObserver = Callable[[EntryChange], None]


@dataclass
class SyncStats:
    total: int = 0
    skipped: int = 0
    updated: int = 0
    translated: int = 0
    failures: list[EntryChange] = field(default_factory=list)

    @property
    def seen(self) -> int:
        return self.total + self.skipped

    @property
    def changed(self) -> int:
        return self.updated + self.translated


@dataclass
class RollbackStats:
    total: int = 0
    skipped: int = 0
    rolled_back: int = 0

    @property
    def seen(self) -> int:
        return self.total + self.skipped


def contains_non_ascii(text: str) -> bool:
    return bool(_NON_ASCII_RE.search(text))


def is_emptyish(value: str | None) -> bool:
    if not value:
        return True
    if value.strip() == "":
        return True
    return value.lower() == NONE_SENTINEL


def count_translatable(catalog: Catalog) -> int:
    return sum(1 for entry in catalog.entries() if not entry.header)


def format_progress(processed: int, total: int) -> str:
    if total <= 0:
        return "100.0"
    return f"{processed / total * 100:.1f}"


def _notify(observer: ChangeObserver | None, change: EntryChange) -> None:
    if observer is not None:
        observer(change)


async def sync_catalog(
    catalog: Catalog,
    english: Mapping[str, str],
    translate: TranslateFn,
    *,
    observer: ChangeObserver | None = None,
) -> SyncStats:
    """Bring every non-header entry in line with the English lookup.

    Entries without a usable English value are machine-translated when their
    primary form still contains non-ASCII text. Translation calls run one at a
    time; a failed call leaves its entry unchanged and is recorded in
    ``SyncStats.failures``. Entries whose primary form is empty are left alone.

    ``EntryChange.progress`` counts only non-header entries, so the last entry
    reports 100.0. Logs from older tooling that counted the header entry as
    processed show higher percentages for the same catalog.
    """
    stats = SyncStats()
    total = count_translatable(catalog)
    for entry in catalog.entries():
        if entry.header:
            stats.skipped += 1
            continue
        stats.total += 1
        progress = format_progress(stats.total, total)
        current = entry.primary

        english_value = english.get(entry.msgid)
        if english_value is not None and english_value != NONE_SENTINEL:
            if current != english_value:
                entry.msgstr = [english_value]
                stats.updated += 1
                _notify(
                    observer,
                    EntryChange(SyncAction.UPDATED, entry.msgid, current, english_value, progress),
                )
            continue

        if not current or not contains_non_ascii(current):
            continue

        try:
            translated = await translate(current)
        except Exception as exc:
            logger.warning("Translation failed for text: %s (%s)", current, exc)
            failure = EntryChange(
                SyncAction.FAILED,
                entry.msgid,
                current,
                None,
                progress,
                error=str(exc),
            )
            stats.failures.append(failure)
            _notify(observer, failure)
            continue

        if translated != current:
            entry.msgstr = [translated]
            stats.translated += 1
            _notify(
                observer,
                EntryChange(SyncAction.TRANSLATED, entry.msgid, current, translated, progress),
            )
    return stats


def rollback_catalog(
    catalog: Catalog,
    backup: Mapping[str, str],
    *,
    observer: ChangeObserver | None = None,
) -> RollbackStats:
    """Restore empty, blank or ``none`` entries from the backup lookup."""
    stats = RollbackStats()
    for entry in catalog.entries():
        if entry.header:
            stats.skipped += 1
            continue
        stats.total += 1
        current = entry.primary
        if not is_emptyish(current):
            continue
        backup_value = backup.get(entry.msgid)
        if backup_value is None:
            continue
        entry.msgstr = [backup_value]
        stats.rolled_back += 1
        _notify(observer, EntryChange(SyncAction.ROLLED_BACK, entry.msgid, current, backup_value))
    return stats
