from __future__ import annotations

import asyncio

from conftest import po_text
from posync import catalog as pocatalog
from posync import reconcile
from posync.constants import SyncAction
from posync.translator import TranslationError


def _catalog(entries: list[tuple[str, str]], *, header: bool = True) -> pocatalog.Catalog:
    return pocatalog.parse_catalog_text(po_text(entries, header=header))


def _values(catalog: pocatalog.Catalog) -> dict[str, str | None]:
    return {entry.msgid: entry.primary for entry in catalog.entries() if not entry.header}


def _header_msgstr(catalog: pocatalog.Catalog) -> str:
    return [entry for entry in catalog.entries() if entry.header][0].po_entry.msgstr


class _StubTranslator:
    def __init__(self, mapping: dict[str, str] | None = None, fail: set[str] | None = None):
        self.mapping = mapping or {}
        self.fail = fail or set()
        self.calls: list[str] = []

    async def __call__(self, text: str) -> str:
        self.calls.append(text)
        if text in self.fail:
            raise TranslationError("quota exceeded")
        return self.mapping.get(text, text)


def _sync(catalog, english, translate, observer=None) -> reconcile.SyncStats:
    return asyncio.run(reconcile.sync_catalog(catalog, english, translate, observer=observer))


def test_contains_non_ascii() -> None:
    assert reconcile.contains_non_ascii("保存")
    assert reconcile.contains_non_ascii("Save 文件")
    assert not reconcile.contains_non_ascii("Save")
    assert not reconcile.contains_non_ascii("")


def test_format_progress() -> None:
    assert reconcile.format_progress(1, 3) == "33.3"
    assert reconcile.format_progress(3, 3) == "100.0"
    assert reconcile.format_progress(0, 0) == "100.0"


def test_english_value_replaces_target() -> None:
    catalog = _catalog([("Save", "保存")])
    translate = _StubTranslator()
    stats = _sync(catalog, {"Save": "Save"}, translate)
    assert _values(catalog) == {"Save": "Save"}
    assert stats.updated == 1
    assert stats.translated == 0
    assert translate.calls == []


def test_matching_english_value_is_not_counted() -> None:
    catalog = _catalog([("Save", "Save")])
    stats = _sync(catalog, {"Save": "Save"}, _StubTranslator())
    assert stats.updated == 0
    assert stats.total == 1


def test_none_sentinel_is_never_copied() -> None:
    catalog = _catalog([("Save", "Save it"), ("Draft", "草稿")])
    translate = _StubTranslator({"草稿": "Draft"})
    stats = _sync(catalog, {"Save": "none", "Draft": "none"}, translate)
    assert _values(catalog) == {"Save": "Save it", "Draft": "Draft"}
    assert stats.updated == 0
    assert stats.translated == 1
    assert translate.calls == ["草稿"]


def test_non_ascii_text_without_english_is_translated() -> None:
    catalog = _catalog([("Draft", "草稿")])
    stats = _sync(catalog, {}, _StubTranslator({"草稿": "Draft"}))
    assert _values(catalog) == {"Draft": "Draft"}
    assert stats.translated == 1


def test_translation_equal_to_input_is_not_counted() -> None:
    catalog = _catalog([("Logo", "Café")])
    stats = _sync(catalog, {}, _StubTranslator())
    assert _values(catalog) == {"Logo": "Café"}
    assert stats.translated == 0


def test_ascii_text_without_english_is_left_alone() -> None:
    catalog = _catalog([("Open", "Open file")])
    translate = _StubTranslator()
    stats = _sync(catalog, {}, translate)
    assert _values(catalog) == {"Open": "Open file"}
    assert stats.changed == 0
    assert translate.calls == []


def test_empty_value_is_quietly_skipped_in_sync() -> None:
    # Empty strings never match the non-ASCII check, so sync leaves them
    # untouched even though rollback would act on them.
    catalog = _catalog([("Draft", "")])
    translate = _StubTranslator()
    stats = _sync(catalog, {}, translate)
    assert _values(catalog) == {"Draft": ""}
    assert stats.changed == 0
    assert stats.failures == []
    assert translate.calls == []


def test_translation_failure_leaves_entry_and_continues() -> None:
    catalog = _catalog([("Draft", "草稿"), ("Title", "标题"), ("Save", "保存")])
    translate = _StubTranslator({"标题": "Title"}, fail={"草稿"})
    stats = _sync(catalog, {"Save": "Save"}, translate)
    assert _values(catalog) == {"Draft": "草稿", "Title": "Title", "Save": "Save"}
    assert stats.translated == 1
    assert stats.updated == 1
    assert len(stats.failures) == 1
    failure = stats.failures[0]
    assert failure.action == SyncAction.FAILED
    assert failure.before == "草稿"
    assert "quota exceeded" in failure.error


def test_header_is_skipped_and_unchanged() -> None:
    catalog = _catalog([("Save", "保存")])
    before = _header_msgstr(catalog)
    translate = _StubTranslator({before: "translated header"})
    stats = _sync(catalog, {"": "english header"}, translate)
    assert stats.skipped == 1
    assert stats.total == 1
    assert _header_msgstr(catalog) == before
    assert catalog.po_file.metadata["Project-Id-Version"] == "demo 1.0"


def test_marker_bearing_msgid_is_treated_as_header() -> None:
    catalog = _catalog([("Project-Id-Version: legacy", "旧"), ("Save", "保存")])
    translate = _StubTranslator({"旧": "Old"})
    stats = _sync(catalog, {"Project-Id-Version: legacy": "x"}, translate)
    assert stats.skipped == 2
    assert _values(catalog) == {"Save": "保存"}
    assert translate.calls == ["保存"]


def test_sync_is_idempotent() -> None:
    catalog = _catalog([("Save", "保存"), ("Draft", "草稿"), ("Open", "Open")])
    english = {"Save": "Save"}
    translate = _StubTranslator({"草稿": "Draft"})
    first = _sync(catalog, english, translate)
    assert first.changed == 2

    second = _sync(catalog, english, translate)
    assert second.updated == 0
    assert second.translated == 0
    assert translate.calls == ["草稿"]


def test_end_to_end_three_entries() -> None:
    catalog = _catalog([("Save", "保存"), ("Draft", "草稿")])
    header_before = _header_msgstr(catalog)
    changes: list[reconcile.EntryChange] = []
    stats = _sync(catalog, {"Save": "Save"}, _StubTranslator({"草稿": "Draft"}), changes.append)

    assert _header_msgstr(catalog) == header_before
    assert _values(catalog) == {"Save": "Save", "Draft": "Draft"}
    assert stats.seen == 3
    assert stats.skipped == 1
    assert stats.updated + stats.translated == 2
    assert [change.action for change in changes] == [SyncAction.UPDATED, SyncAction.TRANSLATED]
    assert [change.progress for change in changes] == ["50.0", "100.0"]


def test_end_to_end_with_failing_service() -> None:
    catalog = _catalog([("Save", "保存"), ("Draft", "草稿")])
    stats = _sync(catalog, {"Save": "Save"}, _StubTranslator(fail={"草稿"}))
    assert _values(catalog) == {"Save": "Save", "Draft": "草稿"}
    assert stats.seen == 3
    assert stats.skipped == 1
    assert stats.updated + stats.translated == 1
    assert len(stats.failures) == 1


def test_translations_are_awaited_in_order() -> None:
    order: list[str] = []

    async def translate(text: str) -> str:
        order.append(f"start:{text}")
        await asyncio.sleep(0)
        order.append(f"end:{text}")
        return text.upper()

    catalog = _catalog([("A", "é"), ("B", "ü")])
    _sync(catalog, {}, translate)
    assert order == ["start:é", "end:é", "start:ü", "end:ü"]
