from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator
import os
import re
import shutil
import tempfile

import polib

from posync import snapshot
from posync.constants import HEADER_MARKERS


class CatalogChangedError(RuntimeError):
    pass


def is_header_msgid(msgid: str) -> bool:
    if msgid == "":
        return True
    return any(marker in msgid for marker in HEADER_MARKERS)


@dataclass
class CatalogEntry:
    """A single translatable unit viewed through the ``msgstr`` list model.

    Singular entries expose ``[msgstr]``; plural entries expose their forms in
    index order. Index 0 is the primary form used by the sync and rollback
    policies. Assigning a list replaces every form.
    """

    po_entry: polib.POEntry
    header: bool = False

    @property
    def context(self) -> str:
        return self.po_entry.msgctxt or ""

    @property
    def msgid(self) -> str:
        return self.po_entry.msgid

    @property
    def msgstr(self) -> list[str]:
        if self.po_entry.msgid_plural:
            plural = self.po_entry.msgstr_plural or {}
            return [str(plural[key]) for key in sorted(plural, key=int)]
        return [self.po_entry.msgstr or ""]

    @msgstr.setter
    def msgstr(self, values: list[str]) -> None:
        if self.header:
            raise ValueError("header entries are read-only")
        if self.po_entry.msgid_plural:
            self.po_entry.msgstr_plural = {idx: str(value) for idx, value in enumerate(values)}
        else:
            self.po_entry.msgstr = str(values[0]) if values else ""

    @property
    def primary(self) -> str | None:
        values = self.msgstr
        return values[0] if values else None


@dataclass
class Catalog:
    """A parsed PO file plus the raw header text it was parsed from.

    ``header_block`` holds the leading header comments and the ``msgid ""``
    entry exactly as they appeared on disk. Rendering writes it back verbatim
    instead of letting polib rebuild (and reorder) the metadata. ``None`` means
    the header could not be located and polib renders it.
    """

    po_file: polib.POFile
    path: Path | None = None
    sha256: str = ""
    header_block: str | None = None

    def has_header(self) -> bool:
        return bool(self.po_file.metadata) or bool(self.po_file.header)

    def entries(self) -> Iterator[CatalogEntry]:
        """Yield the header view first (if any), then live entries in file order."""
        if self.has_header():
            yield CatalogEntry(self.po_file.metadata_as_entry(), header=True)
        for entry in self.po_file:
            if entry.obsolete:
                continue
            yield CatalogEntry(entry, header=is_header_msgid(entry.msgid))

    def render(self) -> str:
        if self.header_block is None:
            return str(self.po_file)
        wrapwidth = self.po_file.wrapwidth
        parts = [entry.__unicode__(wrapwidth) for entry in self.po_file if not entry.obsolete]
        parts.extend(entry.__unicode__(wrapwidth) for entry in self.po_file.obsolete_entries())
        body = "\n".join(parts)
        block = self.header_block
        if body and block:
            if not block.endswith("\n"):
                block += "\n"
            if not block.endswith("\n\n"):
                block += "\n"
        return block + body


def _is_header_comment(line: str) -> bool:
    # Plain "#" and "##" comments; "#," "#." "#:" "#|" "#~" belong to entries.
    stripped = line.rstrip("\r\n")
    return stripped == "#" or stripped[:2] in ("# ", "#\t", "##")


def _split_header_block(text: str) -> tuple[str, bool]:
    """Return the leading header text of ``text`` verbatim.

    The flag tells whether the block includes the ``msgid ""`` entry; the text
    is empty when the file starts directly with a message.
    """
    lines = text.splitlines(keepends=True)
    idx = 0
    while idx < len(lines) and (not lines[idx].strip() or _is_header_comment(lines[idx])):
        idx += 1
    comments_end = idx
    while idx < len(lines) and (
        not lines[idx].strip()
        or (lines[idx].startswith("#") and not lines[idx].startswith("#~"))
    ):
        idx += 1

    is_header_entry = (
        idx < len(lines)
        and re.match(r'^msgid\s+""\s*$', lines[idx]) is not None
        and not (idx + 1 < len(lines) and lines[idx + 1].startswith('"'))
    )
    if not is_header_entry:
        return "".join(lines[:comments_end]), False

    idx += 1
    while idx < len(lines) and (lines[idx].startswith('"') or lines[idx].startswith("msgstr")):
        idx += 1
    while idx < len(lines) and not lines[idx].strip():
        idx += 1
    return "".join(lines[:idx]), True


def ensure_exists(path: Path, label: str) -> None:
    if not path.is_file():
        raise FileNotFoundError(f"{label} not found: {path}")


def parse_catalog_text(text: str) -> Catalog:
    po_file = polib.pofile(text, encoding="utf-8")
    header_block, has_entry = _split_header_block(text)
    if po_file.metadata and not has_entry:
        # Metadata entry sits somewhere below the first message.
        header_block = None
    return Catalog(po_file=po_file, header_block=header_block)


def load_catalog(path: Path, label: str = "PO file") -> Catalog:
    ensure_exists(path, label)
    snap = snapshot.read_file_snapshot(path)
    catalog = parse_catalog_text(snap.bytes.decode("utf-8"))
    catalog.path = path
    catalog.sha256 = snap.sha256
    return catalog


def build_lookup(catalog: Catalog) -> dict[str, str]:
    """Map msgid to its primary translation, ignoring headers and empty values."""
    lookup: dict[str, str] = {}
    for entry in catalog.entries():
        if entry.header:
            continue
        value = entry.primary
        if value:
            lookup[entry.msgid] = value
    return lookup


def _fsync_file(path: Path) -> None:
    with open(path, "rb") as f:
        os.fsync(f.fileno())


def write_catalog(catalog: Catalog, path: Path | None = None) -> Path:
    """Replace ``path`` with the rendered catalog in a single atomic step.

    Refuses to write when the file on disk no longer matches the snapshot the
    catalog was loaded from.
    An existing file keeps its permission bits.
    """
    full_path = path or catalog.path
    if full_path is None:
        raise ValueError("catalog has no path to write to")
    data = catalog.render().encode("utf-8")

    tmp_handle = tempfile.NamedTemporaryFile(
        dir=str(full_path.parent),
        suffix=".po",
        delete=False,
    )
    tmp_name = tmp_handle.name
    tmp_handle.close()

    try:
        Path(tmp_name).write_bytes(data)
        _fsync_file(Path(tmp_name))
        if catalog.sha256 and full_path == catalog.path and full_path.exists():
            if snapshot.current_sha256(full_path) != catalog.sha256:
                raise CatalogChangedError(f"{full_path}: file changed since it was loaded")
        if full_path.exists():
            shutil.copymode(full_path, tmp_name)
        os.replace(tmp_name, full_path)
    finally:
        if tmp_name and Path(tmp_name).exists():
            os.unlink(tmp_name)
    catalog.sha256 = snapshot.sha256_hex(data)
    return full_path
