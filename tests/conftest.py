from __future__ import annotations

import copy
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from posync.config import Config  # noqa: E402

PO_HEADER = (
    'msgid ""\n'
    'msgstr ""\n'
    '"Project-Id-Version: demo 1.0\\n"\n'
    '"Content-Type: text/plain; charset=UTF-8\\n"\n'
    "\n"
)

# Keys deliberately out of polib's canonical metadata order.
REORDERED_HEADER = (
    "# Chinese translation for demo.\n"
    'msgid ""\n'
    'msgstr ""\n'
    '"Content-Type: text/plain; charset=UTF-8\\n"\n'
    '"Language: zh_Hans\\n"\n'
    '"Project-Id-Version: demo 1.0\\n"\n'
    '"X-Generator: Poedit 3.4\\n"\n'
    '"MIME-Version: 1.0\\n"\n'
    "\n"
)


def _quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def po_text(entries: list[tuple[str, str]], *, header: bool | str = True) -> str:
    if isinstance(header, str):
        parts = [header]
    else:
        parts = [PO_HEADER] if header else []
    for msgid, msgstr in entries:
        parts.append(f'msgid "{_quote(msgid)}"\nmsgstr "{_quote(msgstr)}"\n\n')
    return "".join(parts)


def write_po(path: Path, entries: list[tuple[str, str]], *, header: bool | str = True) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(po_text(entries, header=header), encoding="utf-8")
    return path


def header_block_of(path: Path) -> bytes:
    """Raw bytes of the file up to its first blank line."""
    return path.read_bytes().split(b"\n\n", 1)[0]


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def build_config_dict(overrides: dict | None = None) -> dict:
    base = {
        "format": 1,
        "paths": {
            "reference": "international/en.po",
            "target": "chinese/zh-Hans.po",
        },
        "translation": {
            "source_lang": "auto",
            "dest_lang": "en",
            "proxy_env": "SOCK5_PROXY",
        },
    }
    if overrides:
        return _deep_merge(base, overrides)
    return base


def build_config(overrides: dict | None = None) -> Config:
    return Config.model_validate(build_config_dict(overrides))
