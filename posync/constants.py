"""String constants used across posync modules."""


class SyncAction:
    """Per-entry outcomes reported by the sync and rollback policies."""

    UPDATED = "Updated from English"
    TRANSLATED = "Translated non-English text"
    ROLLED_BACK = "Rolling back"
    FAILED = "Translation failed"


# English lookup value meaning "deliberately untranslated".
NONE_SENTINEL = "none"

HEADER_MARKERS = ("Project-Id-Version", "Report-Msgid-Bugs-To")

NON_ASCII_PATTERN = r"[^\x00-\x7F]"

PROXY_ENV_VAR = "SOCK5_PROXY"

DEFAULT_REFERENCE_PATH = "international/en.po"
DEFAULT_TARGET_PATH = "chinese/zh-Hans.po"
BACKUP_SUFFIX = ".bk"

DEFAULT_SOURCE_LANG = "auto"
DEFAULT_DEST_LANG = "en"

PROJECT_DIRNAME = ".posync"
