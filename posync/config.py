from __future__ import annotations

from pathlib import Path
from typing import Literal
import json
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from posync.constants import (
    BACKUP_SUFFIX,
    DEFAULT_DEST_LANG,
    DEFAULT_REFERENCE_PATH,
    DEFAULT_SOURCE_LANG,
    DEFAULT_TARGET_PATH,
    PROJECT_DIRNAME,
    PROXY_ENV_VAR,
)


class _BaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PathsConfig(_BaseModel):
    reference: StrictStr = DEFAULT_REFERENCE_PATH
    target: StrictStr = DEFAULT_TARGET_PATH
    backup: StrictStr | None = None

    @field_validator("reference", "target")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("catalog paths must not be empty")
        return value


class TranslationConfig(_BaseModel):
    source_lang: StrictStr = DEFAULT_SOURCE_LANG
    dest_lang: StrictStr = DEFAULT_DEST_LANG
    timeout: float | None = Field(default=None, gt=0)
    proxy_env: StrictStr = PROXY_ENV_VAR


class Config(_BaseModel):
    format: Literal[1] = 1
    paths: PathsConfig = Field(default_factory=PathsConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)


def backup_path_for(target: Path) -> Path:
    """Return the sibling backup catalog path, e.g. ``zh-Hans.po`` -> ``zh-Hans.bk.po``."""
    return target.with_name(f"{target.stem}{BACKUP_SUFFIX}{target.suffix}")


def resolve_paths(
    config: Config,
    root: Path,
    *,
    reference: Path | None = None,
    target: Path | None = None,
    backup: Path | None = None,
) -> tuple[Path, Path, Path]:
    def _resolve(value: Path | str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else root / path

    reference_path = _resolve(reference or config.paths.reference)
    target_path = _resolve(target or config.paths.target)
    if backup is not None:
        backup_path = _resolve(backup)
    elif config.paths.backup:
        backup_path = _resolve(config.paths.backup)
    else:
        backup_path = backup_path_for(target_path)
    return reference_path, target_path, backup_path


def require_proxy_url(config: Config, root: Path) -> str:
    load_dotenv(root / ".env", override=False)
    name = config.translation.proxy_env
    proxy_url = os.getenv(name)
    if not proxy_url:
        raise RuntimeError(f"{name} environment variable is not set")
    return proxy_url


def config_path_for(root: Path) -> Path:
    return root / PROJECT_DIRNAME / "config.json"


def load_config(config_path: Path) -> Config:
    raw = json.loads(config_path.read_text(encoding="utf-8"))
    return Config.model_validate(raw)


def load_config_from_root(root: Path) -> Config:
    config_path = config_path_for(root)
    if not config_path.exists():
        return Config()
    return load_config(config_path)
