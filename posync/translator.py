from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable
import logging

from googletrans import Translator

from posync.config import Config
from posync.constants import DEFAULT_DEST_LANG, DEFAULT_SOURCE_LANG

logger = logging.getLogger(__name__)

TranslateFn = Callable[[str], Awaitable[str]]


class TranslationError(RuntimeError):
    pass


@dataclass(frozen=True)
class TransportOptions:
    """Outbound transport for translation requests, resolved once at startup."""

    proxy: str | None = None
    timeout: float | None = None

    @classmethod
    def from_config(cls, config: Config, proxy: str | None) -> "TransportOptions":
        return cls(proxy=proxy, timeout=config.translation.timeout)


def _result_text(result: object) -> str:
    if isinstance(result, dict):
        text = result.get("text")
    else:
        text = getattr(result, "text", None)
    if not isinstance(text, str):
        raise TypeError("translation response missing text")
    return text


def build_client(transport: TransportOptions) -> Translator:
    kwargs: dict[str, object] = {"raise_exception": True}
    if transport.proxy:
        kwargs["proxy"] = transport.proxy
    if transport.timeout is not None:
        kwargs["timeout"] = transport.timeout
    return Translator(**kwargs)


def make_translator(
    transport: TransportOptions,
    *,
    src: str = DEFAULT_SOURCE_LANG,
    dest: str = DEFAULT_DEST_LANG,
    client: object | None = None,
) -> TranslateFn:
    """Return an async ``text -> text`` callable bound to ``transport``.

    Any failure from the service surfaces as ``TranslationError``.
    """
    translator = client if client is not None else build_client(transport)

    async def translate(text: str) -> str:
        logger.debug("Translating %r (%s -> %s)", text, src, dest)
        try:
            result = await translator.translate(text, src=src, dest=dest)
            return _result_text(result)
        except Exception as exc:
            raise TranslationError(f"{type(exc).__name__}: {exc}") from exc

    return translate


@asynccontextmanager
async def open_translator(
    transport: TransportOptions,
    *,
    src: str = DEFAULT_SOURCE_LANG,
    dest: str = DEFAULT_DEST_LANG,
    client: object | None = None,
) -> AsyncIterator[TranslateFn]:
    """Yield a translate callable whose HTTP client is closed on exit."""
    active_client = client if client is not None else build_client(transport)
    async with active_client as session:
        yield make_translator(transport, src=src, dest=dest, client=session)
