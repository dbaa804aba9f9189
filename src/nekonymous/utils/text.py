"""Formatting helpers for Telegram message bodies."""

from __future__ import annotations

import re

_MARKDOWN_V2_SPECIALS = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")


def escape_markdown_v2(text: str) -> str:
    """Escape every character Telegram treats as MarkdownV2 syntax."""
    return _MARKDOWN_V2_SPECIALS.sub(r"\\\1", text)


def to_persian_digits(value: int | str) -> str:
    """Replace ASCII digits with their Extended Arabic-Indic counterparts."""
    return re.sub(r"\d", lambda match: chr(ord(match.group()) + 1728), str(value))
