"""Keyboard builders for the main menu and per-message inline controls.

Everything here is a pure function of its arguments; callers build a fresh
markup for each outbound message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from nekonymous.services.tickets import Ticket

MENU_GET_LINK: Final[str] = "get_link"
MENU_ABOUT: Final[str] = "about"

_MENU_LABELS: Final[dict[str, dict[str, str]]] = {
    "en": {MENU_ABOUT: "About & privacy", MENU_GET_LINK: "Get link"},
    "fa": {MENU_ABOUT: "درباره و حریم خصوصی", MENU_GET_LINK: "دریافت لینک"},
}
_FALLBACK_LOCALE: Final[str] = "en"

ACTION_REPLY: Final[str] = "reply"
ACTION_BLOCK: Final[str] = "block"
ACTION_UNBLOCK: Final[str] = "unblock"
_ACTIONS: Final[tuple[str, ...]] = (ACTION_REPLY, ACTION_BLOCK, ACTION_UNBLOCK)

_CONTROL_LABELS: Final[dict[str, str]] = {
    ACTION_REPLY: "Reply",
    ACTION_BLOCK: "Block",
    ACTION_UNBLOCK: "Unblock",
}


@dataclass(frozen=True)
class MenuSpec:
    """Reply keyboard layout as ``(command, label)`` rows."""

    rows: tuple[tuple[tuple[str, str], ...], ...]

    def to_markup(self) -> dict[str, Any]:
        """Render as a Bot API ``ReplyKeyboardMarkup``."""
        return {
            "keyboard": [[{"text": label} for _, label in row] for row in self.rows],
            "resize_keyboard": True,
        }


def build_menu(locale: str | None = None) -> MenuSpec:
    """Return the main menu for ``locale`` (falls back to English)."""
    labels = _MENU_LABELS.get(locale or _FALLBACK_LOCALE, _MENU_LABELS[_FALLBACK_LOCALE])
    return MenuSpec(rows=(((MENU_ABOUT, labels[MENU_ABOUT]), (MENU_GET_LINK, labels[MENU_GET_LINK])),))


def resolve_menu_command(text: str | None) -> str | None:
    """Map a pressed menu label in any locale back to its command."""
    if not text:
        return None
    for labels in _MENU_LABELS.values():
        for command, label in labels.items():
            if label == text.strip():
                return command
    return None


def build_reply_controls(ticket: Ticket, is_blocked: bool) -> dict[str, Any]:
    """Return the inline keyboard shown under a delivered message."""
    toggle = ACTION_UNBLOCK if is_blocked else ACTION_BLOCK
    return {
        "inline_keyboard": [
            [
                {"text": _CONTROL_LABELS[toggle], "callback_data": f"{toggle}_{ticket.value}"},
                {"text": _CONTROL_LABELS[ACTION_REPLY], "callback_data": f"{ACTION_REPLY}_{ticket.value}"},
            ]
        ]
    }


def parse_callback_data(data: str | None) -> tuple[str, Ticket] | None:
    """Split ``<action>_<ticket>`` callback data; None if it is not ours."""
    if not data or "_" not in data:
        return None
    action, _, value = data.partition("_")
    if action not in _ACTIONS or not value:
        return None
    return action, Ticket(value)
