"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Iterable, Optional

from telethon.tl.custom import Message as TelegramMessage

from adapters.addressing import is_addressed
from core.models import Message


def _display_name(sender) -> Optional[str]:
    if sender is None:
        return None
    username = getattr(sender, "username", None)
    if isinstance(username, str) and username:
        return username
    first = getattr(sender, "first_name", None)
    last = getattr(sender, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    return None


async def build_message(message: TelegramMessage, bot_names: Iterable[Optional[str]]) -> Message:
    """Build a core Message from a Telethon Message.

    Private chats are always addressed. In groups the bot is addressed when it
    is mentioned or when the text starts with one of its names.
    """

    text = message.raw_text or ""
    sender = await message.get_sender()
    addressed = bool(
        getattr(message, "is_private", False)
        or getattr(message, "mentioned", False)
        or is_addressed(text, bot_names)
    )

    return Message(
        text=text,
        user_id=str(message.sender_id),
        user_name=_display_name(sender),
        room_id=str(message.chat_id),
        addressed=addressed,
        message_id=message.id,
        date=message.date,
    )
