"""Shell-to-core message mapping adapter."""

from __future__ import annotations

import itertools
from typing import Iterable, Optional

from adapters.addressing import is_addressed
from core.models import Message

_IDS = itertools.count(1)


def build_message(
    text: str,
    *,
    user_id: str,
    user_name: str,
    room_id: str,
    bot_names: Iterable[Optional[str]],
    private: bool = False,
) -> Message:
    """Build a core Message from a line typed in the shell.

    A shell session behaves like a group room unless ``private`` is set, so
    direct branches need the bot's name or alias as a prefix.
    """

    return Message(
        text=text,
        user_id=user_id,
        user_name=user_name,
        room_id=room_id,
        addressed=private or is_addressed(text, bot_names),
        message_id=next(_IDS),
    )
