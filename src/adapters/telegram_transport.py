"""Telegram transport adapter.

Formats envelopes as Markdown and delivers them with the Telethon client.
"""

from __future__ import annotations

import logging

from telethon import Button, errors, functions, types

from adapters.envelope_formatting import emoji_from_shortcode, format_envelope, quick_reply_labels
from core.envelope import Envelope

LOGGER = logging.getLogger(__name__)


def _peer(room_id: str):
    # Chat ids are carried as strings in the core; Telethon wants ints for ids.
    try:
        return int(room_id)
    except (TypeError, ValueError):
        return room_id


class TelegramTransport:
    """Transport adapter that sends replies through a Telethon client."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, envelope: Envelope) -> None:
        """Send the envelope text, with quick replies as a reply keyboard."""

        body = format_envelope(envelope, mode="markdown")
        labels = quick_reply_labels(envelope)
        buttons = [[Button.text(label, resize=True, single_use=True)] for label in labels] or None
        await self._client.send_message(
            _peer(envelope.room_id or envelope.user_id),
            body,
            parse_mode="md",
            buttons=buttons,
        )

    async def react(self, envelope: Envelope) -> None:
        """React to the source message with the envelope's emoji.

        Telegram only accepts emoji from its reaction set. When the chat
        rejects one, the emoji is sent as a reply to the source message.
        """

        if envelope.message_id is None:
            raise RuntimeError("Cannot react without a source message id")
        emojis = [emoji_from_shortcode(text) for text in envelope.strings]
        peer = _peer(envelope.room_id)
        try:
            await self._client(
                functions.messages.SendReactionRequest(
                    peer=peer,
                    msg_id=envelope.message_id,
                    reaction=[types.ReactionEmoji(emoticon=emoji) for emoji in emojis],
                )
            )
        except errors.ReactionInvalidError:
            LOGGER.info("Reaction %s rejected; replying with the emoji instead", " ".join(emojis))
            await self._client.send_message(peer, " ".join(emojis), reply_to=envelope.message_id)
