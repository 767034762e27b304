"""Shell transport adapter.

Renders envelopes as plain text and hands each line to a sink, which is the
Textual log widget in the interactive shell and a list in tests.
"""

from __future__ import annotations

from typing import Callable

from adapters.envelope_formatting import format_envelope
from core.envelope import Envelope


class ShellTransport:
    """Transport adapter writing replies to a text sink."""

    def __init__(self, sink: Callable[[str], None], bot_name: str) -> None:
        self._sink = sink
        self._bot_name = bot_name

    async def send(self, envelope: Envelope) -> None:
        body = format_envelope(envelope, mode="plain")
        self._sink(f"{self._bot_name}: {body}")

    async def react(self, envelope: Envelope) -> None:
        # Shells cannot attach reactions to a line, so the shortcode is shown.
        reactions = " ".join(envelope.strings)
        self._sink(f"{self._bot_name} reacts {reactions}")
