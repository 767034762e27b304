"""Per-message dispatch state.

A ``State`` is created when a message arrives and discarded once the cycle
ends. Middleware and branch callbacks receive it and use its helpers to queue
envelopes for delivery.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from core.context import BotContext
from core.envelope import Content, Envelope
from core.models import MatchResult, Message

if TYPE_CHECKING:
    from core.branches import Branch


class State:
    """Mutable context for one dispatch cycle."""

    def __init__(self, message: Message, bot: BotContext) -> None:
        self.message = message
        self.bot = bot
        self.branch: Optional["Branch"] = None
        self.match: Optional[MatchResult] = None
        self.envelopes: List[Envelope] = []
        self.done = False
        self._pending: Optional[Envelope] = None

    @property
    def memory(self):
        return self.bot.memory

    @property
    def settings(self):
        return self.bot.settings

    @property
    def captured(self) -> Union[Dict[str, str], str, None]:
        """Condition captures: the named map, or the single unnamed value."""

        if self.match is None:
            return None
        if self.match.named:
            return dict(self.match.named)
        return self.match.captures[0] if self.match.captures else None

    @property
    def conditions(self) -> Dict[str, str]:
        """Named condition captures; empty when the match had none."""

        if self.match is None:
            return {}
        return dict(self.match.named)

    @property
    def envelope(self) -> Envelope:
        """Envelope being prepared by the current callback, created on demand."""

        if self._pending is None:
            self._pending = Envelope.for_message(self.message)
        return self._pending

    def _take_envelope(self) -> Envelope:
        envelope = self.envelope
        self._pending = None
        return envelope

    def _queue(self, envelope: Envelope) -> Optional[Envelope]:
        if envelope.is_empty():
            return None
        self.envelopes.append(envelope)
        return envelope

    def respond(self, *content: Content) -> Optional[Envelope]:
        """Queue the pending envelope plus ``content`` for delivery."""

        return self._queue(self._take_envelope().compose(*content))

    def reply(self, *content: Content) -> Optional[Envelope]:
        """Like ``respond`` but prefixes text with the sender's name."""

        name = self.message.user_name or self.message.user_id
        prefixed: List[Any] = [
            f"@{name} {item}" if isinstance(item, str) else item for item in content
        ]
        return self.respond(*prefixed)

    def respond_via(self, method: str, *content: Content) -> Optional[Envelope]:
        """Queue content for a platform-specific delivery method."""

        return self._queue(self._take_envelope().via(method).compose(*content))

    def discard_pending(self) -> None:
        self._pending = None
