"""Response envelopes (core domain).

An envelope is a mutable response buffer addressed to a user/room. Branch
callbacks and middleware build it up incrementally; it is only handed to a
transport after the respond middleware stage has run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from core.models import Message

DEFAULT_METHOD = "send"


@dataclass
class QuickReply:
    """Interactive button offering a canned reply."""

    text: str
    content: Optional[str] = None

    def __post_init__(self) -> None:
        if self.content is None:
            self.content = self.text


@dataclass
class AttachmentTitle:
    text: str
    link: Optional[str] = None


@dataclass
class Attachment:
    """Rich message attachment. Rendering support depends on the transport."""

    color: Optional[str] = None
    title: Optional[AttachmentTitle] = None
    image: Optional[str] = None
    fallback: Optional[str] = None
    quick_replies: List[QuickReply] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Attachment":
        title = raw.get("title")
        if isinstance(title, str):
            title = AttachmentTitle(text=title)
        elif isinstance(title, dict):
            title = AttachmentTitle(text=title.get("text", ""), link=title.get("link"))
        replies = [
            reply if isinstance(reply, QuickReply) else QuickReply(**reply)
            for reply in raw.get("quick_replies", [])
        ]
        return cls(
            color=raw.get("color"),
            title=title,
            image=raw.get("image"),
            fallback=raw.get("fallback"),
            quick_replies=replies,
        )

    def quick_reply(self, text: str, content: Optional[str] = None) -> "Attachment":
        self.quick_replies.append(QuickReply(text=text, content=content))
        return self


@dataclass
class Payload:
    """Interactive elements that travel alongside the envelope text."""

    quick_replies: List[QuickReply] = field(default_factory=list)

    def quick_reply(self, text: str, content: Optional[str] = None) -> "Payload":
        self.quick_replies.append(QuickReply(text=text, content=content))
        return self

    def is_empty(self) -> bool:
        return not self.quick_replies


Content = Union[str, Attachment, Dict[str, Any]]


@dataclass
class Envelope:
    """Response payload pending delivery."""

    room_id: Optional[str] = None
    user_id: Optional[str] = None
    message_id: Optional[Any] = None
    method: str = DEFAULT_METHOD
    strings: List[str] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    payload: Payload = field(default_factory=Payload)

    @classmethod
    def for_message(cls, message: Message) -> "Envelope":
        """Address a new envelope back to where ``message`` came from."""

        return cls(
            room_id=message.room_id,
            user_id=message.user_id,
            message_id=message.message_id,
        )

    def write(self, *strings: str) -> "Envelope":
        self.strings.extend(str(text) for text in strings)
        return self

    def attach(self, attachment: Union[Attachment, Dict[str, Any]]) -> "Envelope":
        if isinstance(attachment, dict):
            attachment = Attachment.from_dict(attachment)
        self.attachments.append(attachment)
        return self

    def compose(self, *content: Content) -> "Envelope":
        """Add strings and attachments in the order given."""

        for item in content:
            if isinstance(item, (Attachment, dict)):
                self.attach(item)
            elif item is not None:
                self.write(item)
        return self

    def to(self, user_id: Optional[str] = None, room_id: Optional[str] = None) -> "Envelope":
        """Redirect the envelope before dispatch."""

        if user_id is not None:
            self.user_id = user_id
        if room_id is not None:
            self.room_id = room_id
        return self

    def via(self, method: str) -> "Envelope":
        self.method = method
        return self

    def is_empty(self) -> bool:
        return not self.strings and not self.attachments and self.payload.is_empty()
