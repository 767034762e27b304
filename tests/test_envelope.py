from __future__ import annotations

from core.envelope import Attachment, AttachmentTitle, Envelope
from core.models import Message


def test_envelope_preserves_additions_in_order() -> None:
    envelope = Envelope(room_id="r1", user_id="u1")
    envelope.write("first", "second")
    envelope.attach({"color": "#f4426e", "title": {"text": "Laws", "link": "https://example.com"}})
    envelope.compose("third", Attachment(fallback="plain"))
    envelope.payload.quick_reply("Door number 1").quick_reply("Door number 2", content="2")

    assert envelope.strings == ["first", "second", "third"]
    assert envelope.attachments[0].color == "#f4426e"
    assert envelope.attachments[0].title == AttachmentTitle(text="Laws", link="https://example.com")
    assert envelope.attachments[1].fallback == "plain"
    assert [reply.text for reply in envelope.payload.quick_replies] == ["Door number 1", "Door number 2"]
    assert [reply.content for reply in envelope.payload.quick_replies] == ["Door number 1", "2"]


def test_envelope_for_message_can_be_redirected() -> None:
    message = Message(text="hi", user_id="u1", room_id="r1", message_id=7)
    envelope = Envelope.for_message(message)
    assert (envelope.room_id, envelope.user_id, envelope.message_id) == ("r1", "u1", 7)

    envelope.to(room_id="r2").via("react")
    assert envelope.room_id == "r2"
    assert envelope.user_id == "u1"
    assert envelope.method == "react"


def test_empty_envelope() -> None:
    envelope = Envelope()
    assert envelope.is_empty()
    envelope.payload.quick_reply("yes")
    assert not envelope.is_empty()


def test_attachment_from_dict_with_string_title_and_replies() -> None:
    attachment = Attachment.from_dict({"title": "Plain", "quick_replies": [{"text": "ok"}]})
    assert attachment.title.text == "Plain"
    assert attachment.title.link is None
    assert attachment.quick_replies[0].content == "ok"
