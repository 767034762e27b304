from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from core.branches import BranchRegistry
from core.config import Settings
from core.context import BotContext
from core.dispatcher import CycleStatus, Dispatcher
from core.envelope import Envelope
from core.middleware import Middleware
from core.models import Message
from scripts import demo


class FakeTransport:
    def __init__(self) -> None:
        self.sent: List[Envelope] = []
        self.reactions: List[Envelope] = []

    async def send(self, envelope: Envelope) -> None:
        self.sent.append(envelope)

    async def react(self, envelope: Envelope) -> None:
        self.reactions.append(envelope)


class FakeRequester:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.calls: List[tuple] = []

    async def get(self, url: str, params: Optional[dict] = None) -> Any:
        self.calls.append((url, params))
        return self.response


class FakeClock:
    def __init__(self, *times: float) -> None:
        self._times = list(times)

    def __call__(self) -> float:
        return self._times.pop(0)


def _bot(clock=None, request=None):
    registry = BranchRegistry()
    middleware = Middleware()
    context = BotContext(settings=Settings(), request=request)
    demo.register(registry, middleware, context.settings, clock=clock or (lambda: 1000.0))
    transport = FakeTransport()
    return Dispatcher(registry, middleware, transport, context), transport, context


def _message(text: str, *, addressed: bool = False) -> Message:
    return Message(
        text=text,
        user_id="111",
        user_name="user",
        room_id="shell",
        addressed=addressed,
        message_id=42,
    )


def _run(dispatcher: Dispatcher, text: str, addressed: bool = False):
    return asyncio.run(dispatcher.receive(_message(text, addressed=addressed)))


def _texts(envelopes: List[Envelope]) -> List[str]:
    return [text for envelope in envelopes for text in envelope.strings]


def test_hello_bots_responds_once() -> None:
    dispatcher, transport, _ = _bot()

    result = _run(dispatcher, "Hello bots!")

    assert result.fired == ["hello-bots"]
    assert _texts(transport.sent) == ["Hello 👋"]
    assert transport.reactions == []


def test_direct_hello_replies_with_sender_name() -> None:
    dispatcher, transport, _ = _bot()

    result = _run(dispatcher, "Hello", addressed=True)

    assert result.fired == ["hello-direct"]
    assert _texts(transport.sent) == ["@user Hey there."]


def test_hello_and_baby_react_together() -> None:
    dispatcher, transport, _ = _bot()

    result = _run(dispatcher, "Hello baby!")

    assert result.fired == ["hello-react", "baby-react"]
    assert [envelope.strings for envelope in transport.reactions] == [[":wave:"], [":baby:"]]
    assert all(envelope.message_id == 42 for envelope in transport.reactions)


def test_hello_react_is_rate_limited() -> None:
    dispatcher, transport, _ = _bot(clock=FakeClock(100.0, 101.0, 104.5))

    _run(dispatcher, "hello all")
    limited = _run(dispatcher, "hello all")
    _run(dispatcher, "hello all")

    assert limited.skipped == ["hello-react"]
    assert len(transport.reactions) == 2


def test_hear_middleware_ignores_users() -> None:
    dispatcher, transport, _ = _bot()

    result = _run(dispatcher, "hello users")

    assert result.status is CycleStatus.DISCARDED
    assert transport.sent == [] and transport.reactions == []


def test_beetlejuice_counter() -> None:
    dispatcher, transport, context = _bot()

    for _ in range(4):
        _run(dispatcher, "beetlejuice")

    assert _texts(transport.sent) == [demo.BEETLES[1], demo.BEETLES[2], demo.BEETLES[3], "😱"]
    assert context.memory.get("beetles") == 4


def test_door_prize_intro_envelope() -> None:
    dispatcher, transport, _ = _bot()

    _run(dispatcher, "I want a prize")

    envelope = transport.sent[0]
    assert envelope.strings == ["Choose your fate! 🚪... 🎁 "]
    assert envelope.attachments[0].color == "#f4426e"
    assert [reply.text for reply in envelope.payload.quick_replies] == [
        "Door number 1",
        "Door number 2",
        "Door number 3",
    ]


def test_door_prize_award_uses_condition_capture() -> None:
    dispatcher, transport, _ = _bot()

    _run(dispatcher, "what's behind door number 2")
    out_of_range = _run(dispatcher, "door number 5")

    assert _texts(transport.sent) == ["You win a monkey 🐒"]
    assert out_of_range.status is CycleStatus.UNMATCHED


def test_spare_car_is_given_out_second() -> None:
    dispatcher, transport, context = _bot()

    for _ in range(3):
        _run(dispatcher, "door number 3")

    assert _texts(transport.sent) == [
        f"It's a new car!! {demo.CAR}",
        f"It's a new car!! {demo.SPARE_CAR}",
        f"It's a new car!! {demo.CAR}",
    ]
    assert context.memory.get("spare-car") == demo.SPARE_CAR


def test_ping_delay_reads_capture() -> None:
    dispatcher, transport, _ = _bot()

    result = _run(dispatcher, "bot ping back in 0 seconds", addressed=True)

    assert result.fired == ["ping-delay"]
    assert _texts(transport.sent) == ["Ping 🏓"]


def test_attach_image() -> None:
    dispatcher, transport, _ = _bot()

    _run(dispatcher, "bot attach image")

    attachment = transport.sent[0].attachments[0]
    assert attachment.title.text == "Asimov's Three Laws of Robotics"
    assert attachment.fallback.startswith("See: ")


def test_film_awards_requires_api_key() -> None:
    dispatcher, transport, context = _bot()

    result = _run(dispatcher, "Beetlejuice awards?")

    assert result.fired == ["film-awards"]
    assert _texts(transport.sent) == ["Sorry, you need an API key for omdbapi.com"]
    assert context.memory.get("beetles") is None


def test_film_awards_looks_up_title() -> None:
    requester = FakeRequester(
        {"Response": "True", "Title": "Beetlejuice", "Year": "1988", "Awards": "Won 1 Oscar."}
    )
    dispatcher, transport, context = _bot(request=requester)
    context.settings.set("omdb-api-key", "secret")

    _run(dispatcher, "Beetlejuice awards?")

    assert requester.calls == [(demo.OMDB_URL, {"t": "Beetlejuice", "apikey": "secret"})]
    assert _texts(transport.sent) == ["Beetlejuice (1988): Won 1 Oscar."]


def test_film_awards_unknown_title() -> None:
    dispatcher, transport, context = _bot(request=FakeRequester({"Response": "False"}))
    context.settings.set("omdb-api-key", "secret")

    _run(dispatcher, "Nothing awards")

    assert _texts(transport.sent) == ["Can't find any film by that name."]


def test_where_from_uses_extended_setting() -> None:
    dispatcher, transport, context = _bot()

    _run(dispatcher, "bot where are you from", addressed=True)
    context.settings.set("flag", "🇳🇿")
    _run(dispatcher, "bot where are you from", addressed=True)
    _run(dispatcher, "where are you from")

    assert _texts(transport.sent) == [context.settings.options()["flag"].default, "🇳🇿"]
