from __future__ import annotations

import asyncio
from typing import List

from core.branches import BranchRegistry
from core.context import BotContext
from core.dispatcher import CycleStatus, Dispatcher
from core.envelope import Envelope
from core.middleware import Middleware, Outcome
from core.models import Message


class FakeTransport:
    def __init__(self) -> None:
        self.sent: List[Envelope] = []
        self.reactions: List[Envelope] = []

    async def send(self, envelope: Envelope) -> None:
        self.sent.append(envelope)

    async def react(self, envelope: Envelope) -> None:
        self.reactions.append(envelope)


class SendOnlyTransport:
    def __init__(self) -> None:
        self.sent: List[Envelope] = []

    async def send(self, envelope: Envelope) -> None:
        self.sent.append(envelope)


class FailingTransport:
    async def send(self, envelope: Envelope) -> None:
        raise ConnectionError("offline")


def _message(text: str, *, addressed: bool = False) -> Message:
    return Message(text=text, user_id="111", user_name="user", room_id="shell", addressed=addressed)


def _setup(transport=None):
    registry = BranchRegistry()
    middleware = Middleware()
    transport = transport or FakeTransport()
    dispatcher = Dispatcher(registry, middleware, transport, BotContext())
    return registry, middleware, transport, dispatcher


def _texts(envelopes: List[Envelope]) -> List[str]:
    return [text for envelope in envelopes for text in envelope.strings]


def test_forced_branch_fires_after_first_match() -> None:
    registry, _, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("B1"), id="b1")
    registry.text(r"hello", lambda b: b.respond("B2"), id="b2", force=True)

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert result.status is CycleStatus.DELIVERED
    assert result.fired == ["b1", "b2"]
    assert _texts(transport.sent) == ["B1", "B2"]


def test_only_first_non_forced_branch_fires() -> None:
    registry, _, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("B1"), id="b1")
    registry.text(r"hello", lambda b: b.respond("B3"), id="b3")

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert result.fired == ["b1"]
    assert result.skipped == ["b3"]
    assert _texts(transport.sent) == ["B1"]


def test_unmatched_message() -> None:
    registry, _, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("hi"))

    result = asyncio.run(dispatcher.receive(_message("goodbye")))

    assert result.status is CycleStatus.UNMATCHED
    assert transport.sent == []


def test_hear_stop_prevents_every_callback() -> None:
    registry, middleware, transport, dispatcher = _setup()
    calls = []
    registry.text(r"hello", lambda b: calls.append("b1"), id="b1")
    registry.text(r"hello", lambda b: calls.append("b2"), id="b2", force=True)
    middleware.hear(lambda b: Outcome.STOP)

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert result.status is CycleStatus.DISCARDED
    assert result.state.done is True
    assert calls == []
    assert transport.sent == []


def test_listen_stop_skips_only_that_branch() -> None:
    registry, middleware, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("B1"), id="b1")
    registry.text(r"hello", lambda b: b.respond("B2"), id="b2", force=True)

    @middleware.listen
    def block_b1(b) -> Outcome:
        return Outcome.STOP if b.branch.id == "b1" else Outcome.CONTINUE

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert result.skipped == ["b1"]
    assert result.fired == ["b2"]
    assert _texts(transport.sent) == ["B2"]


def test_listen_skip_lets_next_non_forced_branch_claim() -> None:
    registry, middleware, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("B1"), id="b1")
    registry.text(r"hello", lambda b: b.respond("B3"), id="b3")
    middleware.listen(lambda b: Outcome.STOP if b.branch.id == "b1" else Outcome.CONTINUE)

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert result.fired == ["b3"]


def test_callback_failure_is_isolated() -> None:
    registry, _, transport, dispatcher = _setup()

    def broken(b):
        b.respond("never delivered")
        raise RuntimeError("boom")

    registry.text(r"hello", lambda b: b.respond("first"), id="first", force=True)
    registry.text(r"hello", broken, id="broken")
    registry.text(r"hello", lambda b: b.respond("forced"), id="forced", force=True)

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert [failure.branch_id for failure in result.failures] == ["broken"]
    assert result.fired == ["first", "forced"]
    assert _texts(transport.sent) == ["first", "forced"]


def test_async_callbacks_are_awaited_and_returned_envelopes_collected() -> None:
    registry, _, transport, dispatcher = _setup()

    async def later(b):
        await asyncio.sleep(0)
        return Envelope(room_id="elsewhere").write("async")

    registry.text(r"hello", later, id="later")

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert result.fired == ["later"]
    assert transport.sent[0].room_id == "elsewhere"
    assert _texts(transport.sent) == ["async"]


def test_returned_envelope_is_not_queued_twice() -> None:
    registry, _, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("once"))

    asyncio.run(dispatcher.receive(_message("hello")))

    assert _texts(transport.sent) == ["once"]


def test_respond_middleware_sees_whole_batch_and_can_rewrite() -> None:
    registry, middleware, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("one"), id="a")
    registry.text(r"hello", lambda b: b.respond("two"), id="b", force=True)
    batches = []

    @middleware.respond
    def shout(b) -> Outcome:
        batches.append(len(b.envelopes))
        for envelope in b.envelopes:
            envelope.strings = [text.upper() for text in envelope.strings]
        return Outcome.CONTINUE

    asyncio.run(dispatcher.receive(_message("hello")))

    assert batches == [2]
    assert _texts(transport.sent) == ["ONE", "TWO"]


def test_respond_stop_suppresses_delivery() -> None:
    registry, middleware, transport, dispatcher = _setup()
    registry.text(r"hello", lambda b: b.respond("hi"))
    middleware.respond(lambda b: Outcome.STOP)

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert result.status is CycleStatus.SUPPRESSED
    assert result.fired
    assert transport.sent == []


def test_unsupported_delivery_method_is_reported() -> None:
    registry, _, transport, dispatcher = _setup(SendOnlyTransport())
    registry.text(r"hello", lambda b: b.respond_via("react", ":wave:"), id="react")
    registry.text(r"hello", lambda b: b.respond("text"), id="text", force=True)

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert [error.method for error in result.delivery_errors] == ["react"]
    assert _texts(transport.sent) == ["text"]
    assert _texts(result.delivered) == ["text"]


def test_transport_failure_becomes_delivery_error() -> None:
    registry, _, _, dispatcher = _setup(FailingTransport())
    registry.text(r"hello", lambda b: b.respond("hi"))

    result = asyncio.run(dispatcher.receive(_message("hello")))

    assert len(result.delivery_errors) == 1
    assert "offline" in str(result.delivery_errors[0])
    assert result.delivered == []


def test_slow_cycle_does_not_block_other_messages() -> None:
    registry, _, transport, dispatcher = _setup()

    async def scenario() -> None:
        release = asyncio.Event()

        async def slow(b):
            await release.wait()
            return b.respond("slow")

        registry.text(r"slow", slow)
        registry.text(r"fast", lambda b: b.respond("fast"))

        pending = asyncio.create_task(dispatcher.receive(_message("slow")))
        await asyncio.sleep(0)
        await dispatcher.receive(_message("fast"))
        assert _texts(transport.sent) == ["fast"]

        release.set()
        await pending

    asyncio.run(scenario())

    assert _texts(transport.sent) == ["fast", "slow"]


def test_callback_reads_named_conditions() -> None:
    registry, _, transport, dispatcher = _setup()
    registry.text(
        {"door": {"after": "door", "range": "1-3"}},
        lambda b: b.respond(f"door {b.conditions['door']}"),
    )
    registry.text(r"plain", lambda b: b.respond(str(b.conditions)))

    result = asyncio.run(dispatcher.receive(_message("door number 2")))
    asyncio.run(dispatcher.receive(_message("plain")))

    assert result.failures == []
    assert _texts(transport.sent) == ["door 2", "{}"]
