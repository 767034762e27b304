"""Core message dispatch cycle.

This module is platform-agnostic. It only relies on the transport port for
delivery, enabling new chat adapters without changes here.

The cycle enforces a strict order:
1) Build State from the Message
2) Run hear middleware (stop => discarded)
3) Match against the registry in registration order
4) Per match: listen middleware, then the branch callback
5) First non-forced branch claims the message; forced ones still run
6) Collect envelopes in callback order
7) Run respond middleware over the batch (stop => suppressed)
8) Deliver each envelope through the transport
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import inspect
import logging
from typing import Any, List, Optional

from core.branches import Branch, BranchRegistry
from core.context import BotContext
from core.envelope import Envelope
from core.errors import CallbackFailure, DeliveryError
from core.middleware import Middleware, PipelineOutcome
from core.models import Message
from core.ports import TransportPort
from core.state import State

LOGGER = logging.getLogger(__name__)


class CycleStatus(Enum):
    DISCARDED = "discarded"
    UNMATCHED = "unmatched"
    SUPPRESSED = "suppressed"
    DELIVERED = "delivered"


@dataclass
class CycleResult:
    """Summary of one dispatch cycle, mostly useful to tests and logs."""

    status: CycleStatus
    state: State
    fired: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failures: List[CallbackFailure] = field(default_factory=list)
    delivered: List[Envelope] = field(default_factory=list)
    delivery_errors: List[DeliveryError] = field(default_factory=list)


def _returned_envelopes(value: Any) -> List[Envelope]:
    if isinstance(value, Envelope):
        return [value]
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, Envelope)]
    return []


class Dispatcher:
    """Orchestrates middleware, matching, callbacks and delivery."""

    def __init__(
        self,
        registry: BranchRegistry,
        middleware: Middleware,
        transport: TransportPort,
        context: Optional[BotContext] = None,
    ) -> None:
        self._registry = registry
        self._middleware = middleware
        self._transport = transport
        self._context = context or BotContext()

    @property
    def context(self) -> BotContext:
        return self._context

    async def receive(self, message: Message) -> CycleResult:
        """Process one message through the full dispatch cycle."""

        state = State(message, self._context)

        if await self._middleware.run("hear", state) is PipelineOutcome.STOPPED:
            state.done = True
            LOGGER.info("Hear middleware discarded message from %s", message.user_id)
            return CycleResult(CycleStatus.DISCARDED, state)

        matches = self._registry.match_all(message)
        if not matches:
            LOGGER.debug("No branch matched message from %s", message.user_id)
            return CycleResult(CycleStatus.UNMATCHED, state)

        result = CycleResult(CycleStatus.DELIVERED, state)
        claimed = False
        for branch, match in matches:
            if claimed and not branch.force:
                result.skipped.append(branch.id)
                continue

            state.branch = branch
            state.match = match
            if await self._middleware.run("listen", state) is PipelineOutcome.STOPPED:
                LOGGER.info("Listen middleware skipped branch %s", branch.id)
                result.skipped.append(branch.id)
                continue

            failure = await self._invoke(branch, state)
            if failure is not None:
                result.failures.append(failure)
                continue

            result.fired.append(branch.id)
            if not branch.force:
                claimed = True

        if not state.envelopes:
            return result

        if await self._middleware.run("respond", state) is PipelineOutcome.STOPPED:
            state.done = True
            LOGGER.info("Respond middleware suppressed %s envelope(s)", len(state.envelopes))
            result.status = CycleStatus.SUPPRESSED
            return result

        for envelope in state.envelopes:
            if envelope.is_empty():
                continue
            try:
                await self._deliver(envelope)
            except DeliveryError as exc:
                LOGGER.error("%s (room=%s)", exc, envelope.room_id)
                result.delivery_errors.append(exc)
                continue
            result.delivered.append(envelope)
        return result

    async def _invoke(self, branch: Branch, state: State) -> Optional[CallbackFailure]:
        # Only this branch's contribution is rolled back when its callback fails.
        queued = len(state.envelopes)
        try:
            returned = branch.callback(state)
            if inspect.isawaitable(returned):
                returned = await returned
        except Exception as exc:
            LOGGER.exception("Branch %s callback failed", branch.id)
            del state.envelopes[queued:]
            state.discard_pending()
            return CallbackFailure(branch.id, exc)

        for envelope in _returned_envelopes(returned):
            if not any(envelope is queued_env for queued_env in state.envelopes):
                state.envelopes.append(envelope)
        state.discard_pending()
        return None

    async def _deliver(self, envelope: Envelope) -> None:
        method = envelope.method
        handler = None if method.startswith("_") else getattr(self._transport, method, None)
        if handler is None or not callable(handler):
            raise DeliveryError(method, "method not supported by transport")
        try:
            outcome = handler(envelope)
            if inspect.isawaitable(outcome):
                await outcome
        except DeliveryError:
            raise
        except Exception as exc:
            raise DeliveryError(method, str(exc) or type(exc).__name__) from exc
