"""Middleware stages for the dispatch cycle.

Each stage is an ordered list of interceptors. An interceptor receives the
cycle ``State`` and returns ``Outcome.CONTINUE`` or ``Outcome.STOP``; the
runner folds over the list and short-circuits on the first stop. Anything
else returned (most often a forgotten ``return``) is treated as a stall and
stops the stage with a warning, so a cycle can never hang on middleware.
"""

from __future__ import annotations

from enum import Enum
import inspect
import logging
from typing import Awaitable, Callable, Dict, List, Union

from core.errors import MiddlewareStallError
from core.state import State

LOGGER = logging.getLogger(__name__)

STAGES = ("hear", "listen", "respond")


class Outcome(Enum):
    CONTINUE = "continue"
    STOP = "stop"


class PipelineOutcome(Enum):
    COMPLETED = "completed"
    STOPPED = "stopped"


Interceptor = Callable[[State], Union[Outcome, Awaitable[Outcome]]]


def _name(interceptor: Interceptor) -> str:
    return getattr(interceptor, "__qualname__", None) or repr(interceptor)


class Middleware:
    """Holds the hear, listen and respond interceptor stages."""

    def __init__(self) -> None:
        self._stages: Dict[str, List[Interceptor]] = {stage: [] for stage in STAGES}

    def register(self, stage: str, interceptor: Interceptor) -> Interceptor:
        if stage not in self._stages:
            raise ValueError(f"Unknown middleware stage: {stage}")
        self._stages[stage].append(interceptor)
        return interceptor

    # Stage shortcuts double as decorators.
    def hear(self, interceptor: Interceptor) -> Interceptor:
        return self.register("hear", interceptor)

    def listen(self, interceptor: Interceptor) -> Interceptor:
        return self.register("listen", interceptor)

    def respond(self, interceptor: Interceptor) -> Interceptor:
        return self.register("respond", interceptor)

    def interceptors(self, stage: str) -> List[Interceptor]:
        return list(self._stages[stage])

    async def run(self, stage: str, state: State) -> PipelineOutcome:
        """Run every interceptor of ``stage`` in registration order."""

        for interceptor in self._stages[stage]:
            try:
                outcome = interceptor(state)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception:
                LOGGER.exception("%s middleware %s raised; stopping stage", stage, _name(interceptor))
                return PipelineOutcome.STOPPED

            if outcome is Outcome.CONTINUE:
                continue
            if outcome is not Outcome.STOP:
                stall = MiddlewareStallError(
                    f"{stage} middleware {_name(interceptor)} returned {outcome!r}"
                )
                LOGGER.warning("%s; treating as stop", stall)
            LOGGER.debug("%s middleware %s stopped the stage", stage, _name(interceptor))
            return PipelineOutcome.STOPPED
        return PipelineOutcome.COMPLETED
