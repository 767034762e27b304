"""Branch registration and matching (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
import itertools
import logging
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple, Union

from core.matcher import MatchSpec, build_spec, evaluate
from core.models import DIRECT_SCOPE, GLOBAL_SCOPE, MatchResult, Message
from core.state import State

LOGGER = logging.getLogger(__name__)

BranchCallback = Callable[[State], Union[Any, Awaitable[Any]]]
SCOPES = (GLOBAL_SCOPE, DIRECT_SCOPE)


@dataclass(frozen=True)
class Branch:
    """Registered (match specification, callback) pair with dispatch options."""

    id: str
    spec: MatchSpec
    callback: BranchCallback
    force: bool = False
    scope: str = GLOBAL_SCOPE

    def evaluate(self, message: Message) -> Optional[MatchResult]:
        return evaluate(message, self.spec, self.scope)


class BranchRegistry:
    """Ordered collection of branches; registration order is match order."""

    def __init__(self) -> None:
        self._branches: List[Branch] = []
        self._ids: Set[str] = set()
        self._counter = itertools.count(1)

    def __len__(self) -> int:
        return len(self._branches)

    def __iter__(self):
        return iter(list(self._branches))

    def register(
        self,
        spec: Any,
        callback: BranchCallback,
        *,
        id: Optional[str] = None,
        force: bool = False,
        scope: str = GLOBAL_SCOPE,
    ) -> Branch:
        """Compile ``spec`` and append a branch.

        Raises ``MatchError`` when the specification is malformed; nothing is
        registered in that case.
        """

        if scope not in SCOPES:
            raise ValueError(f"Unsupported branch scope: {scope}")
        compiled = build_spec(spec)
        branch_id = id or f"branch-{next(self._counter)}"
        if branch_id in self._ids:
            # Duplicate ids are allowed; they usually point at a copy-paste slip.
            LOGGER.warning("Branch id %s registered more than once", branch_id)
        self._ids.add(branch_id)

        branch = Branch(id=branch_id, spec=compiled, callback=callback, force=force, scope=scope)
        self._branches.append(branch)
        LOGGER.debug("Registered %s branch %s (force=%s)", scope, branch_id, force)
        return branch

    def text(self, spec: Any, callback: BranchCallback, **options: Any) -> Branch:
        """Register a branch that can match any message."""

        return self.register(spec, callback, scope=GLOBAL_SCOPE, **options)

    def direct(self, spec: Any, callback: BranchCallback, **options: Any) -> Branch:
        """Register a branch that only matches messages addressed to the bot."""

        return self.register(spec, callback, scope=DIRECT_SCOPE, **options)

    def match_all(self, message: Message) -> List[Tuple[Branch, MatchResult]]:
        """Return every matching branch with its result, in registration order."""

        matches: List[Tuple[Branch, MatchResult]] = []
        for branch in self._branches:
            try:
                result = branch.evaluate(message)
            except Exception:
                LOGGER.exception("Predicate for branch %s raised; treating as no match", branch.id)
                continue
            if result is not None:
                matches.append((branch, result))
        return matches

    def clear(self) -> None:
        self._branches.clear()
        self._ids.clear()
