"""Error taxonomy for the dispatch pipeline."""

from __future__ import annotations


class BranchbotError(Exception):
    """Base class for all branchbot errors."""


class MatchError(BranchbotError):
    """Raised at registration time for a malformed match specification."""


class CallbackFailure(BranchbotError):
    """A branch callback raised; recorded per branch, never fatal to a cycle."""

    def __init__(self, branch_id: str, cause: BaseException) -> None:
        super().__init__(f"Branch {branch_id} failed: {cause!r}")
        self.branch_id = branch_id
        self.cause = cause


class MiddlewareStallError(BranchbotError):
    """An interceptor returned without choosing to continue or stop."""


class DeliveryError(BranchbotError):
    """The transport could not deliver an envelope."""

    def __init__(self, method: str, reason: str) -> None:
        super().__init__(f"Delivery via {method} failed: {reason}")
        self.method = method
        self.reason = reason
