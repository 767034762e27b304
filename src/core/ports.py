"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for transport, storage and request
adapters so that the core can be reused with different chat platforms.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Protocol

from core.envelope import Envelope


class TransportPort(Protocol):
    """Delivery operations required by the dispatcher.

    ``send`` is mandatory. Platforms may expose further coroutine methods
    (``react`` for example) that envelopes select through ``envelope.method``.
    """

    async def send(self, envelope: Envelope) -> None:
        ...


class MemoryStoragePort(Protocol):
    """Persistence for memory store snapshots."""

    def load_memory(self) -> Dict[str, Dict[str, Any]]:
        ...

    def save_memory(self, snapshot: Mapping[str, Mapping[str, Any]]) -> None:
        ...


class RequestPort(Protocol):
    """Outbound HTTP helper exposed to branch callbacks."""

    async def get(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        ...
