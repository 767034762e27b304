"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any platform-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

GLOBAL_SCOPE = "global"
DIRECT_SCOPE = "direct"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """Inbound chat message, read-only once built by a transport adapter."""

    text: str
    user_id: str
    room_id: str
    addressed: bool = False
    user_name: Optional[str] = None
    message_id: Optional[Any] = None
    date: datetime = field(default_factory=_utcnow)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class MatchResult:
    """Successful outcome of evaluating one message against one branch.

    A failed evaluation is represented by ``None`` rather than an instance.
    """

    captures: Tuple[str, ...] = ()
    named: Dict[str, str] = field(default_factory=dict)
    text: str = ""

    def __getitem__(self, index: int) -> str:
        return self.captures[index]
