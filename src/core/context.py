"""Shared collaborators injected into every callback and interceptor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from core.config import Settings
from core.memory import MemoryStore
from core.ports import RequestPort


@dataclass
class BotContext:
    memory: MemoryStore = field(default_factory=MemoryStore)
    settings: Settings = field(default_factory=Settings)
    request: Optional[RequestPort] = None
