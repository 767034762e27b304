"""Helpers for deciding whether a message was addressed to the bot."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional


def _names(names: Iterable[Optional[str]]) -> List[str]:
    cleaned = {name.strip().lstrip("@") for name in names if name and name.strip()}
    # Longest first so "bbot" wins over "bb" when both are configured.
    return sorted(cleaned, key=len, reverse=True)


def address_pattern(names: Iterable[Optional[str]]) -> Optional[re.Pattern]:
    """Build the "name: ..." / "@name, ..." prefix pattern for the given names."""

    cleaned = _names(names)
    if not cleaned:
        return None
    alternatives = "|".join(re.escape(name) for name in cleaned)
    return re.compile(rf"^\s*@?(?:{alternatives})\b[:,]?\s*", re.IGNORECASE)


def is_addressed(text: str, names: Iterable[Optional[str]]) -> bool:
    pattern = address_pattern(names)
    return bool(pattern and pattern.match(text))
