"""Match specification compilation and evaluation (core domain).

Branches can be registered with a regular expression, a keyword set, a map of
semantic conditions or a custom predicate. Each shape is normalized once at
registration into a tagged variant so per-message evaluation stays minimal.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from core.errors import MatchError
from core.models import DIRECT_SCOPE, MatchResult, Message

CONDITION_OPTIONS = frozenset(
    {"is", "starts", "ends", "contains", "excludes", "after", "before", "range"}
)

_INTEGER = re.compile(r"-?\d+")
_RANGE = re.compile(r"^\s*(-?\d+)\s*-\s*(-?\d+)\s*$")


@dataclass(frozen=True)
class RegexSpec:
    pattern: re.Pattern


@dataclass(frozen=True)
class KeywordSpec:
    keywords: Tuple[str, ...]


@dataclass(frozen=True)
class Condition:
    """One semantic condition; every populated option must hold."""

    is_: Tuple[str, ...] = ()
    starts: Tuple[str, ...] = ()
    ends: Tuple[str, ...] = ()
    contains: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    after: Tuple[str, ...] = ()
    before: Tuple[str, ...] = ()
    range: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class ConditionSpec:
    """Ordered (name, condition) pairs. A ``None`` name marks an unnamed condition."""

    conditions: Tuple[Tuple[Optional[str], Condition], ...]


@dataclass(frozen=True)
class PredicateSpec:
    predicate: Callable[[Message], Any]


MatchSpec = Union[RegexSpec, KeywordSpec, ConditionSpec, PredicateSpec]


def _as_terms(value: Any, option: str) -> Tuple[str, ...]:
    if isinstance(value, str):
        terms = [value]
    elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        terms = list(value)
    else:
        raise MatchError(f"Condition option '{option}' must be a string or list of strings")
    terms = [term.lower() for term in terms if term]
    if not terms:
        raise MatchError(f"Condition option '{option}' is empty")
    return tuple(terms)


def _parse_range(value: Any) -> Tuple[int, int]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        low, high = value
    elif isinstance(value, str) and _RANGE.match(value):
        low, high = _RANGE.match(value).groups()
    else:
        raise MatchError(f"Invalid range condition: {value!r}")
    try:
        low, high = int(low), int(high)
    except (TypeError, ValueError) as exc:
        raise MatchError(f"Invalid range condition: {value!r}") from exc
    if low > high:
        raise MatchError(f"Range lower bound exceeds upper bound: {value!r}")
    return low, high


def _build_condition(options: Dict[str, Any]) -> Condition:
    unknown = set(options) - CONDITION_OPTIONS
    if unknown:
        raise MatchError(f"Unknown condition option(s): {', '.join(sorted(unknown))}")
    if not options:
        raise MatchError("Condition has no options")

    kwargs: Dict[str, Any] = {}
    for option, value in options.items():
        if option == "range":
            kwargs["range"] = _parse_range(value)
        elif option == "is":
            kwargs["is_"] = _as_terms(value, option)
        else:
            kwargs[option] = _as_terms(value, option)
    return Condition(**kwargs)


def build_spec(raw: Any) -> MatchSpec:
    """Normalize a registration-time match specification.

    Accepted shapes:
    - ``str``: regular expression, compiled case-insensitively
    - ``re.Pattern``: regular expression used exactly as compiled
    - ``{"contains": ...}``: keyword set
    - ``{"after": ..., "range": ...}``: a single unnamed semantic condition
    - ``{"door": {...}, ...}``: named semantic conditions
    - callable: custom predicate receiving the message
    """

    if isinstance(raw, (RegexSpec, KeywordSpec, ConditionSpec, PredicateSpec)):
        return raw
    if isinstance(raw, re.Pattern):
        return RegexSpec(raw)
    if isinstance(raw, str):
        try:
            return RegexSpec(re.compile(raw, re.IGNORECASE))
        except re.error as exc:
            raise MatchError(f"Invalid regular expression {raw!r}: {exc}") from exc
    if isinstance(raw, dict):
        if not raw:
            raise MatchError("Empty match specification")
        if set(raw) <= CONDITION_OPTIONS:
            if set(raw) == {"contains"}:
                return KeywordSpec(_as_terms(raw["contains"], "contains"))
            return ConditionSpec(((None, _build_condition(raw)),))
        if all(isinstance(value, dict) for value in raw.values()):
            return ConditionSpec(
                tuple((str(name), _build_condition(value)) for name, value in raw.items())
            )
        raise MatchError(
            f"Unknown condition option(s): {', '.join(sorted(set(raw) - CONDITION_OPTIONS))}"
        )
    if callable(raw):
        return PredicateSpec(raw)
    raise MatchError(f"Unsupported match specification type: {type(raw).__name__}")


def _find(term: str, text: str) -> Optional[re.Match]:
    # Whole words only: "hi" must not fire on "behind".
    return re.search(rf"(?<!\w){re.escape(term)}(?!\w)", text, re.IGNORECASE)


def _evaluate_condition(text: str, condition: Condition) -> Optional[str]:
    """Return the captured value if the condition holds, otherwise None.

    ``starts``/``ends``/``after``/``before`` narrow the working segment, and the
    capture is whatever remains. ``contains`` captures the keyword found and
    ``range`` captures the first integer token of the segment.
    """

    segment = text
    captured: Optional[str] = None

    if condition.is_:
        if segment.strip().rstrip(".!?").strip().lower() not in condition.is_:
            return None

    if condition.excludes:
        if any(_find(term, segment) for term in condition.excludes):
            return None

    if condition.starts:
        stripped = segment.lstrip()
        term = next((t for t in condition.starts if stripped.lower().startswith(t)), None)
        if term is None:
            return None
        segment = stripped[len(term):]

    if condition.ends:
        stripped = segment.rstrip().rstrip(".!?")
        term = next((t for t in condition.ends if stripped.lower().endswith(t)), None)
        if term is None:
            return None
        segment = stripped[: len(stripped) - len(term)]

    if condition.after:
        found = next((m for m in (_find(t, segment) for t in condition.after) if m), None)
        if found is None:
            return None
        segment = segment[found.end():]

    if condition.before:
        found = next((m for m in (_find(t, segment) for t in condition.before) if m), None)
        if found is None:
            return None
        segment = segment[: found.start()]

    if condition.contains:
        found = next((m for m in (_find(t, segment) for t in condition.contains) if m), None)
        if found is None:
            return None
        captured = found.group(0)

    if condition.range is not None:
        token = _INTEGER.search(segment)
        if token is None:
            return None
        low, high = condition.range
        if not low <= int(token.group(0)) <= high:
            return None
        captured = token.group(0)

    if captured is None:
        captured = segment.strip(" \t\n,;:.!?")
    return captured


def _evaluate_regex(message: Message, spec: RegexSpec) -> Optional[MatchResult]:
    found = spec.pattern.search(message.text)
    if found is None:
        return None
    captures = tuple(group if group is not None else "" for group in found.groups())
    named = {name: value for name, value in found.groupdict().items() if value is not None}
    return MatchResult(captures=captures, named=named, text=found.group(0))


def _evaluate_keywords(message: Message, spec: KeywordSpec) -> Optional[MatchResult]:
    for keyword in spec.keywords:
        found = _find(keyword, message.text)
        if found is not None:
            return MatchResult(text=found.group(0))
    return None


def _evaluate_conditions(message: Message, spec: ConditionSpec) -> Optional[MatchResult]:
    captures: List[str] = []
    named: Dict[str, str] = {}
    for name, condition in spec.conditions:
        value = _evaluate_condition(message.text, condition)
        if value is None:
            return None
        captures.append(value)
        if name is not None:
            named[name] = value
    return MatchResult(captures=tuple(captures), named=named, text=message.text)


def _evaluate_predicate(message: Message, spec: PredicateSpec) -> Optional[MatchResult]:
    outcome = spec.predicate(message)
    if isinstance(outcome, MatchResult):
        return outcome
    if outcome:
        return MatchResult(text=message.text)
    return None


def evaluate(message: Message, spec: MatchSpec, scope: str = "global") -> Optional[MatchResult]:
    """Evaluate one message against one compiled specification.

    Direct-scope evaluation short-circuits to no match for messages that were
    not addressed to the bot, whatever the specification says.
    """

    if scope == DIRECT_SCOPE and not message.addressed:
        return None
    if isinstance(spec, RegexSpec):
        return _evaluate_regex(message, spec)
    if isinstance(spec, KeywordSpec):
        return _evaluate_keywords(message, spec)
    if isinstance(spec, ConditionSpec):
        return _evaluate_conditions(message, spec)
    if isinstance(spec, PredicateSpec):
        return _evaluate_predicate(message, spec)
    raise TypeError(f"Unsupported match specification: {spec!r}")
