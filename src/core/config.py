"""Core configuration provider.

We keep config file and environment loading outside the core, but the
``Settings`` provider defines how layered values are resolved so adapters,
middleware and branch callbacks can all read the same options.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Mapping, Optional

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "BOT_"
OPTION_TYPES = ("string", "number", "boolean")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class OptionSpec:
    """Schema entry for one named setting."""

    name: str
    type: str = "string"
    description: str = ""
    default: Any = None


BASE_OPTIONS: Dict[str, Dict[str, Any]] = {
    "name": {"type": "string", "description": "Name the bot answers to.", "default": "bot"},
    "alias": {"type": "string", "description": "Alternate name for addressing the bot."},
    "log-level": {"type": "string", "description": "Logging level.", "default": "info"},
    "shell-user-name": {"type": "string", "description": "Shell user name.", "default": "user"},
    "shell-user-id": {"type": "string", "description": "Shell user id.", "default": "111"},
    "shell-room": {"type": "string", "description": "Shell room id.", "default": "shell"},
}


def env_name(name: str) -> str:
    """Return the environment variable consulted for an option name."""

    return ENV_PREFIX + name.upper().replace("-", "_")


def coerce(option: OptionSpec, value: Any) -> Any:
    if value is None:
        return None
    if option.type == "string":
        return str(value)
    if option.type == "number":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    if option.type == "boolean":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"Invalid boolean for {option.name}: {value!r}")
    raise ValueError(f"Unsupported option type for {option.name}: {option.type}")


class Settings:
    """Layered settings: run-time set > BOT_* env > config file > default."""

    def __init__(
        self,
        file_values: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
        schema: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self._options: Dict[str, OptionSpec] = {}
        self._file_values = dict(file_values or {})
        self._environ = environ if environ is not None else {}
        self._overrides: Dict[str, Any] = {}
        self.extend(BASE_OPTIONS if schema is None else schema)

    def extend(self, schema: Mapping[str, Mapping[str, Any]]) -> None:
        """Register additional options with type, description and default."""

        for name, entry in schema.items():
            option_type = entry.get("type", "string")
            if option_type not in OPTION_TYPES:
                raise ValueError(f"Unsupported option type for {name}: {option_type}")
            if name in self._options:
                LOGGER.debug("Setting %s redefined", name)
            option = OptionSpec(
                name=name,
                type=option_type,
                description=entry.get("description", ""),
                default=entry.get("default"),
            )
            self._options[name] = option

    def options(self) -> Dict[str, OptionSpec]:
        return dict(self._options)

    def get(self, name: str) -> Any:
        option = self._options.get(name, OptionSpec(name=name))

        if name in self._overrides:
            return self._overrides[name]

        raw_env = self._environ.get(env_name(name))
        if raw_env is not None:
            try:
                return coerce(option, raw_env)
            except ValueError:
                LOGGER.warning("Ignoring invalid %s=%r", env_name(name), raw_env)

        if name in self._file_values:
            return coerce(option, self._file_values[name])
        return option.default

    def set(self, name: str, value: Any) -> None:
        option = self._options.get(name, OptionSpec(name=name))
        self._overrides[name] = coerce(option, value)

    def unset(self, name: str) -> None:
        self._overrides.pop(name, None)
