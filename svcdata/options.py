"""Static and dynamic service options, optionally backed by command-line flags."""

from __future__ import annotations

import enum
import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

OptionGetter = Callable[[], str]
OptionSetter = Callable[[str], None]

_BLACKLISTED_OPTIONS = frozenset({"logmailer", "whitelist_flags"})
_ALWAYS_FLAG_OPTIONS = frozenset({"v", "vmodule"})

_TRUE_WORDS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_WORDS = frozenset({"false", "f", "no", "n", "0"})

_ATOI_RE = re.compile(r"\s*([+-]?\d+)")


class SetOptionResult(enum.Enum):
    """What setting an option actually did."""

    DYNAMIC = "dynamic"
    CMDLINE_BLACKLISTED = "cmdline_blacklisted"
    CMDLINE_DISABLED = "cmdline_disabled"
    CMDLINE_NO_UPDATE = "cmdline_no_update"
    CMDLINE_UPDATED = "cmdline_updated"


def _atoi(text: str) -> int:
    match = _ATOI_RE.match(text)
    return int(match.group(1)) if match else 0


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_like(current: object, text: str) -> object:
    """Convert ``text`` to the type of ``current``; raise ValueError if it cannot."""
    if isinstance(current, bool):
        word = text.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise ValueError(f"not a boolean: {text!r}")
    if isinstance(current, int):
        return int(text)
    if isinstance(current, float):
        return float(text)
    return text


class FlagRegistry:
    """A typed registry of process-wide command-line flags and verbose-log levels."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._flags: dict[str, object] = {}
        self._module_levels: dict[str, int] = {}
        self.define("v", 0)
        self.define("vmodule", "")
        self.define("minloglevel", 0)

    def define(self, name: str, value: object) -> None:
        """Declare a flag; its default value fixes the type of later updates."""
        with self._lock:
            self._flags[name] = value

    def set(self, name: str, value: str) -> bool:
        """Set a flag from its text form; return False if unknown or unparsable."""
        with self._lock:
            if name not in self._flags:
                return False
            try:
                self._flags[name] = _parse_like(self._flags[name], value)
            except ValueError:
                return False
            return True

    def get(self, name: str) -> Optional[str]:
        """Return the text form of a flag's value, or None if it is not defined."""
        with self._lock:
            if name not in self._flags:
                return None
            return _format_value(self._flags[name])

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield (name, current value) for every defined flag."""
        with self._lock:
            snapshot = [(k, _format_value(v)) for k, v in self._flags.items()]
        yield from snapshot

    def set_module_level(self, module: str, level: int) -> None:
        """Set the verbose-log level for one module."""
        with self._lock:
            self._module_levels[module] = level

    def module_levels(self) -> dict[str, int]:
        """Return a copy of the per-module verbose-log levels."""
        with self._lock:
            return dict(self._module_levels)


def set_vmodule_option(flags: FlagRegistry, value: str) -> None:
    """Apply a ``module=level,...`` list to ``flags`` and enable verbose logging."""
    for entry in value.split(","):
        parts = entry.split("=")
        if len(parts) != 2:
            logger.warning("Invalid vmodule value: %s. Expected <module>=<int>", entry)
            continue
        module, level_text = parts
        level = _atoi(level_text)
        logger.info("Setting vmodule: %s to %d", module, level)
        flags.set_module_level(module, level)
    flags.set("minloglevel", "0")


@dataclass
class DynamicOption:
    """Callbacks invoked when a dynamic option is read or written."""

    getter: Optional[OptionGetter] = None
    setter: Optional[OptionSetter] = None


class OptionStore:
    """Static options, dynamic options and their link to command-line flags."""

    def __init__(self, flags: FlagRegistry) -> None:
        self.flags = flags
        self._lock = threading.RLock()
        self._options: dict[str, str] = {}
        self._dynamic: dict[str, DynamicOption] = {}
        self._use_options_as_flags = False

    @property
    def use_options_as_flags(self) -> bool:
        return self._use_options_as_flags

    @use_options_as_flags.setter
    def use_options_as_flags(self, enabled: bool) -> None:
        if enabled:
            logger.warning(
                "use_options_as_flags is a dangerous setting and lets remote "
                "callers change any command-line flag of this process"
            )
        self._use_options_as_flags = bool(enabled)

    def set_option(self, key: str, value: str) -> None:
        """Set an option, ignoring what kind of update happened."""
        self.set_option_with_result(key, value)

    def set_option_with_result(self, key: str, value: str) -> SetOptionResult:
        """Set an option and report what was done with it."""
        with self._lock:
            dynamic = self._dynamic.get(key)
            if dynamic is None:
                self._options[key] = value
        if dynamic is not None:
            if dynamic.setter is not None:
                dynamic.setter(value)
            return SetOptionResult.DYNAMIC

        if key in _BLACKLISTED_OPTIONS:
            return SetOptionResult.CMDLINE_BLACKLISTED
        if not (self._use_options_as_flags or key in _ALWAYS_FLAG_OPTIONS):
            return SetOptionResult.CMDLINE_DISABLED

        if not self.flags.set(key, value):
            logger.error("Couldn't set flag '%s' to val '%s'", key, value)
            return SetOptionResult.CMDLINE_NO_UPDATE

        if key == "vmodule":
            set_vmodule_option(self.flags, value)
        elif key == "v":
            self.flags.set("minloglevel", "0")
        logger.warning("FLAG CHANGE: overrode '%s' to val '%s'", key, value)
        return SetOptionResult.CMDLINE_UPDATED

    def get_option(self, key: str) -> str:
        """Return an option's value; raise KeyError if no such option exists."""
        with self._lock:
            dynamic = self._dynamic.get(key)
            static = self._options.get(key)
        if dynamic is not None:
            return dynamic.getter() if dynamic.getter is not None else ""
        if static is not None:
            return static
        flag_value = self.flags.get(key)
        if flag_value is not None:
            return flag_value
        raise KeyError(f'no such option "{key}"')

    def get_options(self) -> dict[str, str]:
        """Return every option; getter failures appear as ``<error: ...>``."""
        with self._lock:
            result = dict(self._options)
            dynamic_items = list(self._dynamic.items())
        for name, option in dynamic_items:
            value = ""
            if option.getter is not None:
                try:
                    value = option.getter()
                except Exception as exc:  # a failing getter must not break listing
                    value = f"<error: {exc}>"
            result[name] = value
        if self._use_options_as_flags:
            result.update(self.flags.items())
        return result

    def register_dynamic_option(
        self,
        name: str,
        getter: Optional[OptionGetter],
        setter: Optional[OptionSetter],
    ) -> None:
        """Route reads and writes of ``name`` to the given callbacks."""
        with self._lock:
            self._dynamic[name] = DynamicOption(getter, setter)

    def clear(self) -> None:
        """Forget all static options; dynamic options are kept."""
        with self._lock:
            self._options.clear()