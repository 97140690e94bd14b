"""Flat counters, dynamic counters, exported strings and options of a service."""

from __future__ import annotations

import functools
import re
import threading
import time
from typing import Callable, Iterable, Optional

from svcdata.options import (
    FlagRegistry,
    OptionGetter,
    OptionSetter,
    OptionStore,
    SetOptionResult,
)

CounterCallback = Callable[[], int]
StringCallback = Callable[[], str]

_INT64_MIN = -(1 << 63)
_UINT64_SPAN = 1 << 64


def _wrap_int64(value: int) -> int:
    """Reduce ``value`` to a signed 64-bit integer with two's-complement wrap."""
    return (value - _INT64_MIN) % _UINT64_SPAN + _INT64_MIN


class ServiceData:
    """Holds the counters, exported values and options a service publishes."""

    def __init__(self, flags: Optional[FlagRegistry] = None) -> None:
        self.alive_since = int(time.time())
        self.options = OptionStore(flags if flags is not None else FlagRegistry())
        self._counters_lock = threading.RLock()
        self._counters: dict[str, int] = {}
        self._exported_lock = threading.RLock()
        self._exported: dict[str, str] = {}
        self._dynamic_lock = threading.RLock()
        self._dynamic_counters: dict[str, CounterCallback] = {}
        self._dynamic_strings: dict[str, StringCallback] = {}

    @property
    def flags(self) -> FlagRegistry:
        return self.options.flags

    @property
    def use_options_as_flags(self) -> bool:
        return self.options.use_options_as_flags

    @use_options_as_flags.setter
    def use_options_as_flags(self, enabled: bool) -> None:
        self.options.use_options_as_flags = enabled

    # -- lifecycle -------------------------------------------------------

    def reset_all_data(self) -> None:
        """Forget all counters, exported values, static options and callbacks."""
        self.options.clear()
        with self._counters_lock:
            self._counters.clear()
        with self._exported_lock:
            self._exported.clear()
        with self._dynamic_lock:
            self._dynamic_strings.clear()
            self._dynamic_counters.clear()

    def zero_stats(self) -> None:
        """Set every flat counter to zero, keeping the keys."""
        with self._counters_lock:
            for key in self._counters:
                self._counters[key] = 0

    # -- dynamic callbacks -----------------------------------------------

    def register_dynamic_counter(self, key: str, callback: CounterCallback) -> None:
        """Publish ``key`` as a counter whose value comes from ``callback``."""
        with self._dynamic_lock:
            self._dynamic_counters[key] = callback

    def unregister_dynamic_counter(self, key: str) -> None:
        """Stop publishing the dynamic counter ``key``, if registered."""
        with self._dynamic_lock:
            self._dynamic_counters.pop(key, None)

    def register_dynamic_string(self, key: str, callback: StringCallback) -> None:
        """Publish ``key`` as an exported value produced by ``callback``."""
        with self._dynamic_lock:
            self._dynamic_strings[key] = callback

    def unregister_dynamic_string(self, key: str) -> None:
        """Stop publishing the dynamic string ``key``, if registered."""
        with self._dynamic_lock:
            self._dynamic_strings.pop(key, None)

    def _dynamic_counter(self, key: str) -> Optional[int]:
        with self._dynamic_lock:
            callback = self._dynamic_counters.get(key)
        return None if callback is None else int(callback())

    def _dynamic_string(self, key: str) -> Optional[str]:
        with self._dynamic_lock:
            callback = self._dynamic_strings.get(key)
        return None if callback is None else str(callback())

    # -- flat counters ---------------------------------------------------

    def increment_counter(self, key: str, amount: int = 1) -> int:
        """Add ``amount`` to a flat counter, creating it at zero; return the result."""
        with self._counters_lock:
            value = _wrap_int64(self._counters.get(key, 0) + amount)
            self._counters[key] = value
            return value

    def set_counter(self, key: str, value: int) -> int:
        """Set a flat counter, creating it if needed; return the stored value."""
        value = _wrap_int64(value)
        with self._counters_lock:
            self._counters[key] = value
        return value

    def clear_counter(self, key: str) -> None:
        """Remove a flat counter if it exists."""
        with self._counters_lock:
            self._counters.pop(key, None)

    def get_counter_if_exists(self, key: str) -> Optional[int]:
        """Return a counter's value, dynamic first, or None if there is none."""
        dynamic = self._dynamic_counter(key)
        if dynamic is not None:
            return dynamic
        with self._counters_lock:
            return self._counters.get(key)

    def get_counter(self, key: str) -> int:
        """Return a counter's value; raise KeyError if no such counter exists."""
        value = self.get_counter_if_exists(key)
        if value is None:
            raise KeyError(f'no such counter "{key}"')
        return value

    def get_counters(self) -> dict[str, int]:
        """Return all flat and dynamic counters; dynamic ones win on clashes."""
        with self._counters_lock:
            result = dict(self._counters)
        with self._dynamic_lock:
            callbacks = list(self._dynamic_counters.items())
        for key, callback in callbacks:
            result[key] = int(callback())
        return result

    def get_counter_keys(self) -> list[str]:
        """Return the names of flat counters followed by dynamic ones."""
        with self._counters_lock:
            keys = list(self._counters)
        with self._dynamic_lock:
            keys.extend(self._dynamic_counters)
        return keys

    def num_counters(self) -> int:
        """Return the number of flat plus dynamic counters."""
        with self._counters_lock:
            flat = len(self._counters)
        with self._dynamic_lock:
            dynamic = len(self._dynamic_counters)
        return flat + dynamic

    def get_selected_counters(self, keys: Iterable[str]) -> dict[str, int]:
        """Return the values of the named counters that exist."""
        keys = list(keys)
        with self._counters_lock:
            result = {k: self._counters[k] for k in keys if k in self._counters}
        for key in keys:
            dynamic = self._dynamic_counter(key)
            if dynamic is not None:
                result[key] = dynamic
        return result

    def get_regex_counters(self, regex: str) -> dict[str, int]:
        """Return counters whose whole name matches ``regex``."""
        pattern = re.compile(regex)
        keys = [k for k in self.get_counter_keys() if pattern.fullmatch(k)]
        return self.get_selected_counters(keys)

    def has_counter(self, key: str) -> bool:
        """Return True if a flat or dynamic counter named ``key`` exists."""
        with self._dynamic_lock:
            if key in self._dynamic_counters:
                return True
        with self._counters_lock:
            return key in self._counters

    # -- exported values -------------------------------------------------

    def set_exported_value(self, key: str, value: str) -> None:
        """Set an exported string value, creating it if needed."""
        with self._exported_lock:
            self._exported[key] = value

    def delete_exported_key(self, key: str) -> None:
        """Remove an exported value if it exists."""
        with self._exported_lock:
            self._exported.pop(key, None)

    def get_exported_value(self, key: str) -> str:
        """Return an exported value, dynamic first, or "" if there is none."""
        dynamic = self._dynamic_string(key)
        if dynamic is not None:
            return dynamic
        with self._exported_lock:
            return self._exported.get(key, "")

    def get_exported_values(self) -> dict[str, str]:
        """Return all exported values; dynamic strings win on clashes."""
        with self._exported_lock:
            result = dict(self._exported)
        with self._dynamic_lock:
            callbacks = list(self._dynamic_strings.items())
        for key, callback in callbacks:
            result[key] = str(callback())
        return result

    def get_selected_exported_values(self, keys: Iterable[str]) -> dict[str, str]:
        """Return the named exported values that exist."""
        keys = list(keys)
        with self._exported_lock:
            result = {k: self._exported[k] for k in keys if k in self._exported}
        for key in keys:
            dynamic = self._dynamic_string(key)
            if dynamic is not None:
                result[key] = dynamic
        return result

    def get_regex_exported_values(self, regex: str) -> dict[str, str]:
        """Return exported values whose whole name matches ``regex``."""
        pattern = re.compile(regex)
        return {
            key: value
            for key, value in self.get_exported_values().items()
            if pattern.fullmatch(key)
        }

    # -- options ---------------------------------------------------------

    def set_option(self, key: str, value: str) -> None:
        """Set an option."""
        self.options.set_option(key, value)

    def set_option_with_result(self, key: str, value: str) -> SetOptionResult:
        """Set an option and report what was done with it."""
        return self.options.set_option_with_result(key, value)

    def get_option(self, key: str) -> str:
        """Return an option's value; raise KeyError if it does not exist."""
        return self.options.get_option(key)

    def get_options(self) -> dict[str, str]:
        """Return all options."""
        return self.options.get_options()

    def register_dynamic_option(
        self,
        name: str,
        getter: Optional[OptionGetter],
        setter: Optional[OptionSetter],
    ) -> None:
        """Route reads and writes of option ``name`` to the given callbacks."""
        self.options.register_dynamic_option(name, getter, setter)


@functools.lru_cache(maxsize=None)
def get_service_data() -> ServiceData:
    """Return the process-wide ServiceData instance."""
    return ServiceData()