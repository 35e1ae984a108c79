# variables.py
from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, List, Optional

from .errors import ConfigurationTypeError, MissingVariableError


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


_MISSING = _Missing()


class VariableStore(MutableMapping):
    """
    String-keyed bag of heterogeneous values shared by every step of one run.

    Plain mapping access (`store["x"]`) returns whatever was stored. The typed
    accessors check the shape and raise ConfigurationTypeError instead of
    letting a bad cast blow up somewhere inside a step.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = {}
        if initial:
            for k, v in initial.items():
                self[k] = v

    # ---- mapping protocol ----

    def __getitem__(self, key: str) -> Any:
        try:
            return self._data[key]
        except KeyError:
            raise MissingVariableError(key) from None

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise TypeError(f"variable names must be strings, got {type(key).__name__}")
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"VariableStore({self._data!r})"

    # ---- typed accessors ----

    def _typed(self, key: str, expected: str, check, default: Any) -> Any:
        if key not in self._data:
            if default is not _MISSING:
                return default
            raise MissingVariableError(key)
        value = self._data[key]
        if not check(value):
            raise ConfigurationTypeError(key=key, expected=expected, actual=describe(value))
        return value

    def get_str(self, key: str, default: Any = _MISSING) -> str:
        return self._typed(key, "str", lambda v: isinstance(v, str), default)

    def get_int(self, key: str, default: Any = _MISSING) -> int:
        # bool is an int subclass; a flag is never a valid count
        return self._typed(
            key, "int", lambda v: isinstance(v, int) and not isinstance(v, bool), default
        )

    def get_bool(self, key: str, default: Any = _MISSING) -> bool:
        return self._typed(key, "bool", lambda v: isinstance(v, bool), default)

    def get_list(self, key: str, default: Any = _MISSING) -> List[str]:
        return self._typed(
            key,
            "list of str",
            lambda v: isinstance(v, (list, tuple)) and all(isinstance(x, str) for x in v),
            default,
        )

    def exported(self) -> Dict[str, str]:
        """
        Variables handed to spawned processes as environment variables:
        upper-case identifiers holding a scalar.
        """
        out: Dict[str, str] = {}
        for k, v in self._data.items():
            if not (k.isupper() and k.replace("_", "").isalnum()):
                continue
            if isinstance(v, bool):
                out[k] = "1" if v else "0"
            elif isinstance(v, (str, int)):
                out[k] = str(v)
        return out


def describe(value: Any) -> str:
    """Short type label used in error messages."""
    if isinstance(value, (list, tuple)):
        return "list"
    return type(value).__name__

