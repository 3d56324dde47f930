from __future__ import annotations

import logging
from abc import ABC
from typing import Dict, Any, Union, Optional, Callable

from fix_plugin_azurerm.types import Json

log = logging.getLogger("fix.plugins.azurerm")


# General idea and basic implementation is taken from: https://github.com/Onyo/jsonbender
class Bender(ABC):
    """
    Base bending class.
    A bender extracts and transforms a value from a json structure returned by the management API.
    """

    def __call__(self, source: Any) -> Any:
        return self.execute(source)

    def execute(self, source: Any) -> Any:
        return source

    def __rshift__(self, other: Bender) -> Bender:
        return Compose(self, other)


class BendingError(Exception):
    pass


Mapping = Union[Bender, Dict[str, Bender]]


class S(Bender):
    """
    Retrieve a value from a JSON object under given path.
    """

    def __init__(self, *path: Union[str, int], default: Optional[Any] = None):
        if not path:
            raise ValueError("No path given")
        self._path = path
        self._default = default

    def execute(self, source: Any) -> Any:
        try:
            for key in self._path:
                source = source[key]
            return source
        except (KeyError, TypeError, IndexError):
            return self._default


class F(Bender):
    """
    Lifts a python callable into a Bender, so it can be composed.
    """

    def __init__(self, func: Callable[[Any], Any]):
        self._func = func

    def execute(self, value: Any) -> Any:
        return self._func(value)


class Compose(Bender):
    """
    Compose two benders.
    Use `>>` instead of calling `Compose` directly.
    The second bender is only applied, if the first one yields a value.
    """

    def __init__(self, first: Bender, second: Bender):
        self._first = first
        self._second = second

    def execute(self, source: Any) -> Any:
        first = self._first.execute(source)
        return self._second.execute(first) if first is not None else None


class Bend(Bender):
    def __init__(self, mappings: Mapping):
        self._mappings = mappings

    def execute(self, value: Optional[Json]) -> Any:
        return bend(self._mappings, value) if value else None


class AsInt(Bender):
    def execute(self, source: Any) -> Any:
        if isinstance(source, int) and not isinstance(source, bool):
            return source
        if isinstance(source, (str, float)):
            try:
                return int(source)
            except ValueError:
                log.debug(f"Can not convert {source} to int")
        return None


def bend(mapping: Mapping, source: Any) -> Any:
    """
    Apply the given mapping to the source.
    A mapping is either a single bender or a dictionary of attribute name to bender.
    """
    if isinstance(mapping, Bender):
        return mapping(source)
    elif isinstance(mapping, dict):
        res = {}
        for k, value in mapping.items():
            try:
                if isinstance(value, Bender):
                    res[k] = value(source)
                elif isinstance(value, dict):
                    res[k] = bend(value, source)
                else:
                    res[k] = value
            except Exception as e:
                raise BendingError(f"Error for key {k}: {str(e)}") from e
        return res
    else:
        return mapping
