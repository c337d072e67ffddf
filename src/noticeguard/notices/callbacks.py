"""
Callback shapes.

A registered notice callback is one of a small set of shapes; the name
derived from the shape is what allowlist patterns match against.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Named:
    """A plain named function."""

    name: str


@dataclass(frozen=True)
class Method:
    """A method on a type. ``owner`` is a type, a type name or an instance."""

    owner: Any
    method: str


@dataclass(frozen=True)
class Invokable:
    """An object called through its ``__call__``."""

    owner: Any


@dataclass(frozen=True)
class Anonymous:
    """A lambda, nested function or other unit without a usable name."""

    target: Any = field(default=None, compare=False)


@dataclass(frozen=True)
class Unrecognized:
    value: Any = field(default=None, compare=False)


CallbackRef = Named | Method | Invokable | Anonymous | Unrecognized

# Values that can never own a method.
_SCALARS = (int, float, bool, bytes, type(None))


def owner_name(owner: Any) -> str | None:
    """Type name for a method owner (type, type name or instance)."""
    if isinstance(owner, str):
        return owner
    if isinstance(owner, type):
        return owner.__qualname__
    if owner is None:
        return None
    return type(owner).__qualname__


def callback_ref(callback: Any) -> CallbackRef:
    """Classify a registered callback into a ``CallbackRef``."""
    if isinstance(callback, (Named, Method, Invokable, Anonymous, Unrecognized)):
        return callback

    if isinstance(callback, str):
        return Named(callback)

    if isinstance(callback, (tuple, list)):
        if (
            len(callback) >= 2
            and isinstance(callback[1], str)
            and not isinstance(callback[0], _SCALARS)
        ):
            return Method(callback[0], callback[1])
        return Unrecognized(callback)

    if isinstance(callback, functools.partial):
        return callback_ref(callback.func)

    if inspect.ismethod(callback):
        return Method(callback.__self__, callback.__name__)

    if inspect.isbuiltin(callback):
        owner = getattr(callback, "__self__", None)
        if owner is not None and not inspect.ismodule(owner):
            return Method(owner, callback.__name__)
        return Named(callback.__name__)

    if inspect.isfunction(callback):
        qualname = callback.__qualname__
        if callback.__name__ == "<lambda>" or "<locals>" in qualname:
            return Anonymous(callback)
        if "." in qualname:
            owner, _, method = qualname.rpartition(".")
            return Method(owner, method)
        return Named(callback.__name__)

    if callable(callback):
        return Invokable(callback)

    return Unrecognized(callback)
