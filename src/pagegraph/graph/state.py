"""Reducer-aware state helpers for the workflow graph engine.

A graph state is a (preferably frozen) dataclass. Each field is merged with one
of three reducers, declared through dataclass field metadata:

``replace``
    The default. A value present in the update overwrites the existing one.
``append``
    Declared with :func:`accumulating`. The update's entries are concatenated
    onto the existing sequence; nothing is ever removed or reordered.
``merge``
    Declared with :func:`merged`. Shallow key-by-key merge, the update wins.

:func:`merge_state` never mutates its inputs and always returns a new instance.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Mapping, TypeVar

from .errors import StateUpdateError

__all__ = [
    "REDUCER_METADATA_KEY",
    "Reducer",
    "StateUpdate",
    "accumulating",
    "merged",
    "field_reducers",
    "merge_state",
]

REDUCER_METADATA_KEY = "pagegraph.reducer"

S = TypeVar("S")
StateUpdate = Mapping[str, Any]


class Reducer(str, Enum):
    REPLACE = "replace"
    APPEND = "append"
    MERGE = "merge"


def accumulating(*, doc: str | None = None) -> Any:
    """Declare an append-only sequence field (stored as a tuple)."""

    metadata: dict[str, Any] = {REDUCER_METADATA_KEY: Reducer.APPEND}
    if doc:
        metadata["doc"] = doc
    return dataclasses.field(default_factory=tuple, metadata=metadata)


def merged(*, doc: str | None = None) -> Any:
    """Declare a scratch-map field merged key by key."""

    metadata: dict[str, Any] = {REDUCER_METADATA_KEY: Reducer.MERGE}
    if doc:
        metadata["doc"] = doc
    return dataclasses.field(default_factory=dict, metadata=metadata)


def field_reducers(state_type: type) -> dict[str, Reducer]:
    """Return the reducer used for every field of ``state_type``."""

    if not dataclasses.is_dataclass(state_type):
        raise TypeError(f"{state_type!r} is not a dataclass state type")
    return {
        item.name: item.metadata.get(REDUCER_METADATA_KEY, Reducer.REPLACE)
        for item in dataclasses.fields(state_type)
    }


def merge_state(existing: S, update: StateUpdate | None) -> S:
    """Fold ``update`` into ``existing`` and return the resulting state."""

    reducers = field_reducers(type(existing))
    changes: dict[str, Any] = {}
    for key, value in (update or {}).items():
        reducer = reducers.get(key)
        if reducer is None:
            raise StateUpdateError(
                f"Unknown state field '{key}' for {type(existing).__name__}"
            )
        if reducer is Reducer.APPEND:
            if isinstance(value, (str, bytes, Mapping)):
                raise StateUpdateError(
                    f"Field '{key}' accumulates entries; got {type(value).__name__}"
                )
            changes[key] = tuple(getattr(existing, key)) + tuple(value or ())
        elif reducer is Reducer.MERGE:
            changes[key] = {**getattr(existing, key), **(value or {})}
        else:
            changes[key] = value

    # accumulating and merged fields always get fresh containers
    for name, reducer in reducers.items():
        if name in changes:
            continue
        if reducer is Reducer.APPEND:
            changes[name] = tuple(getattr(existing, name))
        elif reducer is Reducer.MERGE:
            changes[name] = dict(getattr(existing, name))

    return dataclasses.replace(existing, **changes)
