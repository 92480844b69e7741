"""
Helpers for inspecting type annotations of service methods and models.
"""

import collections.abc
import inspect
import typing
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union, get_args, get_origin
from uuid import UUID

SCALAR_TYPES = (str, int, float, bool, Decimal, UUID, date, datetime, time, bytes)

_SEQUENCE_ORIGINS = (
    list,
    set,
    frozenset,
    tuple,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

try:
    from types import UnionType  # Python 3.10+
    _UNION_ORIGINS: Tuple[Any, ...] = (Union, UnionType)
except ImportError:  # pragma: no cover
    _UNION_ORIGINS = (Union,)


def split_annotated(annotation: Any) -> Tuple[Any, Tuple[Any, ...]]:
    """Return the bare type and the metadata of an ``Annotated[...]`` hint."""
    if get_origin(annotation) is typing.Annotated:
        base, *metadata = get_args(annotation)
        return base, tuple(metadata)
    return annotation, ()


def is_optional_type(annotation: Any) -> Tuple[bool, Any]:
    """Check if type annotation is Optional and return the inner type."""
    if get_origin(annotation) in _UNION_ORIGINS:
        args = get_args(annotation)
        if type(None) in args:
            remaining = tuple(arg for arg in args if arg is not type(None))
            if len(remaining) == 1:
                return True, remaining[0]
            return True, Union[remaining]
    return False, annotation


def union_members(annotation: Any) -> Tuple[Any, ...]:
    """Members of a non-optional union, or an empty tuple for anything else."""
    if get_origin(annotation) in _UNION_ORIGINS:
        return tuple(arg for arg in get_args(annotation) if arg is not type(None))
    return ()


def is_enum_type(tp: Any) -> bool:
    return inspect.isclass(tp) and issubclass(tp, Enum)


def is_scalar_type(tp: Any) -> bool:
    """Whether values of this type travel as a single string in a path or query."""
    tp, _ = split_annotated(tp)
    _, tp = is_optional_type(tp)
    members = union_members(tp)
    if members:
        return all(is_scalar_type(member) for member in members)
    if is_enum_type(tp):
        return True
    return inspect.isclass(tp) and issubclass(tp, SCALAR_TYPES)


def sequence_item_type(tp: Any) -> Optional[Any]:
    """Item type of a homogeneous collection annotation, else None.

    ``List[int]`` and ``Tuple[int, ...]`` give ``int``; a bare ``list`` gives
    ``str``; heterogeneous tuples and non-collections give None.
    """
    tp, _ = split_annotated(tp)
    _, tp = is_optional_type(tp)
    if tp in (list, set, frozenset, tuple):
        return str
    origin = get_origin(tp)
    if origin not in _SEQUENCE_ORIGINS:
        return None
    args = get_args(tp)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        return None
    return args[0] if args else str


def mapping_value_type(tp: Any) -> Optional[Any]:
    """Value type of a mapping annotation, else None."""
    tp, _ = split_annotated(tp)
    _, tp = is_optional_type(tp)
    if tp is dict:
        return Any
    if get_origin(tp) in _MAPPING_ORIGINS:
        args = get_args(tp)
        return args[1] if len(args) == 2 else Any
    return None


def is_query_type(tp: Any) -> bool:
    """Scalars and collections of scalars can be bound from the query string."""
    if is_scalar_type(tp):
        return True
    item = sequence_item_type(tp)
    return item is not None and is_scalar_type(item)


def resolved_hints(func: Callable) -> Dict[str, Any]:
    """Type hints of a function with forward references resolved and extras kept."""
    return typing.get_type_hints(func, include_extras=True)
