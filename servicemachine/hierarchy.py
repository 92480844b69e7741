"""
Class hierarchy conventions shared by the serializer and the model resolver.

Instances of a subclass in a model hierarchy are written with a type tag
property naming their concrete class, and the same tag selects the subclass
when a body is read. Instances of the top-most class carry no tag; an
untagged body is read as the declared type. The API description publishes
exactly these tags as discriminator mapping keys.
"""

import dataclasses
import inspect
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .exceptions import ConfigurationError

TYPE_TAG_PROPERTY = "className"


def _is_generic_specialization(cls: type) -> bool:
    metadata = getattr(cls, "__pydantic_generic_metadata__", None)
    return bool(metadata and metadata.get("origin") is not None)


def is_model_type(tp: Any) -> bool:
    """Whether a type is reflected field by field (pydantic model or dataclass)."""
    if not inspect.isclass(tp):
        return False
    if issubclass(tp, BaseModel):
        return tp is not BaseModel
    return dataclasses.is_dataclass(tp)


def type_tag(cls: type) -> str:
    """The runtime type tag written for instances of ``cls``."""
    return cls.__name__


def polymorphic_parent(cls: type) -> Optional[type]:
    """Nearest model base class of ``cls``, if any."""
    if _is_generic_specialization(cls):
        return None
    for base in cls.__mro__[1:]:
        if is_model_type(base) and not _is_generic_specialization(base):
            return base
    return None


def direct_subclasses(cls: type) -> List[type]:
    """Model subclasses that name ``cls`` as their nearest model base."""
    found = [
        sub for sub in cls.__subclasses__()
        if is_model_type(sub) and polymorphic_parent(sub) is cls
    ]
    return sorted(found, key=lambda sub: (sub.__module__, sub.__qualname__))


def known_subclasses(cls: type) -> List[type]:
    """Every model subclass of ``cls``, depth first, in a stable order."""
    result: List[type] = []
    for sub in direct_subclasses(cls):
        result.append(sub)
        result.extend(known_subclasses(sub))
    return result


def tagged_subclasses(cls: type) -> Dict[str, type]:
    """Map of type tag to class for every known subclass of ``cls``.

    Raises:
        ConfigurationError: if two classes in the hierarchy share a tag
    """
    tags: Dict[str, type] = {}
    for candidate in known_subclasses(cls):
        tag = type_tag(candidate)
        if tag in tags and tags[tag] is not candidate:
            raise ConfigurationError(
                f"Type tag '{tag}' is shared by {tags[tag].__module__}.{tags[tag].__qualname__} "
                f"and {candidate.__module__}.{candidate.__qualname__}"
            )
        tags[tag] = candidate
    return tags


def hierarchy_root(cls: type) -> type:
    """Top-most model base of ``cls``, or ``cls`` itself when it has none."""
    parent = polymorphic_parent(cls)
    while parent is not None:
        cls = parent
        parent = polymorphic_parent(cls)
    return cls
