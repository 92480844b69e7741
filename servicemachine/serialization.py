"""
JSON serializer shared by the dispatcher and the API description.

The serializer turns method results into response bodies, request bodies into
method arguments, and path or query strings into scalar parameter values.
Its options (enum and date rendering, null handling) are read by the model
resolver as well, so the published schemas describe the bytes actually
written.
"""

import base64
import dataclasses
import functools
import inspect
import json
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, TypeAdapter, ValidationError

from .exceptions import SerializationError
from .hierarchy import TYPE_TAG_PROPERTY, hierarchy_root, is_model_type, tagged_subclasses
from .reflection import (
    is_enum_type,
    is_optional_type,
    mapping_value_type,
    resolved_hints,
    sequence_item_type,
    split_annotated,
)

EnumFormat = Literal["value", "name"]
DateFormat = Literal["iso", "timestamp"]


@functools.lru_cache(maxsize=None)
def _cached_type_adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def type_adapter(tp: Any) -> TypeAdapter:
    """Return a cached ``TypeAdapter`` for *tp* when it is hashable."""
    try:
        return _cached_type_adapter(tp)
    except TypeError:
        return TypeAdapter(tp)


def model_field_types(cls: type) -> Dict[str, Any]:
    """Declared field names and annotations of a pydantic model or dataclass."""
    if issubclass(cls, BaseModel):
        return {name: info.annotation for name, info in cls.model_fields.items()}
    hints = resolved_hints(cls)
    return {f.name: hints.get(f.name, f.type) for f in dataclasses.fields(cls) if f.init}


def required_field_names(cls: type) -> List[str]:
    """Fields of a pydantic model or dataclass that declare no default."""
    if issubclass(cls, BaseModel):
        return [name for name, info in cls.model_fields.items() if info.is_required()]
    return [
        f.name for f in dataclasses.fields(cls)
        if f.init and f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
    ]


def _validation_details(error: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"type": e["type"], "loc": [str(part) for part in e["loc"]], "msg": e["msg"]}
        for e in error.errors(include_url=False)
    ]


class Serializer:
    """JSON serializer built on pydantic ``TypeAdapter``.

    Args:
        ignore_unknown_fields: Drop body properties that the target model does not declare
        include_none: Write fields whose value is None
        enum_format: Write enum members by ``value`` or by ``name``
        date_format: Write datetimes as ISO 8601 strings or as epoch milliseconds
        type_tag_property: Property carrying the concrete class of hierarchy members
    """

    media_type = "application/json"

    def __init__(
        self,
        ignore_unknown_fields: bool = True,
        include_none: bool = False,
        enum_format: EnumFormat = "value",
        date_format: DateFormat = "iso",
        type_tag_property: str = TYPE_TAG_PROPERTY,
    ):
        self.ignore_unknown_fields = ignore_unknown_fields
        self.include_none = include_none
        self.enum_format = enum_format
        self.date_format = date_format
        self.type_tag_property = type_tag_property
        self._tag_tables: Dict[type, Dict[str, type]] = {}

    # Type tags

    def type_tags(self, cls: type) -> Dict[str, type]:
        """Type tags accepted for ``cls``: its own and those of the classes below it.

        A hierarchy is walked once, the first time one of its classes is seen,
        and the table is kept for the lifetime of the serializer. Building an
        application describes every body and result type, so the tables are
        taken at startup; subclasses defined afterwards are unknown. Their tag
        is rejected and their instances are written without one.
        """
        table = self._tag_tables.get(cls)
        if table is None:
            root = hierarchy_root(cls)
            if root not in self._tag_tables:
                self._tag_tables[root] = tagged_subclasses(root)
            table = {tag: sub for tag, sub in self._tag_tables[root].items() if issubclass(sub, cls)}
            self._tag_tables[cls] = table
        return table

    def tag_for(self, cls: type) -> Optional[str]:
        """The type tag written for instances of ``cls``, if they carry one."""
        for tag, sub in self.type_tags(cls).items():
            if sub is cls:
                return tag
        return None

    # Output

    def encode(self, value: Any) -> bytes:
        """Serialize a value to JSON bytes."""
        try:
            return json.dumps(self.to_primitive(value)).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot serialize value of type {type(value).__name__}", e) from e

    def enum_literal(self, member: Enum) -> Any:
        """How an enum member is written."""
        if self.enum_format == "name":
            return member.name
        return self.to_primitive(member.value)

    def to_primitive(self, value: Any) -> Any:
        """Convert a value to plain JSON-compatible data."""
        if value is None or isinstance(value, (str, bool, int, float)) and not isinstance(value, Enum):
            return value
        if isinstance(value, Enum):
            return self.enum_literal(value)
        if isinstance(value, BaseModel) or (dataclasses.is_dataclass(value) and not isinstance(value, type)):
            return self._model_to_primitive(value)
        if isinstance(value, datetime):
            if self.date_format == "timestamp":
                return int(value.timestamp() * 1000)
            return value.isoformat()
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, (Decimal, UUID)):
            return str(value)
        if isinstance(value, bytes):
            return base64.b64encode(value).decode("ascii")
        if isinstance(value, dict):
            return {
                key if isinstance(key, str) else str(self.to_primitive(key)): self.to_primitive(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.to_primitive(item) for item in value]
        raise SerializationError(f"Cannot serialize value of type {type(value).__name__}")

    def _model_to_primitive(self, value: Any) -> Dict[str, Any]:
        cls = type(value)
        data: Dict[str, Any] = {}
        tag = self.tag_for(cls)
        if tag is not None:
            data[self.type_tag_property] = tag
        for name in model_field_types(cls):
            item = getattr(value, name)
            if item is None and not self.include_none:
                continue
            data[name] = self.to_primitive(item)
        return data

    # Input

    def decode(self, data: bytes, target_type: Any) -> Any:
        """Deserialize JSON bytes into an instance of ``target_type``."""
        try:
            obj = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SerializationError(f"Malformed JSON: {e}", e) from e
        return self.from_primitive(obj, target_type)

    def from_primitive(self, obj: Any, target_type: Any) -> Any:
        """Convert plain JSON data into an instance of ``target_type``."""
        tp, _ = split_annotated(target_type)
        if tp is Any or tp is object or tp is inspect.Parameter.empty:
            return obj
        is_optional, tp = is_optional_type(tp)
        if obj is None:
            if is_optional:
                return None
            raise SerializationError("Value must not be null")
        try:
            return self._from_primitive(obj, tp)
        except ValidationError as e:
            raise SerializationError(str(e), e) from e
        except (ValueError, TypeError, KeyError) as e:
            raise SerializationError(f"Invalid value for {getattr(tp, '__name__', tp)}: {obj!r}", e) from e

    def _from_primitive(self, obj: Any, tp: Any) -> Any:
        if is_model_type(tp):
            return self._model_from_primitive(obj, tp)

        if is_enum_type(tp):
            if self.enum_format == "name":
                return tp[obj]
            return tp(obj)

        if tp is datetime and self.date_format == "timestamp" and isinstance(obj, (int, float)):
            return datetime.fromtimestamp(obj / 1000, tz=timezone.utc)

        item_type = sequence_item_type(tp)
        if item_type is not None:
            if not isinstance(obj, list):
                raise SerializationError(f"Expected a JSON array, got {type(obj).__name__}")
            items = [self.from_primitive(item, item_type) for item in obj]
            return type_adapter(tp).validate_python(items)

        value_type = mapping_value_type(tp)
        if value_type is not None:
            if not isinstance(obj, dict):
                raise SerializationError(f"Expected a JSON object, got {type(obj).__name__}")
            values = {key: self.from_primitive(item, value_type) for key, item in obj.items()}
            return type_adapter(tp).validate_python(values)

        return type_adapter(tp).validate_python(obj)

    def _model_from_primitive(self, obj: Any, cls: type) -> Any:
        if isinstance(obj, cls):
            return obj
        if not isinstance(obj, dict):
            raise SerializationError(f"Expected a JSON object for {cls.__name__}, got {type(obj).__name__}")

        selected = cls
        tags = self.type_tags(cls)
        if tags and self.type_tag_property in obj:
            tag = obj[self.type_tag_property]
            if tag not in tags:
                raise SerializationError(f"Unknown type '{tag}' for {cls.__name__}")
            selected = tags[tag]

        fields = model_field_types(selected)
        values: Dict[str, Any] = {}
        for key, item in obj.items():
            if key == self.type_tag_property and tags:
                continue
            if key not in fields:
                if self.ignore_unknown_fields:
                    continue
                raise SerializationError(f"Unknown property '{key}' for {selected.__name__}")
            values[key] = self.from_primitive(item, fields[key])

        if not self.include_none:
            # the writer leaves None values out, so absent nullable fields read as None
            for name in required_field_names(selected):
                if name not in values and is_optional_type(split_annotated(fields[name])[0])[0]:
                    values[name] = None

        if issubclass(selected, BaseModel):
            return selected.model_validate(values)
        return type_adapter(selected).validate_python(values)

    # Path and query strings

    def coerce(self, text: str, target_type: Any) -> Any:
        """Convert the string form of a path or query value to a scalar."""
        tp, _ = split_annotated(target_type)
        _, tp = is_optional_type(tp)
        if tp is inspect.Parameter.empty or tp is str:
            return text
        try:
            if is_enum_type(tp):
                return self._enum_from_text(text, tp)
            if tp is datetime and self.date_format == "timestamp" and text.lstrip("-").isdigit():
                return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
            return type_adapter(tp).validate_python(text)
        except ValidationError as e:
            raise SerializationError(f"Invalid value {text!r}", e) from e
        except (ValueError, KeyError) as e:
            raise SerializationError(f"Invalid value {text!r}", e) from e

    def coerce_all(self, values: Sequence[str], target_type: Any) -> Any:
        """Convert repeated query values into the declared collection type."""
        tp, _ = split_annotated(target_type)
        _, tp = is_optional_type(tp)
        item_type = sequence_item_type(tp)
        if item_type is None:
            raise SerializationError(f"{tp} is not a collection type")
        items = [self.coerce(value, item_type) for value in values]
        try:
            return type_adapter(tp).validate_python(items)
        except ValidationError as e:
            raise SerializationError(str(e), e) from e

    def _enum_from_text(self, text: str, tp: type) -> Enum:
        if self.enum_format == "name":
            return tp[text]
        for member in tp:
            if member.value == text or str(member.value) == text:
                return member
        raise ValueError(f"{text!r} is not a valid {tp.__name__}")

    @staticmethod
    def validation_details(error: SerializationError):
        """Pydantic error details of a serialization failure, if it has any."""
        if isinstance(error.original_exception, ValidationError):
            return _validation_details(error.original_exception)
        return None
