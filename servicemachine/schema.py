"""
Model resolver: reflects over parameter, return and field types to build
schema nodes for the API description.

Named nodes (models, enums and polymorphic roots) are cached per
``(type, schema name)`` so every reference to a type shares one node object.
Class hierarchies become a root node with a discriminator whose mapping
points at one component per subclass; all names go through the configured
type-name provider so the mapping and the components agree.
"""

import dataclasses
import inspect
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel

from .documentation import DocumentationProvider
from .exceptions import SchemaNameCollisionError
from .hierarchy import is_model_type, polymorphic_parent
from .naming import TypeNameProvider, no_type_suffix, schema_name
from .reflection import (
    is_enum_type,
    is_optional_type,
    mapping_value_type,
    resolved_hints,
    sequence_item_type,
    split_annotated,
    union_members,
)
from .serialization import Serializer

COMPONENTS_PREFIX = "#/components/schemas/"


class SchemaKind(Enum):
    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    ENUM = "enum"
    POLYMORPHIC_ROOT = "polymorphic_root"


@dataclass(eq=False)
class Discriminator:
    property_name: str
    mapping: Dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class FieldSchema:
    name: str
    schema: "TypeSchemaNode"
    documentation: Optional[str] = None
    required: bool = True
    nullable: bool = False


@dataclass(eq=False)
class TypeSchemaNode:
    """A schema for one type.

    Nodes with a ``name`` are published as components and referenced by
    ``ref``; unnamed nodes (primitives, arrays, maps) are written inline.
    Nodes compare by identity.
    """

    name: Optional[str]
    kind: SchemaKind
    python_type: Any = None
    json_type: Optional[str] = None
    format: Optional[str] = None
    description: Optional[str] = None
    fields: List[FieldSchema] = field(default_factory=list)
    discriminator: Optional[Discriminator] = None
    parent: Optional["TypeSchemaNode"] = None
    items: Optional["TypeSchemaNode"] = None
    additional_properties: Optional["TypeSchemaNode"] = None
    any_of: List["TypeSchemaNode"] = field(default_factory=list)
    enum_values: List[Any] = field(default_factory=list)

    @property
    def is_component(self) -> bool:
        return self.name is not None

    @property
    def ref(self) -> str:
        return COMPONENTS_PREFIX + str(self.name)

    def references(self) -> List["TypeSchemaNode"]:
        """Component nodes this node points at directly."""
        found: List[TypeSchemaNode] = []
        inline = [f.schema for f in self.fields] + self.any_of
        if self.parent is not None:
            inline.append(self.parent)
        if self.items is not None:
            inline.append(self.items)
        if self.additional_properties is not None:
            inline.append(self.additional_properties)
        for node in inline:
            if node.is_component:
                found.append(node)
            else:
                found.extend(node.references())
        return found


def _primitive(json_type: Optional[str], format: Optional[str] = None, python_type: Any = None) -> TypeSchemaNode:
    return TypeSchemaNode(None, SchemaKind.PRIMITIVE, python_type=python_type, json_type=json_type, format=format)


def _own_docstring(cls: type) -> Optional[str]:
    doc = cls.__dict__.get("__doc__")
    if not doc:
        return None
    # dataclasses without a docstring get their signature as __doc__
    if dataclasses.is_dataclass(cls) and doc.startswith(cls.__name__ + "("):
        return None
    return inspect.cleandoc(doc)


class ModelResolver:
    """Builds and caches :class:`TypeSchemaNode` objects for Python types."""

    def __init__(
        self,
        serializer: Optional[Serializer] = None,
        type_name_provider: TypeNameProvider = no_type_suffix,
        documentation_provider: Optional[DocumentationProvider] = None,
    ):
        self.serializer = serializer or Serializer()
        self.type_name_provider = type_name_provider
        self.documentation_provider = documentation_provider or DocumentationProvider()
        self._nodes: Dict[Tuple[Any, str], TypeSchemaNode] = {}
        self._names: Dict[str, Any] = {}
        self.schemas: Dict[str, TypeSchemaNode] = {}

    def name_for(self, cls: type) -> str:
        return schema_name(cls, self.type_name_provider)

    def resolve(self, tp: Any) -> TypeSchemaNode:
        """Schema node for ``tp``; component nodes are registered in ``schemas``."""
        tp, _ = split_annotated(tp)
        _, tp = is_optional_type(tp)

        if tp is Any or tp is object or tp is inspect.Parameter.empty:
            return _primitive(None)
        if is_enum_type(tp):
            return self._resolve_enum(tp)
        if is_model_type(tp):
            return self._resolve_model(tp)

        primitive = self._resolve_primitive(tp)
        if primitive is not None:
            return primitive

        item_type = sequence_item_type(tp)
        if item_type is not None:
            node = TypeSchemaNode(None, SchemaKind.ARRAY, python_type=tp, json_type="array")
            node.items = self.resolve(item_type)
            return node

        value_type = mapping_value_type(tp)
        if value_type is not None:
            node = TypeSchemaNode(None, SchemaKind.OBJECT, python_type=tp, json_type="object")
            node.additional_properties = self.resolve(value_type)
            return node

        members = union_members(tp)
        if members:
            node = _primitive(None, python_type=tp)
            node.any_of = [self.resolve(member) for member in members]
            return node

        return _primitive("object", python_type=tp)

    def _resolve_primitive(self, tp: Any) -> Optional[TypeSchemaNode]:
        if not inspect.isclass(tp):
            return None
        if issubclass(tp, bool):
            return _primitive("boolean", python_type=tp)
        if issubclass(tp, int):
            return _primitive("integer", "int64", python_type=tp)
        if issubclass(tp, float):
            return _primitive("number", "double", python_type=tp)
        if issubclass(tp, Decimal):
            return _primitive("string", "decimal", python_type=tp)
        if issubclass(tp, str):
            return _primitive("string", python_type=tp)
        if issubclass(tp, bytes):
            return _primitive("string", "byte", python_type=tp)
        if issubclass(tp, datetime):
            if self.serializer.date_format == "timestamp":
                return _primitive("integer", "int64", python_type=tp)
            return _primitive("string", "date-time", python_type=tp)
        if issubclass(tp, date):
            return _primitive("string", "date", python_type=tp)
        if issubclass(tp, time):
            return _primitive("string", "time", python_type=tp)
        if issubclass(tp, UUID):
            return _primitive("string", "uuid", python_type=tp)
        return None

    def _cached(self, cls: type, name: str) -> Optional[TypeSchemaNode]:
        node = self._nodes.get((cls, name))
        if node is not None:
            return node
        existing = self._names.get(name)
        if existing is not None and existing is not cls:
            raise SchemaNameCollisionError(name, existing, cls)
        return None

    def _register(self, cls: type, node: TypeSchemaNode) -> None:
        self._nodes[(cls, node.name)] = node
        self._names[node.name] = cls
        self.schemas[node.name] = node

    def _resolve_enum(self, cls: type) -> TypeSchemaNode:
        name = self.name_for(cls)
        node = self._cached(cls, name)
        if node is not None:
            return node

        values = [self.serializer.enum_literal(member) for member in cls]
        if all(isinstance(v, str) for v in values):
            json_type = "string"
        elif all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            json_type = "integer"
        else:
            json_type = None
        node = TypeSchemaNode(
            name, SchemaKind.ENUM, python_type=cls, json_type=json_type,
            description=_own_docstring(cls), enum_values=values,
        )
        self._register(cls, node)
        return node

    def _resolve_model(self, cls: type) -> TypeSchemaNode:
        name = self.name_for(cls)
        node = self._cached(cls, name)
        if node is not None:
            return node

        tags = self.serializer.type_tags(cls)
        subclasses = [sub for sub in tags.values() if sub is not cls]
        parent_cls = polymorphic_parent(cls)
        kind = SchemaKind.POLYMORPHIC_ROOT if subclasses else SchemaKind.OBJECT
        node = TypeSchemaNode(name, kind, python_type=cls, json_type="object", description=_own_docstring(cls))
        # Registered before recursing so self-referencing models resolve to this node
        self._register(cls, node)

        inherited: Tuple[str, ...] = ()
        if parent_cls is not None:
            node.parent = self._resolve_model(parent_cls)
            inherited = tuple(self._field_declarations(parent_cls))
        elif subclasses:
            tag_property = self.serializer.type_tag_property
            # instances of the top-most class are written without a tag
            node.fields.append(FieldSchema(tag_property, _primitive("string"), required=False))

        for field_name, (annotation, metadata, required, fallback_doc) in self._field_declarations(cls).items():
            if field_name in inherited:
                continue
            optional, _ = is_optional_type(annotation)
            if optional and not self.serializer.include_none:
                # None values are left out of the written object
                required = False
            documentation = self.documentation_provider.for_model(metadata) or fallback_doc
            node.fields.append(
                FieldSchema(field_name, self.resolve(annotation), documentation, required, nullable=optional)
            )

        if subclasses:
            node.discriminator = Discriminator(self.serializer.type_tag_property)
            for tag, sub in tags.items():
                target = node if sub is cls else self._resolve_model(sub)
                node.discriminator.mapping[tag] = target.ref

        return node

    @staticmethod
    def _field_declarations(cls: type) -> Dict[str, Tuple[Any, List[Any], bool, Optional[str]]]:
        """Field name to (annotation, declared metadata, required, description)."""
        declarations: Dict[str, Tuple[Any, List[Any], bool, Optional[str]]] = {}
        if issubclass(cls, BaseModel):
            for field_name, info in cls.model_fields.items():
                declarations[field_name] = (info.annotation, list(info.metadata), info.is_required(), info.description)
            return declarations

        hints = resolved_hints(cls)
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            annotation, metadata = split_annotated(hints.get(f.name, f.type))
            required = f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
            declarations[f.name] = (annotation, list(metadata), required, f.metadata.get("description"))
        return declarations
