"""
metadata.py
Raw representation of platform type metadata, as exposed to the struct builder.
Captures type definitions, their fields, attributes, layout flags and nested-type membership,
before any type resolution or naming has been applied.
"""
from enum import Enum
from typing import List, Optional, Dict, Any, Tuple


class MetadataError(RuntimeError):
    """Malformed or unresolvable metadata."""
    pass


class TypeCategory(Enum):
    STRUCT = "struct"
    ENUM = "enum"
    DELEGATE = "delegate"
    INTERFACE = "interface"
    CLASS = "class"


class TypeExpr:
    """
    A declared (unresolved) field type: a named type, a pointer to another TypeExpr,
    or a fixed-size array of another TypeExpr.
    """
    NAMED = "named"
    POINTER = "pointer"
    ARRAY = "array"

    def __init__(self, kind: str, name: Optional[str] = None, element: Optional['TypeExpr'] = None,
                 length: Optional[int] = None, is_const: bool = False):
        self.kind = kind
        self.name = name
        self.element = element
        self.length = length
        self.is_const = is_const

    @classmethod
    def named(cls, name: str) -> 'TypeExpr':
        return cls(cls.NAMED, name=name)

    @classmethod
    def pointer(cls, element: 'TypeExpr', is_const: bool = False) -> 'TypeExpr':
        return cls(cls.POINTER, element=element, is_const=is_const)

    @classmethod
    def array(cls, element: 'TypeExpr', length: int) -> 'TypeExpr':
        return cls(cls.ARRAY, element=element, length=length)

    def __str__(self):
        if self.kind == self.POINTER:
            return f"{'*const' if self.is_const else '*mut'} {self.element}"
        if self.kind == self.ARRAY:
            return f"[{self.element}; {self.length}]"
        return self.name

    def __repr__(self):
        return f"TypeExpr({str(self)!r})"


class Attribute:
    def __init__(self, name: str, args: Optional[List[Any]] = None):
        # Metadata attribute type names carry an "Attribute" suffix that is never significant here
        if name.endswith("Attribute") and name != "Attribute":
            name = name[:-len("Attribute")]
        self.name = name
        self.args = args or []

    def __repr__(self):
        return f"Attribute(name={self.name!r}, args={self.args!r})"


class ConstantValue:
    """A literal field value paired with its declared primitive type."""

    def __init__(self, value: Any, type_name: str):
        self.value = value
        self.type_name = type_name

    def gen(self) -> str:
        from generators.generator_utils import format_rust_constant
        return format_rust_constant(self.value, self.type_name)

    def __eq__(self, other):
        return isinstance(other, ConstantValue) and (self.value, self.type_name) == (other.value, other.type_name)

    def __repr__(self):
        return f"ConstantValue(value={self.value!r}, type_name={self.type_name!r})"


class FieldDef:
    def __init__(self, name: str, type_expr: Optional[TypeExpr] = None, is_literal: bool = False,
                 constant: Optional[ConstantValue] = None, line: Optional[int] = None):
        self.name = name
        self.type_expr = type_expr
        self.is_literal = is_literal
        self.constant = constant
        self.line = line

    def __repr__(self):
        if self.is_literal:
            return f"FieldDef(name={self.name!r}, constant={self.constant!r})"
        return f"FieldDef(name={self.name!r}, type_expr={self.type_expr!r})"


class TypeDef:
    def __init__(self, name: str, namespace: str, category: TypeCategory,
                 fields: Optional[List[FieldDef]] = None, attributes: Optional[List[Attribute]] = None,
                 explicit_layout: bool = False, winrt: bool = False,
                 generic_params: Optional[List[str]] = None, underlying_type: Optional[str] = None,
                 enum_values: Optional[List[Tuple[str, Optional[int]]]] = None,
                 enclosing: Optional['TypeDef'] = None, file: Optional[str] = None, line: Optional[int] = None):
        self.name = name
        self.namespace = namespace
        self.category = category
        self.fields = fields or []
        self.attributes = attributes or []
        self.explicit_layout = explicit_layout
        self.winrt = winrt
        self.generic_params = generic_params or []
        self.underlying_type = underlying_type
        self.enum_values = enum_values or []
        self.enclosing = enclosing
        self.file = file
        self.line = line
        self.reader: Optional['MetadataReader'] = None

    @property
    def qualified_name(self) -> str:
        if self.enclosing is not None:
            return f"{self.enclosing.qualified_name}.{self.name}"
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def is_nested(self) -> bool:
        return self.enclosing is not None

    def is_explicit_layout(self) -> bool:
        return self.explicit_layout

    def is_winrt(self) -> bool:
        return self.winrt

    def find_attribute(self, name: str) -> Optional[Attribute]:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        return None

    def has_attribute(self, name: str) -> bool:
        return self.find_attribute(name) is not None

    def __repr__(self):
        return f"TypeDef({self.qualified_name!r}, category={self.category.value!r})"


class MetadataReader:
    """
    Owns every TypeDef of a metadata source.
    Top-level definitions are indexed by (namespace, name); nested definitions are only
    reachable through their enclosing definition, in declaration order.
    """

    def __init__(self):
        self._types: Dict[Tuple[str, str], TypeDef] = {}
        self._order: List[TypeDef] = []
        self.nested_types: Dict[TypeDef, List[TypeDef]] = {}

    def add_definition(self, definition: TypeDef) -> TypeDef:
        key = (definition.namespace, definition.name)
        if key in self._types:
            raise MetadataError(f"Duplicate type definition '{definition.qualified_name}'")
        definition.reader = self
        self._types[key] = definition
        self._order.append(definition)
        return definition

    def add_nested_definition(self, enclosing: TypeDef, definition: TypeDef) -> TypeDef:
        siblings = self.nested_types.setdefault(enclosing, [])
        if any(existing.name == definition.name for existing in siblings):
            raise MetadataError(f"Duplicate nested type '{definition.name}' in '{enclosing.qualified_name}'")
        definition.reader = self
        definition.enclosing = enclosing
        definition.namespace = enclosing.namespace
        siblings.append(definition)
        return definition

    def lookup(self, namespace: str, name: str) -> Optional[TypeDef]:
        return self._types.get((namespace, name))

    def find_by_name(self, name: str) -> List[TypeDef]:
        return [definition for definition in self._order if definition.name == name]

    def nested_definitions(self, definition: TypeDef) -> List[TypeDef]:
        return list(self.nested_types.get(definition, []))

    def definitions(self) -> List[TypeDef]:
        return list(self._order)

    def namespaces(self) -> List[str]:
        return sorted({definition.namespace for definition in self._order})
