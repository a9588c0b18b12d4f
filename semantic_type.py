"""
semantic_type.py
Resolved field types. A SemanticType is what the struct builder and the generators work with:
the declared TypeExpr of a field, looked up against the metadata and flattened into a kind,
a pointer depth and an optional fixed array length.
"""
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from generators.generator_utils import RUST_PRIMITIVE_TYPES
from metadata import FieldDef, MetadataError, MetadataReader, TypeCategory, TypeDef, TypeExpr
from type_guid import TypeGuid
from type_name import TypeName


class TypeKind(Enum):
    VOID = "void"
    BOOL = "bool"
    CHAR16 = "char"
    I8 = "i8"
    U8 = "u8"
    I16 = "i16"
    U16 = "u16"
    I32 = "i32"
    U32 = "u32"
    I64 = "i64"
    U64 = "u64"
    F32 = "f32"
    F64 = "f64"
    ISIZE = "isize"
    USIZE = "usize"
    STRING = "string"
    OBJECT = "object"
    GUID = "guid"
    STRUCT = "struct"
    ENUM = "enum"
    DELEGATE = "delegate"
    INTERFACE = "interface"
    CLASS = "class"
    GENERIC_PARAM = "generic"


PRIMITIVE_KINDS: Dict[str, TypeKind] = {
    kind.value: kind for kind in (
        TypeKind.VOID, TypeKind.BOOL, TypeKind.CHAR16,
        TypeKind.I8, TypeKind.U8, TypeKind.I16, TypeKind.U16,
        TypeKind.I32, TypeKind.U32, TypeKind.I64, TypeKind.U64,
        TypeKind.F32, TypeKind.F64, TypeKind.ISIZE, TypeKind.USIZE,
        TypeKind.STRING, TypeKind.OBJECT, TypeKind.GUID,
    )
}

REFERENCE_KINDS = {
    TypeCategory.STRUCT: TypeKind.STRUCT,
    TypeCategory.ENUM: TypeKind.ENUM,
    TypeCategory.DELEGATE: TypeKind.DELEGATE,
    TypeCategory.INTERFACE: TypeKind.INTERFACE,
    TypeCategory.CLASS: TypeKind.CLASS,
}

# Runtime type-identity signature fragments
SIGNATURES = {
    TypeKind.BOOL: "b1",
    TypeKind.CHAR16: "c2",
    TypeKind.I8: "i1",
    TypeKind.U8: "u1",
    TypeKind.I16: "i2",
    TypeKind.U16: "u2",
    TypeKind.I32: "i4",
    TypeKind.U32: "u4",
    TypeKind.I64: "i8",
    TypeKind.U64: "u8",
    TypeKind.F32: "f4",
    TypeKind.F64: "f8",
    TypeKind.STRING: "string",
    TypeKind.OBJECT: "cinterface(IInspectable)",
    TypeKind.GUID: "g16",
}

FLOAT_KINDS = {TypeKind.F32, TypeKind.F64}
# Kinds whose value is a nullable reference in generated code
NULLABLE_KINDS = {TypeKind.OBJECT, TypeKind.INTERFACE, TypeKind.CLASS, TypeKind.DELEGATE}


class SemanticType:
    def __init__(self, kind: TypeKind, pointers: int = 0, array: Optional[int] = None,
                 type_name: Optional[TypeName] = None, generic_name: Optional[str] = None,
                 is_const: bool = False):
        self.kind = kind
        self.pointers = pointers
        self.array = array
        self.type_name = type_name
        self.generic_name = generic_name
        self.is_const = is_const

    def with_pointers(self, pointers: int) -> 'SemanticType':
        return SemanticType(self.kind, pointers, self.array, self.type_name, self.generic_name, self.is_const)

    def is_primitive(self) -> bool:
        return self.kind.value in PRIMITIVE_KINDS

    def is_delegate(self) -> bool:
        return self.kind == TypeKind.DELEGATE

    def is_winrt_delegate(self) -> bool:
        return self.is_delegate() and self.type_name.is_winrt()

    def is_nested_reference(self) -> bool:
        return self.type_name is not None and self.type_name.definition.is_nested

    def is_blittable(self) -> bool:
        """True when the value can be duplicated by a raw memory copy."""
        if self.pointers > 0:
            return True
        kind = self.kind
        if kind == TypeKind.STRUCT:
            return definition_is_blittable(self.type_name.definition)
        if kind == TypeKind.DELEGATE:
            return not self.type_name.is_winrt()
        if kind in (TypeKind.STRING, TypeKind.OBJECT, TypeKind.INTERFACE, TypeKind.CLASS, TypeKind.GENERIC_PARAM):
            return False
        return True

    def dependencies(self) -> List[TypeDef]:
        if self.type_name is None or self.is_nested_reference():
            return []
        return [self.type_name.definition]

    # --- Rust rendering ---

    def _gen_base(self, namespace: str) -> str:
        kind = self.kind
        if kind.value in RUST_PRIMITIVE_TYPES:
            return RUST_PRIMITIVE_TYPES[kind.value]
        if kind == TypeKind.STRING:
            return "::windows::HString"
        if kind == TypeKind.OBJECT:
            return "::std::option::Option<::windows::Object>"
        if kind == TypeKind.GUID:
            return "::windows::Guid"
        if kind == TypeKind.GENERIC_PARAM:
            return self.generic_name
        path = self.type_name.gen_path(namespace)
        if kind in NULLABLE_KINDS:
            return f"::std::option::Option<{path}>"
        return path

    def _wrap(self, base: str) -> str:
        pointer = "*const " if self.is_const else "*mut "
        text = pointer * self.pointers + base
        if self.array is not None:
            text = f"[{text}; {self.array}]"
        return text

    def gen_field(self, namespace: str) -> str:
        return self._wrap(self._gen_base(namespace))

    def gen_default(self) -> str:
        if self.array is not None:
            if self.is_blittable():
                element = SemanticType(self.kind, self.pointers, None, self.type_name, self.generic_name, self.is_const)
                return f"[{element.gen_default()}; {self.array}]"
            return "unsafe { ::std::mem::zeroed() }"
        if self.pointers > 0:
            return "::std::ptr::null()" if self.is_const else "::std::ptr::null_mut()"
        kind = self.kind
        if kind == TypeKind.BOOL:
            return "false"
        if kind in FLOAT_KINDS:
            return "0.0"
        if self.is_primitive() and kind not in (TypeKind.STRING, TypeKind.OBJECT, TypeKind.GUID):
            return "0"
        if kind in NULLABLE_KINDS:
            return "::std::option::Option::None"
        if kind == TypeKind.GUID:
            return "::windows::Guid::zeroed()"
        return "::std::default::Default::default()"

    def gen_abi(self, namespace: str) -> str:
        if self.pointers > 0:
            return self.gen_field(namespace)
        kind = self.kind
        if kind in (TypeKind.STRING, TypeKind.OBJECT, TypeKind.INTERFACE, TypeKind.CLASS):
            base = "::windows::RawPtr"
        elif kind == TypeKind.DELEGATE:
            base = "::windows::RawPtr" if self.type_name.is_winrt() else self._gen_base(namespace)
        elif kind == TypeKind.STRUCT and not definition_is_blittable(self.type_name.definition):
            base = f"<{self.type_name.gen_path(namespace)} as ::windows::Abi>::Abi"
        elif kind == TypeKind.GENERIC_PARAM:
            base = f"<{self.generic_name} as ::windows::Abi>::Abi"
        else:
            base = self._gen_base(namespace)
        return self._wrap(base)

    def signature(self) -> str:
        if self.pointers > 0 or self.array is not None:
            raise MetadataError(f"{self!r} has no runtime type signature")
        kind = self.kind
        if kind in SIGNATURES:
            return SIGNATURES[kind]
        if kind == TypeKind.STRUCT:
            return self.type_name.struct_signature()
        if kind == TypeKind.ENUM:
            underlying = PRIMITIVE_KINDS.get(self.type_name.definition.underlying_type or "i32", TypeKind.I32)
            return f"enum({self.type_name.qualified_name};{SIGNATURES[underlying]})"
        if kind == TypeKind.INTERFACE:
            return f"{{{TypeGuid.from_type_def(self.type_name.definition)}}}"
        if kind == TypeKind.DELEGATE:
            return f"delegate({{{TypeGuid.from_type_def(self.type_name.definition)}}})"
        raise MetadataError(f"{self!r} has no runtime type signature")

    def __eq__(self, other):
        if not isinstance(other, SemanticType):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.pointers == other.pointers
            and self.array == other.array
            and self.generic_name == other.generic_name
            and self.is_const == other.is_const
            and (self.type_name.definition if self.type_name else None)
            is (other.type_name.definition if other.type_name else None)
        )

    def __repr__(self):
        parts = [self.kind.value]
        if self.type_name is not None:
            parts.append(self.type_name.qualified_name)
        if self.generic_name:
            parts.append(self.generic_name)
        if self.pointers:
            parts.append(f"pointers={self.pointers}")
        if self.array is not None:
            parts.append(f"array={self.array}")
        return f"SemanticType({', '.join(parts)})"


def definition_is_blittable(definition: TypeDef, _visiting: Optional[set] = None) -> bool:
    """A struct is blittable when every instance field is."""
    if definition.category != TypeCategory.STRUCT:
        return definition.category == TypeCategory.ENUM or (
            definition.category == TypeCategory.DELEGATE and not definition.is_winrt()
        )
    visiting = _visiting if _visiting is not None else set()
    if definition in visiting:
        raise MetadataError(f"Type '{definition.qualified_name}' contains itself by value")
    visiting.add(definition)
    resolver = TypeResolver(definition.reader)
    try:
        for field in definition.fields:
            if field.is_literal:
                continue
            t = resolver.resolve(field, definition)
            if t.is_delegate():
                # Delegate pointer depth is unreliable in metadata, see DelegatePointerFixTransform
                t = t.with_pointers(0)
            if t.pointers > 0:
                continue
            if t.kind == TypeKind.STRUCT:
                if not definition_is_blittable(t.type_name.definition, visiting):
                    return False
            elif not t.is_blittable():
                return False
        return True
    finally:
        visiting.discard(definition)


class TypeResolver:
    """
    Maps a field's declared TypeExpr to a SemanticType.

    Bare names are looked up as: primitive names, generic parameters of the enclosing
    definitions, the `nested` mapping (original nested-type name -> object exposing a
    `name` TypeName), nested definitions of the enclosing type, the enclosing namespace,
    and finally any namespace holding a single definition of that name.
    Dotted names are looked up exactly.
    """

    def __init__(self, reader: MetadataReader, verbose: bool = False):
        self.reader = reader
        self.verbose = verbose

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def resolve(self, field: FieldDef, enclosing: TypeDef, nested: Optional[Mapping[str, Any]] = None,
                namespace: Optional[str] = None) -> SemanticType:
        if field.is_literal:
            raise ValueError(f"Literal field '{field.name}' has no storage type")
        context = f"field '{field.name}' of '{enclosing.qualified_name}'"
        t = self.resolve_expr(field.type_expr, enclosing, nested, namespace, context)
        if t.kind == TypeKind.VOID and t.pointers == 0:
            raise MetadataError(f"Type 'void' is only valid behind a pointer ({context})")
        self.debug_print(f"Resolved {context}: {field.type_expr} -> {t!r}")
        return t

    def resolve_expr(self, expr: TypeExpr, enclosing: TypeDef, nested: Optional[Mapping[str, Any]] = None,
                     namespace: Optional[str] = None, context: str = "") -> SemanticType:
        if expr.kind == TypeExpr.POINTER:
            element = self.resolve_expr(expr.element, enclosing, nested, namespace, context)
            if element.array is not None:
                raise MetadataError(f"Pointer to array is not supported ({context})")
            t = element.with_pointers(element.pointers + 1)
            t.is_const = element.is_const or expr.is_const
            return t
        if expr.kind == TypeExpr.ARRAY:
            element = self.resolve_expr(expr.element, enclosing, nested, namespace, context)
            if element.array is not None:
                raise MetadataError(f"Nested arrays are not supported ({context})")
            element.array = expr.length
            return element
        return self._resolve_name(expr.name, enclosing, nested, namespace or enclosing.namespace, context)

    def _resolve_name(self, name: str, enclosing: TypeDef, nested: Optional[Mapping[str, Any]],
                      namespace: str, context: str) -> SemanticType:
        if name in PRIMITIVE_KINDS:
            return SemanticType(PRIMITIVE_KINDS[name])
        definition = None
        if '.' in name:
            type_namespace, _, short_name = name.rpartition('.')
            definition = self.reader.lookup(type_namespace, short_name)
        else:
            owner = enclosing
            while owner is not None:
                if name in owner.generic_params:
                    return SemanticType(TypeKind.GENERIC_PARAM, generic_name=name)
                owner = owner.enclosing
            if nested is not None and name in nested:
                return self._reference(nested[name].name)
            for nested_definition in self.reader.nested_definitions(enclosing):
                if nested_definition.name == name:
                    return self._reference(TypeName(nested_definition))
            definition = self.reader.lookup(namespace, name)
            if definition is None:
                candidates = self.reader.find_by_name(name)
                if len(candidates) > 1:
                    found = ', '.join(c.qualified_name for c in candidates)
                    raise MetadataError(f"Ambiguous type '{name}' for {context}: {found}")
                if candidates:
                    definition = candidates[0]
        if definition is None:
            raise MetadataError(f"Cannot resolve type '{name}' for {context}")
        return self._reference(TypeName(definition))

    def _reference(self, type_name: TypeName) -> SemanticType:
        return SemanticType(REFERENCE_KINDS[type_name.definition.category], type_name=type_name)
