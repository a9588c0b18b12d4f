"""
type_name.py
A type definition as it is named in generated code: the definition handle plus the
namespace and identifier to emit. Nested anonymous types keep their own TypeDef but
take the enclosing namespace and a synthetic identifier.
"""
from typing import Optional

from generators.generator_utils import relative_type_path
from metadata import TypeDef
from type_guid import TypeGuid


class TypeName:
    def __init__(self, definition: TypeDef, namespace: Optional[str] = None, name: Optional[str] = None):
        self.definition = definition
        self.namespace = namespace if namespace is not None else definition.namespace
        self.name = name if name is not None else definition.name

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    def is_winrt(self) -> bool:
        return self.definition.is_winrt()

    def is_explicit_layout(self) -> bool:
        return self.definition.is_explicit_layout()

    def gen(self) -> str:
        return self.name

    def gen_path(self, from_namespace: str) -> str:
        return relative_type_path(from_namespace, self.namespace, self.name)

    def gen_guid(self, guid: TypeGuid) -> str:
        data1, data2, data3, data4 = guid.fields()
        tail = ", ".join(f"0x{b:02x}" for b in data4)
        return f"::windows::Guid::from_values(0x{data1:08x}, 0x{data2:04x}, 0x{data3:04x}, [{tail}])"

    def struct_signature(self) -> str:
        """Runtime type-identity signature: struct(<Namespace.Name>;<field signatures>)."""
        from semantic_type import TypeResolver
        resolver = TypeResolver(self.definition.reader)
        signatures = [
            resolver.resolve(field, self.definition).signature()
            for field in self.definition.fields
            if not field.is_literal
        ]
        return f"struct({self.qualified_name};{';'.join(signatures)})"

    def __repr__(self):
        return f"TypeName({self.qualified_name!r})"
