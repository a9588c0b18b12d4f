"""
Rust code generator for StructuralModels.
Emits windows-crate style declarations: #[repr(C)] structs and unions, the hidden `_abi` shadow
struct used at call boundaries, and the derived Default/Debug/PartialEq/Eq/Copy/RuntimeType impls.

Which declarations exist for a model is decided by its EmissionShape:

    CONSTANT_ONLY    one GUID constant, nothing else
    UNION            union body and nested types
    PLAIN_NO_DERIVE  struct body, constants and nested types
    FULL_AGGREGATE   everything; Copy only when all fields are blittable,
                     RuntimeType only when the model has a signature
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple

from generators.generator_utils import namespace_module_path, rust_byte_string_literal, rust_identifier, rust_string_literal
from semantic_type import SemanticType
from struct_model import EmissionShape, StructuralModel
from struct_transforms.unique_field_names_transform import bare_identifier

INDENT = "    "
FILE_HEADER = "// Generated by struct_wrangler. Do not edit."


class DeclarationKind(Enum):
    GUID_CONSTANT = "guid_constant"
    UNION = "union"
    STRUCT = "struct"
    ABI_STRUCT = "abi_struct"
    CONSTANTS = "constants"
    ABI_IMPL = "abi_impl"
    DEFAULT_IMPL = "default_impl"
    DEBUG_IMPL = "debug_impl"
    PARTIAL_EQ_IMPL = "partial_eq_impl"
    EQ_IMPL = "eq_impl"
    COPY_IMPL = "copy_impl"
    RUNTIME_TYPE_IMPL = "runtime_type_impl"


# Operations derived from the struct's fields; only FULL_AGGREGATE models get them
DERIVED_KINDS = {
    DeclarationKind.ABI_STRUCT,
    DeclarationKind.ABI_IMPL,
    DeclarationKind.DEFAULT_IMPL,
    DeclarationKind.DEBUG_IMPL,
    DeclarationKind.PARTIAL_EQ_IMPL,
    DeclarationKind.EQ_IMPL,
    DeclarationKind.COPY_IMPL,
    DeclarationKind.RUNTIME_TYPE_IMPL,
}


@dataclass(frozen=True)
class Declaration:
    kind: DeclarationKind
    type_name: str
    text: str


class RustStructGenerator:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def generate(self, model: StructuralModel) -> str:
        return "\n".join(d.text for d in self.generate_declarations(model))

    def generate_declarations(self, model: StructuralModel) -> List[Declaration]:
        shape = model.shape
        self.debug_print(f"Emitting {model.name.qualified_name} as {shape.value}")
        if shape == EmissionShape.CONSTANT_ONLY:
            return [self._guid_constant(model)]
        if shape == EmissionShape.UNION:
            decls = [self._union(model)]
            decls.extend(self._nested(model))
            return decls
        if shape == EmissionShape.PLAIN_NO_DERIVE:
            decls = [self._struct(model)]
            decls.extend(self._constants(model))
            decls.extend(self._nested(model))
            return decls

        decls = [
            self._struct(model),
            self._abi_struct(model),
        ]
        decls.extend(self._constants(model))
        decls.extend([
            self._abi_impl(model),
            self._default_impl(model),
            self._debug_impl(model),
            self._partial_eq_impl(model),
            self._eq_impl(model),
        ])
        if model.all_fields_blittable():
            decls.append(self._copy_impl(model))
        if model.signature:
            decls.append(self._runtime_type_impl(model))
        decls.extend(self._nested(model))
        return decls

    def generate_file(self, models: Iterable[StructuralModel]) -> str:
        """
        Emit every model into one source file, wrapping each namespace in nested `pub mod` blocks
        so that relative `super::` paths between namespaces resolve.
        """
        by_namespace: Dict[Tuple[str, ...], List[StructuralModel]] = {}
        for model in models:
            key = tuple(namespace_module_path(model.name.namespace))
            by_namespace.setdefault(key, []).append(model)

        lines = [FILE_HEADER, ""]
        open_path: List[str] = []
        for path in sorted(by_namespace):
            common = 0
            while common < len(open_path) and common < len(path) and open_path[common] == path[common]:
                common += 1
            while len(open_path) > common:
                open_path.pop()
                lines.append(INDENT * len(open_path) + "}")
            for segment in path[common:]:
                lines.append(INDENT * len(open_path) + f"pub mod {segment} {{")
                open_path.append(segment)
            depth = INDENT * len(open_path)
            for model in by_namespace[path]:
                for line in self.generate(model).splitlines():
                    lines.append(depth + line if line else line)
        while open_path:
            open_path.pop()
            lines.append(INDENT * len(open_path) + "}")
        return "\n".join(lines) + "\n"

    # --- helpers ---

    def _generics(self, model: StructuralModel) -> Tuple[str, str]:
        params = model.name.definition.generic_params
        if not params:
            return "", ""
        declared = ", ".join(f"{p}: ::windows::RuntimeType + 'static" for p in params)
        return f"<{declared}>", f"<{', '.join(params)}>"

    def _self_type(self, model: StructuralModel) -> str:
        _, used = self._generics(model)
        return f"{model.name.gen()}{used}"

    def _impl(self, model: StructuralModel, trait: str, body: List[str], unsafe: bool = False) -> str:
        declared, _ = self._generics(model)
        head = f"{'unsafe ' if unsafe else ''}impl{declared} {trait} for {self._self_type(model)}"
        if not body:
            return head + " {}"
        return "\n".join([head + " {"] + [INDENT + line for line in body] + ["}"])

    def _accessor(self, model: StructuralModel, index: int, name: str) -> str:
        if model.is_typedef:
            return str(index)
        return name

    def _field_type(self, model: StructuralModel, t: SemanticType) -> str:
        return t.gen_field(model.name.namespace)

    def _body(self, model: StructuralModel, positional: bool) -> List[str]:
        if positional:
            fields = ", ".join(f"pub {self._field_type(model, t)}" for _, t in model.fields)
            return [f"({fields});"]
        lines = ["{"]
        for name, t in model.fields:
            lines.append(f"{INDENT}pub {name}: {self._field_type(model, t)},")
        lines.append("}")
        return lines

    def _attributes(self) -> List[str]:
        return [
            "#[repr(C)]",
            "#[allow(non_snake_case)]",
            "#[derive(::std::clone::Clone)]",
        ]

    # --- declarations ---

    def _guid_constant(self, model: StructuralModel) -> Declaration:
        text = f"pub const {model.name.gen()}: ::windows::Guid = {model.name.gen_guid(model.guid)};"
        return Declaration(DeclarationKind.GUID_CONSTANT, model.name.gen(), text)

    def _union(self, model: StructuralModel) -> Declaration:
        declared, _ = self._generics(model)
        body = self._body(model, positional=False)
        lines = self._attributes() + [f"pub union {model.name.gen()}{declared} {body[0]}"] + body[1:]
        return Declaration(DeclarationKind.UNION, model.name.gen(), "\n".join(lines))

    def _struct(self, model: StructuralModel) -> Declaration:
        declared, _ = self._generics(model)
        body = self._body(model, positional=model.is_typedef)
        head = f"pub struct {model.name.gen()}{declared}"
        if model.is_typedef:
            lines = self._attributes() + [f"{head}{body[0]}"]
        else:
            lines = self._attributes() + [f"{head} {body[0]}"] + body[1:]
        return Declaration(DeclarationKind.STRUCT, model.name.gen(), "\n".join(lines))

    def _abi_struct(self, model: StructuralModel) -> Declaration:
        declared, _ = self._generics(model)
        abi = [t.gen_abi(model.name.namespace) for _, t in model.fields]
        # Projections through Abi do not count as uses of a type parameter
        abi.extend(f"::std::marker::PhantomData<{p}>" for p in model.name.definition.generic_params)
        lines = [
            "#[repr(C)]",
            "#[doc(hidden)]",
            f"pub struct {model.name.gen()}_abi{declared}({', '.join(abi)});",
        ]
        return Declaration(DeclarationKind.ABI_STRUCT, model.name.gen(), "\n".join(lines))

    def _constants(self, model: StructuralModel) -> List[Declaration]:
        if not model.constants:
            return []
        declared, _ = self._generics(model)
        lines = [f"impl{declared} {self._self_type(model)} {{"]
        for name, value in model.constants:
            lines.append(f"{INDENT}pub const {rust_identifier(name)}: {value.gen()};")
        lines.append("}")
        return [Declaration(DeclarationKind.CONSTANTS, model.name.gen(), "\n".join(lines))]

    def _abi_impl(self, model: StructuralModel) -> Declaration:
        _, used = self._generics(model)
        text = self._impl(model, "::windows::Abi", [f"type Abi = {model.name.gen()}_abi{used};"], unsafe=True)
        return Declaration(DeclarationKind.ABI_IMPL, model.name.gen(), text)

    def _default_impl(self, model: StructuralModel) -> Declaration:
        if model.is_typedef:
            values = ", ".join(t.gen_default() for _, t in model.fields)
            construct = f"Self({values})"
        else:
            values = ", ".join(f"{name}: {t.gen_default()}" for name, t in model.fields)
            construct = f"Self {{ {values} }}" if values else "Self {}"
        body = [
            "fn default() -> Self {",
            f"{INDENT}{construct}",
            "}",
        ]
        return Declaration(DeclarationKind.DEFAULT_IMPL, model.name.gen(),
                           self._impl(model, "::std::default::Default", body))

    def _debug_impl(self, model: StructuralModel) -> Declaration:
        chain = [f"fmt.debug_struct({rust_string_literal(model.name.name)})"]
        for index, (name, t) in enumerate(model.fields):
            # Non-WinRT callbacks have no meaningful Debug representation
            if t.is_delegate() and not t.is_winrt_delegate():
                continue
            accessor = self._accessor(model, index, name)
            chain.append(f"{INDENT}.field({rust_string_literal(bare_identifier(name))}, &format_args!(\"{{:?}}\", self.{accessor}))")
        chain.append(f"{INDENT}.finish()")
        body = ["fn fmt(&self, fmt: &mut ::std::fmt::Formatter<'_>) -> ::std::fmt::Result {"]
        body.extend(INDENT + line for line in chain)
        body.append("}")
        return Declaration(DeclarationKind.DEBUG_IMPL, model.name.gen(),
                           self._impl(model, "::std::fmt::Debug", body))

    def _partial_eq_impl(self, model: StructuralModel) -> Declaration:
        comparisons = []
        for index, (name, t) in enumerate(model.fields):
            accessor = self._accessor(model, index, name)
            if t.is_delegate() and not t.is_winrt_delegate():
                # Callbacks compare by address
                comparisons.append(
                    f"self.{accessor}.map(|f| f as usize) == other.{accessor}.map(|f| f as usize)"
                )
            else:
                comparisons.append(f"self.{accessor} == other.{accessor}")
        compare = " && ".join(comparisons) if comparisons else "true"
        body = [
            "fn eq(&self, other: &Self) -> bool {",
            f"{INDENT}{compare}",
            "}",
        ]
        return Declaration(DeclarationKind.PARTIAL_EQ_IMPL, model.name.gen(),
                           self._impl(model, "::std::cmp::PartialEq", body))

    def _eq_impl(self, model: StructuralModel) -> Declaration:
        return Declaration(DeclarationKind.EQ_IMPL, model.name.gen(), self._impl(model, "::std::cmp::Eq", []))

    def _copy_impl(self, model: StructuralModel) -> Declaration:
        return Declaration(DeclarationKind.COPY_IMPL, model.name.gen(), self._impl(model, "::std::marker::Copy", []))

    def _runtime_type_impl(self, model: StructuralModel) -> Declaration:
        body = [
            "type DefaultType = Self;",
            f"const SIGNATURE: ::windows::ConstBuffer = "
            f"::windows::ConstBuffer::from_slice({rust_byte_string_literal(model.signature)});",
        ]
        return Declaration(DeclarationKind.RUNTIME_TYPE_IMPL, model.name.gen(),
                           self._impl(model, "::windows::RuntimeType", body, unsafe=True))

    def _nested(self, model: StructuralModel) -> List[Declaration]:
        decls = []
        for nested in model.nested.values():
            decls.extend(self.generate_declarations(nested))
        return decls


def emit_declarations(model: StructuralModel) -> List[Declaration]:
    return RustStructGenerator().generate_declarations(model)


def emit(model: StructuralModel) -> str:
    return RustStructGenerator().generate(model)
