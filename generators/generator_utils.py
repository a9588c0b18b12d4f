"""
Shared utilities for the Rust code generators.
Handles identifier transliteration, reserved keywords, module paths and literal formatting.
"""
import re
from typing import Any, List

RUST_RESERVED_KEYWORDS = {
    # Strict keywords
    "as", "break", "const", "continue", "crate", "else", "enum", "extern", "false",
    "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod", "move", "mut",
    "pub", "ref", "return", "self", "Self", "static", "struct", "super", "trait",
    "true", "type", "unsafe", "use", "where", "while",
    # 2018+ keywords
    "async", "await", "dyn",
    # Reserved for future use
    "abstract", "become", "box", "do", "final", "macro", "override", "priv",
    "typeof", "unsized", "virtual", "yield", "try",
}

# Keywords that cannot be written as raw identifiers
RUST_NON_RAW_KEYWORDS = {"crate", "self", "Self", "super"}

# Metadata primitive names -> Rust types
RUST_PRIMITIVE_TYPES = {
    'void': '::std::ffi::c_void',
    'bool': 'bool',
    'char': 'u16',
    'i8': 'i8',
    'u8': 'u8',
    'i16': 'i16',
    'u16': 'u16',
    'i32': 'i32',
    'u32': 'u32',
    'i64': 'i64',
    'u64': 'u64',
    'f32': 'f32',
    'f64': 'f64',
    'isize': 'isize',
    'usize': 'usize',
}

_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def to_snake(name: str) -> str:
    """Transliterate a metadata name (camelCase, PascalCase, SCREAMING) to snake_case."""
    return _SNAKE_BOUNDARY.sub("_", name).lower()


def rust_identifier(name: str) -> str:
    """Make a name usable as a Rust identifier, escaping keywords."""
    if name in RUST_NON_RAW_KEYWORDS:
        return f"{name}_"
    if name in RUST_RESERVED_KEYWORDS:
        return f"r#{name}"
    return name


def namespace_module_path(namespace: str) -> List[str]:
    return [rust_identifier(to_snake(segment)) for segment in namespace.split('.') if segment]


def relative_type_path(from_namespace: str, to_namespace: str, name: str) -> str:
    """
    Path to `name` declared in `to_namespace` as seen from a module generated for `from_namespace`.
    Namespaces map to nested snake_case modules.
    """
    if from_namespace == to_namespace:
        return name
    source = namespace_module_path(from_namespace)
    target = namespace_module_path(to_namespace)
    common = 0
    while common < len(source) and common < len(target) and source[common] == target[common]:
        common += 1
    parts = ["super"] * (len(source) - common) + target[common:] + [name]
    return "::".join(parts)


def rust_string_literal(text: str) -> str:
    escaped = text.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def rust_byte_string_literal(text: str) -> str:
    return 'b' + rust_string_literal(text)


def format_rust_constant(value: Any, type_name: str) -> str:
    """Render `TYPE = LITERAL` for a literal field."""
    if type_name == 'string':
        return f"&'static str = {rust_string_literal(str(value))}"
    if type_name == 'bool':
        return f"bool = {'true' if value else 'false'}"
    rust_type = RUST_PRIMITIVE_TYPES.get(type_name, type_name)
    if isinstance(value, float) or rust_type in ('f32', 'f64'):
        return f"{rust_type} = {float(value)!r}{rust_type}"
    return f"{rust_type} = {value}{rust_type}"
