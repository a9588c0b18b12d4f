import pytest

from metadata import FieldDef, MetadataError, TypeExpr
from metadata_loader import load_metadata_text
from semantic_type import SemanticType, TypeKind, TypeResolver

TEXT = '''
namespace Test.Core {
    struct Point { x: i32; y: i32; }
    struct Shared { v: u8; }
    delegate Callback;
    enum Mode : u8 { A = 0 }
    interface IThing;
    class Thing;
}
namespace Test.Other {
    struct Shared { w: u8; }
    struct Unique { z: u8; }
}
namespace Test.User {
    struct Holder<T> {
        value: T;
        inner: _inner_e__Struct;
        struct _inner_e__Struct { q: u32; }
    }
}
'''


@pytest.fixture
def reader():
    return load_metadata_text(TEXT)


def resolve(reader, namespace, enclosing, type_text_expr, nested=None):
    resolver = TypeResolver(reader)
    definition = reader.lookup(namespace, enclosing)
    return resolver.resolve(FieldDef("f", type_expr=type_text_expr), definition, nested)


def test_primitives(reader):
    t = resolve(reader, "Test.Core", "Point", TypeExpr.named("u16"))
    assert t == SemanticType(TypeKind.U16)
    assert t.is_primitive()
    assert resolve(reader, "Test.Core", "Point", TypeExpr.named("char")).kind == TypeKind.CHAR16


def test_same_namespace_wins_over_other_namespaces(reader):
    t = resolve(reader, "Test.Core", "Point", TypeExpr.named("Shared"))
    assert t.kind == TypeKind.STRUCT
    assert t.type_name.qualified_name == "Test.Core.Shared"


def test_unique_name_in_other_namespace(reader):
    t = resolve(reader, "Test.Core", "Point", TypeExpr.named("Unique"))
    assert t.type_name.qualified_name == "Test.Other.Unique"


def test_ambiguous_name_is_an_error(reader):
    with pytest.raises(MetadataError, match="Ambiguous"):
        resolve(reader, "Test.User", "Holder", TypeExpr.named("Shared"))


def test_dotted_name_is_exact(reader):
    t = resolve(reader, "Test.User", "Holder", TypeExpr.named("Test.Other.Shared"))
    assert t.type_name.qualified_name == "Test.Other.Shared"
    with pytest.raises(MetadataError, match="Cannot resolve"):
        resolve(reader, "Test.User", "Holder", TypeExpr.named("Test.Missing.Shared"))


def test_reference_kinds(reader):
    kinds = {
        name: resolve(reader, "Test.Core", "Point", TypeExpr.named(name)).kind
        for name in ("Callback", "Mode", "IThing", "Thing")
    }
    assert kinds == {
        "Callback": TypeKind.DELEGATE,
        "Mode": TypeKind.ENUM,
        "IThing": TypeKind.INTERFACE,
        "Thing": TypeKind.CLASS,
    }


def test_pointer_and_array(reader):
    t = resolve(reader, "Test.Core", "Point", TypeExpr.pointer(TypeExpr.pointer(TypeExpr.named("u8"), is_const=True)))
    assert t.kind == TypeKind.U8 and t.pointers == 2 and t.is_const
    a = resolve(reader, "Test.Core", "Point", TypeExpr.array(TypeExpr.named("Point"), 3))
    assert a.kind == TypeKind.STRUCT and a.array == 3


def test_unsupported_shapes(reader):
    with pytest.raises(MetadataError, match="Pointer to array"):
        resolve(reader, "Test.Core", "Point", TypeExpr.pointer(TypeExpr.array(TypeExpr.named("u8"), 2)))
    with pytest.raises(MetadataError, match="Nested arrays"):
        resolve(reader, "Test.Core", "Point", TypeExpr.array(TypeExpr.array(TypeExpr.named("u8"), 2), 2))
    with pytest.raises(MetadataError, match="void"):
        resolve(reader, "Test.Core", "Point", TypeExpr.named("void"))
    assert resolve(reader, "Test.Core", "Point", TypeExpr.pointer(TypeExpr.named("void"))).pointers == 1


def test_generic_parameter(reader):
    t = resolve(reader, "Test.User", "Holder", TypeExpr.named("T"))
    assert t.kind == TypeKind.GENERIC_PARAM
    assert t.generic_name == "T"


def test_nested_definition_without_mapping(reader):
    t = resolve(reader, "Test.User", "Holder", TypeExpr.named("_inner_e__Struct"))
    assert t.kind == TypeKind.STRUCT
    assert t.is_nested_reference()
    assert t.dependencies() == []


def test_nested_mapping_substitutes_synthetic_name(reader):
    class Child:
        def __init__(self, name):
            self.name = name

    from type_name import TypeName
    holder = reader.lookup("Test.User", "Holder")
    inner = reader.nested_definitions(holder)[0]
    nested = {"_inner_e__Struct": Child(TypeName(inner, name="Holder_0"))}
    t = resolve(reader, "Test.User", "Holder", TypeExpr.named("_inner_e__Struct"), nested)
    assert t.type_name.gen() == "Holder_0"


def test_unresolvable_name(reader):
    with pytest.raises(MetadataError, match="Cannot resolve type 'Nope'"):
        resolve(reader, "Test.Core", "Point", TypeExpr.named("Nope"))


def test_literal_field_has_no_type(reader):
    point = reader.lookup("Test.Core", "Point")
    with pytest.raises(ValueError):
        TypeResolver(reader).resolve(FieldDef("C", is_literal=True), point)
