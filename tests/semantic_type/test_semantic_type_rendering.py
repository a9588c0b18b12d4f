import pytest

from metadata import FieldDef, MetadataError, TypeExpr
from metadata_loader import load_metadata_text
from semantic_type import SemanticType, TypeKind, TypeResolver, definition_is_blittable

TEXT = '''
namespace Test.A {
    struct Plain { x: i32; p: *mut Heavy; }
    struct Heavy { s: string; }
    struct WithCallback { cb: *mut Callback; }
    struct WithHandler { h: Handler; }
    struct Self_ { me: Self_; }
    delegate Callback;
    winrt delegate Handler;
    interface IThing;
    enum Mode : u8 { A = 0 }
    winrt struct Point { X: f32; Y: f32; }
    winrt struct Outer { P: Point; M: Mode; G: guid; S: string; }
}
namespace Test.B.Inner {
    struct Far { v: u8; }
}
'''


@pytest.fixture
def reader():
    return load_metadata_text(TEXT)


def resolve(reader, expr, enclosing="Plain", namespace="Test.A"):
    return TypeResolver(reader).resolve(FieldDef("f", type_expr=expr), reader.lookup(namespace, enclosing))


def test_blittable_rules(reader):
    assert resolve(reader, TypeExpr.named("i32")).is_blittable()
    assert resolve(reader, TypeExpr.named("Mode")).is_blittable()
    assert resolve(reader, TypeExpr.named("guid")).is_blittable()
    assert resolve(reader, TypeExpr.named("Callback")).is_blittable()
    assert not resolve(reader, TypeExpr.named("Handler")).is_blittable()
    assert not resolve(reader, TypeExpr.named("string")).is_blittable()
    assert not resolve(reader, TypeExpr.named("object")).is_blittable()
    assert not resolve(reader, TypeExpr.named("IThing")).is_blittable()
    # Pointers are always blittable
    assert resolve(reader, TypeExpr.pointer(TypeExpr.named("Heavy"))).is_blittable()
    # Struct references follow their fields, arrays follow their element
    assert resolve(reader, TypeExpr.named("Plain")).is_blittable()
    assert not resolve(reader, TypeExpr.named("Heavy")).is_blittable()
    assert not resolve(reader, TypeExpr.array(TypeExpr.named("Heavy"), 2)).is_blittable()


def test_definition_blittable_applies_delegate_fix(reader):
    assert definition_is_blittable(reader.lookup("Test.A", "WithCallback"))
    assert not definition_is_blittable(reader.lookup("Test.A", "WithHandler"))


def test_struct_containing_itself_by_value(reader):
    with pytest.raises(MetadataError, match="contains itself"):
        definition_is_blittable(reader.lookup("Test.A", "Self_"))


def test_gen_field(reader):
    assert resolve(reader, TypeExpr.named("i32")).gen_field("Test.A") == "i32"
    assert resolve(reader, TypeExpr.named("char")).gen_field("Test.A") == "u16"
    assert resolve(reader, TypeExpr.named("string")).gen_field("Test.A") == "::windows::HString"
    assert resolve(reader, TypeExpr.named("guid")).gen_field("Test.A") == "::windows::Guid"
    assert resolve(reader, TypeExpr.named("IThing")).gen_field("Test.A") == "::std::option::Option<IThing>"
    assert resolve(reader, TypeExpr.named("object")).gen_field("Test.A") == "::std::option::Option<::windows::Object>"
    assert resolve(reader, TypeExpr.pointer(TypeExpr.pointer(TypeExpr.named("void"), is_const=True))) \
        .gen_field("Test.A") == "*const *const ::std::ffi::c_void"
    assert resolve(reader, TypeExpr.array(TypeExpr.named("u8"), 4)).gen_field("Test.A") == "[u8; 4]"


def test_gen_field_relative_path(reader):
    t = resolve(reader, TypeExpr.named("Far"))
    assert t.gen_field("Test.A") == "super::b::inner::Far"
    assert t.gen_field("Test.B.Inner") == "Far"


def test_gen_default(reader):
    assert resolve(reader, TypeExpr.named("bool")).gen_default() == "false"
    assert resolve(reader, TypeExpr.named("f64")).gen_default() == "0.0"
    assert resolve(reader, TypeExpr.named("u32")).gen_default() == "0"
    assert resolve(reader, TypeExpr.named("guid")).gen_default() == "::windows::Guid::zeroed()"
    assert resolve(reader, TypeExpr.named("IThing")).gen_default() == "::std::option::Option::None"
    assert resolve(reader, TypeExpr.named("string")).gen_default() == "::std::default::Default::default()"
    assert resolve(reader, TypeExpr.named("Plain")).gen_default() == "::std::default::Default::default()"
    assert resolve(reader, TypeExpr.pointer(TypeExpr.named("u8"))).gen_default() == "::std::ptr::null_mut()"
    assert resolve(reader, TypeExpr.pointer(TypeExpr.named("u8"), is_const=True)).gen_default() == "::std::ptr::null()"
    assert resolve(reader, TypeExpr.array(TypeExpr.named("u8"), 4)).gen_default() == "[0; 4]"
    assert resolve(reader, TypeExpr.array(TypeExpr.named("string"), 2)).gen_default() == "unsafe { ::std::mem::zeroed() }"


def test_gen_abi(reader):
    assert resolve(reader, TypeExpr.named("u32")).gen_abi("Test.A") == "u32"
    assert resolve(reader, TypeExpr.named("string")).gen_abi("Test.A") == "::windows::RawPtr"
    assert resolve(reader, TypeExpr.named("IThing")).gen_abi("Test.A") == "::windows::RawPtr"
    assert resolve(reader, TypeExpr.named("Handler")).gen_abi("Test.A") == "::windows::RawPtr"
    assert resolve(reader, TypeExpr.named("Callback")).gen_abi("Test.A") == "::std::option::Option<Callback>"
    assert resolve(reader, TypeExpr.named("Plain")).gen_abi("Test.A") == "Plain"
    assert resolve(reader, TypeExpr.named("Heavy")).gen_abi("Test.A") == "<Heavy as ::windows::Abi>::Abi"


def test_signatures(reader):
    assert resolve(reader, TypeExpr.named("Point")).signature() == "struct(Test.A.Point;f4;f4)"
    assert resolve(reader, TypeExpr.named("Mode")).signature() == "enum(Test.A.Mode;u1)"
    outer = resolve(reader, TypeExpr.named("Outer"))
    assert outer.signature() == "struct(Test.A.Outer;struct(Test.A.Point;f4;f4);enum(Test.A.Mode;u1);g16;string)"
    with pytest.raises(MetadataError):
        resolve(reader, TypeExpr.pointer(TypeExpr.named("u8"))).signature()


def test_equality_ignores_type_name_instance(reader):
    a = resolve(reader, TypeExpr.named("Plain"))
    b = resolve(reader, TypeExpr.named("Plain"))
    assert a == b
    assert a != a.with_pointers(1)
    assert SemanticType(TypeKind.U8) != SemanticType(TypeKind.I8)
