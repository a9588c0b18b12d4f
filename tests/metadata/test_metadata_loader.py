import pytest

from metadata import MetadataError, TypeCategory, TypeExpr
from metadata_loader import load_metadata_file, load_metadata_text
from tests.struct_test_utils import mdl_path


def test_load_sample_definitions_in_order(gdi_reader):
    reader = gdi_reader
    names = [d.name for d in reader.definitions()]
    assert names == [
        "HBRUSH", "RECT", "PALETTE", "PAINT", "CLSID_Palette", "EMPTY", "PALETTEPROC", "PALETTE_FLAGS",
    ]
    assert reader.namespaces() == ["Windows.Win32.Gdi"]


def test_struct_and_union_layout_flags(gdi_reader):
    reader = gdi_reader
    palette = reader.lookup("Windows.Win32.Gdi", "PALETTE")
    assert palette.category == TypeCategory.STRUCT
    assert not palette.is_explicit_layout()
    nested = reader.nested_definitions(palette)
    assert [n.name for n in nested] == ["_Anonymous_e__Union"]
    assert nested[0].is_explicit_layout()
    assert nested[0].enclosing is palette
    assert nested[0].namespace == "Windows.Win32.Gdi"
    assert nested[0].qualified_name == "Windows.Win32.Gdi.PALETTE._Anonymous_e__Union"
    # Nested definitions are not reachable by namespace lookup
    assert reader.lookup("Windows.Win32.Gdi", "_Anonymous_e__Union") is None


def test_fields_and_constants(gdi_reader):
    reader = gdi_reader
    rect = reader.lookup("Windows.Win32.Gdi", "RECT")
    assert [f.name for f in rect.fields] == ["left", "top", "right", "bottom", "MAX_EXTENT"]
    constant = rect.fields[-1]
    assert constant.is_literal
    assert constant.constant.value == 32767
    assert constant.constant.type_name == "i32"
    assert str(rect.fields[0].type_expr) == "i32"


def test_type_expressions():
    reader = load_metadata_text('''
    namespace Test {
        struct S {
            p: *mut *const u8;
            a: [Other.Thing; 4];
        }
    }
    ''')
    s = reader.lookup("Test", "S")
    p = s.fields[0].type_expr
    assert p.kind == TypeExpr.POINTER and not p.is_const
    assert p.element.kind == TypeExpr.POINTER and p.element.is_const
    assert p.element.element.name == "u8"
    a = s.fields[1].type_expr
    assert a.kind == TypeExpr.ARRAY and a.length == 4
    assert a.element.name == "Other.Thing"
    assert str(p) == "*mut *const u8"


def test_attributes_and_modifiers():
    reader = load_metadata_text('''
    namespace Test {
        [NativeTypedefAttribute]
        struct HANDLE { Value: isize; }
        [Guid(0x6d4865fe, 0x0ab8, 0x4d91, 0x8f, 0x62, 0x5d, 0xd6, 0xbe, 0x34, 0xa3, 0xe0)]
        winrt struct WithGuid { }
        struct G<T> { value: T; }
        enum E { A, B = 2 }
    }
    ''')
    handle = reader.lookup("Test", "HANDLE")
    assert handle.has_attribute("NativeTypedef")
    with_guid = reader.lookup("Test", "WithGuid")
    assert with_guid.is_winrt()
    assert with_guid.find_attribute("Guid").args[0] == 0x6d4865fe
    assert reader.lookup("Test", "G").generic_params == ["T"]
    e = reader.lookup("Test", "E")
    assert e.underlying_type == "i32"
    assert e.enum_values == [("A", None), ("B", 2)]


def test_nested_definitions_inherit_winrt():
    reader = load_metadata_text('''
    namespace Test {
        winrt struct Outer {
            inner: _inner_e__Struct;
            struct _inner_e__Struct { x: u32; }
        }
    }
    ''')
    outer = reader.lookup("Test", "Outer")
    assert reader.nested_definitions(outer)[0].is_winrt()


def test_duplicate_definition_is_an_error():
    with pytest.raises(MetadataError, match="Duplicate type definition"):
        load_metadata_text('namespace Test { struct S { } struct S { } }')


def test_non_positive_array_length_is_an_error():
    with pytest.raises(MetadataError, match="array length"):
        load_metadata_text('namespace Test { struct S { a: [u8; 0]; } }')


def test_generic_winrt_struct_is_an_error():
    with pytest.raises(MetadataError, match="<string>:2: WinRT struct 'Holder' cannot have generic parameters"):
        load_metadata_text('namespace Test {\n    winrt struct Holder<T> { value: T; }\n}')


def test_syntax_error_reports_file_and_line():
    with pytest.raises(MetadataError) as excinfo:
        load_metadata_file(mdl_path("invalid_syntax.mdl"))
    message = str(excinfo.value)
    assert "invalid_syntax.mdl:3:" in message
    assert "invalid metadata syntax" in message
