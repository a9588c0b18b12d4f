"""
EmptyStructPaddingTransform: Gives a struct without instance fields a single 1-byte field.
The C/C++ ABI assumes an empty struct occupies one byte in memory. Types carrying an identity GUID
are emitted as a constant only and are left alone.
"""
from semantic_type import SemanticType, TypeKind
from struct_transforms.struct_transform_pipeline import FieldList
from type_guid import TypeGuid

RESERVED_FIELD_NAME = "reserved"


class EmptyStructPaddingTransform:
    def __init__(self, guid: TypeGuid):
        self.guid = guid

    def transform(self, fields: FieldList) -> FieldList:
        if not fields and self.guid.is_absent:
            fields.append((RESERVED_FIELD_NAME, SemanticType(TypeKind.U8)))
        return fields
