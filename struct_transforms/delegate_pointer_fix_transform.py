"""
DelegatePointerFixTransform: Forces the pointer depth of callback/delegate fields to zero.
Compensates for win32metadata issue 132: delegate-typed fields are recorded with one extra level of
indirection, which would otherwise change the emitted struct's size and alignment.
Remove this pass from the builder once the upstream metadata is fixed.
"""
from struct_transforms.struct_transform_pipeline import FieldList


class DelegatePointerFixTransform:
    def transform(self, fields: FieldList) -> FieldList:
        return [
            (name, t.with_pointers(0) if t.is_delegate() else t)
            for name, t in fields
        ]
