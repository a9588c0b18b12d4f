"""
struct_transform_pipeline.py
Defines a pipeline for the passes applied to a struct's working field list during model construction.
A field list is an ordered list of (identifier, SemanticType) pairs.
"""
from typing import List, Protocol, Tuple

from semantic_type import SemanticType

FieldList = List[Tuple[str, SemanticType]]


class StructTransform(Protocol):
    def transform(self, fields: FieldList) -> FieldList:
        ...


def run_struct_transform_pipeline(
    fields: FieldList,
    transforms: List[StructTransform]
) -> FieldList:
    """
    Applies a sequence of StructTransform objects to a field list.
    Each transform takes a field list and returns a new one; the input list is not modified.
    """
    for transform in transforms:
        fields = transform.transform(list(fields))
    return fields
