"""
UniqueFieldNamesTransform: Makes the identifiers of one struct's fields pairwise distinct.
A handful of platform structs (CIECHROMA, GenTspecParms, ...) have field names that collapse to the
same snake_case identifier. The first occurrence keeps its identifier; later ones get a numeric
suffix starting at 2, skipping any identifier already taken.

Identifiers arrive already escaped for Rust, so `r#type` and `type` name the same field. A suffixed
identifier is never a keyword and drops the raw prefix.
"""
from struct_transforms.struct_transform_pipeline import FieldList

RAW_PREFIX = "r#"


def bare_identifier(name: str) -> str:
    return name[len(RAW_PREFIX):] if name.startswith(RAW_PREFIX) else name


def assign_unique_field_names(fields: FieldList) -> FieldList:
    unique = set()
    result = []
    for name, t in fields:
        field_name = name
        base = bare_identifier(name)
        if base in unique:
            unique_count = 1
            while True:
                unique_count += 1
                candidate = f"{base}{unique_count}"
                if candidate not in unique:
                    field_name = candidate
                    break
        unique.add(bare_identifier(field_name))
        result.append((field_name, t))
    return result


class UniqueFieldNamesTransform:
    def transform(self, fields: FieldList) -> FieldList:
        return assign_unique_field_names(fields)
