"""
struct_model.py
Generator-ready model of one struct/union type definition and its nested anonymous types.

A StructuralModel is built once from a TypeDef and is not modified afterwards. It is consumed by
dependency collection (for ordering) and by the Rust struct generator (for emission); the emission
shape is decided here, once, and carried on the model.
"""
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Tuple, Union

from generators.generator_utils import rust_identifier, to_snake
from metadata import ConstantValue, MetadataError, TypeCategory, TypeDef
from semantic_type import SemanticType, TypeResolver
from struct_transforms.delegate_pointer_fix_transform import DelegatePointerFixTransform
from struct_transforms.empty_struct_padding_transform import EmptyStructPaddingTransform
from struct_transforms.struct_transform_pipeline import run_struct_transform_pipeline
from struct_transforms.unique_field_names_transform import UniqueFieldNamesTransform
from type_guid import TypeGuid
from type_name import TypeName

TYPEDEF_ATTRIBUTE = "NativeTypedef"


class AnonymousNestedTypeError(RuntimeError):
    """A nested type definition whose metadata name is not a generated anonymous name."""
    pass


class EmissionShape(Enum):
    # Identity marker: a single GUID constant
    CONSTANT_ONLY = "constant_only"
    # Explicit layout: all fields share storage
    UNION = "union"
    # Sequential layout with a union somewhere below it: no derived operations
    PLAIN_NO_DERIVE = "plain_no_derive"
    # Struct, ABI shadow struct and all derived operations
    FULL_AGGREGATE = "full_aggregate"


@dataclass(frozen=True, eq=False)
class StructuralModel:
    name: TypeName
    fields: Tuple[Tuple[str, SemanticType], ...]
    constants: Tuple[Tuple[str, ConstantValue], ...]
    signature: str
    is_typedef: bool
    guid: TypeGuid
    nested: Mapping[str, 'StructuralModel']
    shape: EmissionShape

    def is_explicit_layout(self) -> bool:
        return self.name.is_explicit_layout()

    def has_nested_union(self) -> bool:
        """True when any transitively nested model has explicit layout."""
        return _closure_has_union(self.nested)

    def field_names(self) -> List[str]:
        return [name for name, _ in self.fields]

    def all_fields_blittable(self) -> bool:
        return all(t.is_blittable() for _, t in self.fields)

    def walk(self) -> Iterator['StructuralModel']:
        """This model followed by every nested model, depth first, in nested order."""
        yield self
        for nested in self.nested.values():
            yield from nested.walk()

    def dependencies(self) -> List[TypeDef]:
        """
        Type definitions referenced by the fields of this model and of all nested models.
        Duplicates are kept; callers order and deduplicate as they need.
        """
        result = []
        for _, t in self.fields:
            result.extend(t.dependencies())
        for nested in self.nested.values():
            result.extend(nested.dependencies())
        return result


def dependencies(model: StructuralModel) -> List[TypeDef]:
    return model.dependencies()


def _closure_has_union(nested: Mapping[str, StructuralModel]) -> bool:
    return any(child.is_explicit_layout() or child.has_nested_union() for child in nested.values())


def classify_shape(name: TypeName, guid: TypeGuid, nested: Mapping[str, StructuralModel]) -> EmissionShape:
    if not guid.is_absent:
        return EmissionShape.CONSTANT_ONLY
    if name.is_explicit_layout():
        return EmissionShape.UNION
    if _closure_has_union(nested):
        return EmissionShape.PLAIN_NO_DERIVE
    return EmissionShape.FULL_AGGREGATE


class StructModelBuilder:
    """
    Builds StructuralModels from struct/union TypeDefs.

    Construction classifies literal and instance fields, builds nested anonymous types under
    synthetic names (<enclosing>_<index>), runs the field passes (unique names, delegate pointer
    fix, empty-struct padding) and reads the identity GUID and typedef marker.
    """

    def __init__(self, resolver: Optional[TypeResolver] = None, verbose: bool = False):
        self.resolver = resolver
        self.verbose = verbose

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def build(self, type_name: TypeName) -> StructuralModel:
        definition = type_name.definition
        if definition.category != TypeCategory.STRUCT:
            raise MetadataError(f"'{definition.qualified_name}' is a {definition.category.value}, not a struct or union")
        resolver = self.resolver or TypeResolver(definition.reader, self.verbose)

        signature = type_name.struct_signature() if type_name.is_winrt() else ""
        nested = self._build_nested(type_name, resolver)
        constants, working_fields = self._classify_fields(type_name, nested, resolver)
        guid = TypeGuid.from_type_def(definition)

        fields = run_struct_transform_pipeline(working_fields, [
            UniqueFieldNamesTransform(),
            DelegatePointerFixTransform(),
            EmptyStructPaddingTransform(guid),
        ])

        is_typedef = definition.has_attribute(TYPEDEF_ATTRIBUTE)
        shape = classify_shape(type_name, guid, nested)
        self.debug_print(
            f"Built {type_name.qualified_name}: shape={shape.value} fields={[n for n, _ in fields]} "
            f"constants={[n for n, _ in constants]} nested={list(nested.keys())}"
        )
        return StructuralModel(
            name=type_name,
            fields=tuple(fields),
            constants=tuple(constants),
            signature=signature,
            is_typedef=is_typedef,
            guid=guid,
            nested=nested,
            shape=shape,
        )

    def _build_nested(self, type_name: TypeName, resolver: TypeResolver) -> Mapping[str, StructuralModel]:
        definition = type_name.definition
        built = {}
        for nested_definition in definition.reader.nested_definitions(definition):
            if definition.generic_params:
                raise MetadataError(
                    f"Nested type '{nested_definition.name}' in generic struct '{definition.qualified_name}' "
                    f"is not supported"
                )
            if not nested_definition.name.startswith("_"):
                raise AnonymousNestedTypeError(
                    f"Nested type '{nested_definition.name}' in '{definition.qualified_name}' "
                    f"does not have a generated anonymous name"
                )
            nested_name = TypeName(
                nested_definition,
                namespace=type_name.namespace,
                name=f"{type_name.name}_{len(built)}",
            )
            self.debug_print(f"Nested {nested_definition.name} of {type_name.qualified_name} -> {nested_name.name}")
            built[nested_definition.name] = self.build(nested_name)
        # Keyed by original metadata name, iterated in name order
        return MappingProxyType(OrderedDict(sorted(built.items())))

    def _classify_fields(self, type_name: TypeName, nested: Mapping[str, StructuralModel],
                         resolver: TypeResolver):
        constants = []
        fields = []
        for field in type_name.definition.fields:
            if field.is_literal:
                if field.constant is not None:
                    constants.append((field.name, field.constant))
                continue
            t = resolver.resolve(field, type_name.definition, nested, type_name.namespace)
            fields.append((rust_identifier(to_snake(field.name)), t))
        return constants, fields


def build_model(definition: Union[TypeDef, TypeName], verbose: bool = False) -> StructuralModel:
    type_name = definition if isinstance(definition, TypeName) else TypeName(definition)
    return StructModelBuilder(verbose=verbose).build(type_name)
