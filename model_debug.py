"""
model_debug.py
Pretty-print and debug dump utilities for StructuralModels.
"""
import json
import os
from typing import Any, Dict, List

from semantic_type import SemanticType
from struct_model import StructuralModel


def _describe_type(t: SemanticType) -> str:
    details = [f"kind={t.kind.value}"]
    if t.type_name is not None:
        details.append(f"type='{t.type_name.qualified_name}'")
    if t.generic_name:
        details.append(f"generic='{t.generic_name}'")
    if t.pointers:
        details.append(f"pointers={t.pointers}{' const' if t.is_const else ''}")
    if t.array is not None:
        details.append(f"array={t.array}")
    return ", ".join(details)


def _print_model(model: StructuralModel, indent_level: int, add_line_func):
    ind = '  ' * indent_level
    extra_info = [model.shape.value]
    if model.is_typedef:
        extra_info.append('typedef')
    if model.is_explicit_layout():
        extra_info.append('explicit layout')
    add_line_func(f"{ind}Struct: {model.name.qualified_name} [{' | '.join(extra_info)}]")
    if not model.guid.is_absent:
        add_line_func(f"{ind}  Guid: {model.guid}")
    if model.signature:
        add_line_func(f"{ind}  Signature: {model.signature}")
    for name, t in model.fields:
        add_line_func(f"{ind}  Field: {name} ({_describe_type(t)})")
    for name, value in model.constants:
        add_line_func(f"{ind}  Constant: {name} = {value.value!r} ({value.type_name})")
    if model.nested:
        add_line_func(f"{ind}  Nested:")
        for original_name, nested in model.nested.items():
            add_line_func(f"{ind}    [{original_name}]")
            _print_model(nested, indent_level + 3, add_line_func)


def format_model(model: StructuralModel, indent: int = 0) -> str:
    """Render a model and its nested models as an indented tree."""
    lines: List[str] = []
    _print_model(model, indent, lines.append)
    return "\n".join(lines)


def _type_to_dict(t: SemanticType) -> Dict[str, Any]:
    return {
        "kind": t.kind.value,
        "type": t.type_name.qualified_name if t.type_name is not None else None,
        "generic": t.generic_name,
        "pointers": t.pointers,
        "const": t.is_const,
        "array": t.array,
    }


def model_to_dict(model: StructuralModel) -> Dict[str, Any]:
    return {
        "name": model.name.name,
        "namespace": model.name.namespace,
        "shape": model.shape.value,
        "guid": None if model.guid.is_absent else str(model.guid),
        "is_typedef": model.is_typedef,
        "signature": model.signature,
        "fields": [{"name": name, **_type_to_dict(t)} for name, t in model.fields],
        "constants": [
            {"name": name, "value": value.value, "type": value.type_name}
            for name, value in model.constants
        ],
        "nested": {original: model_to_dict(nested) for original, nested in model.nested.items()},
    }


def dump_model_json(models: Any, file_path: str, verbose: bool = False) -> str:
    """
    Write one model, or a list of models, to file_path as JSON for inspection.
    Returns the path written.
    """
    if isinstance(models, StructuralModel):
        data = model_to_dict(models)
    else:
        data = [model_to_dict(m) for m in models]
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    if verbose:
        print(f"[DEBUG] Model dumped to {file_path}")
    return file_path
