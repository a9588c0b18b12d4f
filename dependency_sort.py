"""
Dependency sort utility for StructuralModels based on the types their fields hold by value.
Raises an error if a cycle is detected.
"""
from typing import Dict, List

from metadata import TypeDef
from struct_model import StructuralModel


class DependencyCycleError(Exception):
    pass


def value_dependencies(model: StructuralModel) -> List[TypeDef]:
    """Type definitions held by value (not behind a pointer) by the model or its nested models."""
    result = []
    for nested_model in model.walk():
        for _, t in nested_model.fields:
            if t.pointers == 0:
                result.extend(t.dependencies())
    return result


def topological_sort_models(models: List[StructuralModel]) -> List[StructuralModel]:
    """
    Given a list of StructuralModels, returns them sorted so that dependencies come first.
    Ties keep input order. Only dependencies on models in the list are followed.
    Raises DependencyCycleError if a cycle is detected.
    """
    by_definition: Dict[TypeDef, StructuralModel] = {m.name.definition: m for m in models}
    visited = set()
    temp_mark = set()
    result = []

    def visit(model: StructuralModel, path: List[str]):
        key = model.name.definition
        if key in visited:
            return
        if key in temp_mark:
            cycle = " -> ".join(path + [model.name.qualified_name])
            raise DependencyCycleError(f"Cycle detected: {cycle}")
        temp_mark.add(key)
        for dep in value_dependencies(model):
            dep_model = by_definition.get(dep)
            if dep_model is None or dep_model is model:
                continue
            visit(dep_model, path + [model.name.qualified_name])
        temp_mark.remove(key)
        visited.add(key)
        result.append(model)

    for model in models:
        visit(model, [])
    return result
