# metadata_loader.py
# Reads .mdl metadata files and builds a MetadataReader from the lark parse tree.
from typing import List, Optional

from lark import Token, Tree
from lark.exceptions import UnexpectedInput

from lark_parser import parse_metadata_dsl
from metadata import (
    Attribute,
    ConstantValue,
    FieldDef,
    MetadataError,
    MetadataReader,
    TypeCategory,
    TypeDef,
    TypeExpr,
)


def load_metadata_file(path: str, verbose: bool = False) -> MetadataReader:
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()
    return load_metadata_text(text, source_file=path, verbose=verbose)


def load_metadata_text(text: str, source_file: Optional[str] = None, verbose: bool = False) -> MetadataReader:
    return MetadataLoader(source_file, verbose).load(text)


class MetadataLoader:
    """
    Builds MetadataReader records from .mdl text.
    Parsing problems are reported as MetadataError carrying file, line and column.
    """

    def __init__(self, source_file: Optional[str] = None, verbose: bool = False):
        self.source_file = source_file or "<string>"
        self.verbose = verbose
        self.reader = MetadataReader()

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def load(self, text: str) -> MetadataReader:
        try:
            tree = parse_metadata_dsl(text)
        except UnexpectedInput as e:
            raise MetadataError(
                f"{self.source_file}:{e.line}:{e.column}: invalid metadata syntax"
            ) from e
        for ns_node in _subtrees(tree, 'namespace'):
            self._load_namespace(ns_node)
        self.debug_print(
            f"Loaded {len(self.reader.definitions())} definitions from {self.source_file} "
            f"in namespaces {self.reader.namespaces()}"
        )
        return self.reader

    def _load_namespace(self, ns_node: Tree):
        namespace = _dotted_name(ns_node.children[0])
        for def_node in _subtrees(ns_node, 'definition'):
            attributes = [self._attribute(a) for a in _subtrees(def_node, 'attribute')]
            winrt = any(isinstance(c, Token) and c.type == 'WINRT' for c in def_node.children)
            body = def_node.children[-1]
            definition = self._definition(body, namespace, attributes, winrt)
            self.reader.add_definition(definition)
            self.debug_print(f"Definition {definition.qualified_name} ({definition.category.value})")
            if body.data in ('struct_def', 'union_def'):
                self._load_nested(definition, body)

    def _definition(self, node: Tree, namespace: str, attributes: List[Attribute], winrt: bool) -> TypeDef:
        name = str(node.children[0])
        line = _line(node)
        if node.data in ('struct_def', 'union_def'):
            generic_params = []
            for params in _subtrees(node, 'generic_params'):
                generic_params = [str(t) for t in params.children]
            if winrt and generic_params:
                raise MetadataError(
                    f"{self.source_file}:{line}: WinRT struct '{name}' cannot have generic parameters"
                )
            fields = [self._field(member.children[0]) for member in _subtrees(node, 'member')
                      if member.children[0].data in ('field', 'constant')]
            return TypeDef(
                name, namespace, TypeCategory.STRUCT,
                fields=fields,
                attributes=attributes,
                explicit_layout=node.data == 'union_def',
                winrt=winrt,
                generic_params=generic_params,
                file=self.source_file,
                line=line,
            )
        if node.data == 'enum_def':
            names = [c for c in node.children if isinstance(c, Token) and c.type == 'NAME']
            underlying = str(names[1]) if len(names) > 1 else "i32"
            values = []
            for value_node in _subtrees(node, 'enum_value'):
                value = value_node.children[1] if len(value_node.children) > 1 else None
                values.append((str(value_node.children[0]), value))
            return TypeDef(name, namespace, TypeCategory.ENUM, attributes=attributes, winrt=winrt,
                           underlying_type=underlying, enum_values=values, file=self.source_file, line=line)
        category = {
            'delegate_def': TypeCategory.DELEGATE,
            'interface_def': TypeCategory.INTERFACE,
            'class_def': TypeCategory.CLASS,
        }[node.data]
        return TypeDef(name, namespace, category, attributes=attributes, winrt=winrt,
                       file=self.source_file, line=line)

    def _load_nested(self, enclosing: TypeDef, body: Tree):
        for member in _subtrees(body, 'member'):
            nested_node = member.children[0]
            if nested_node.data != 'nested_def':
                continue
            attributes = [self._attribute(a) for a in _subtrees(nested_node, 'attribute')]
            nested_body = nested_node.children[-1]
            nested = self._definition(nested_body, enclosing.namespace, attributes, enclosing.winrt)
            self.reader.add_nested_definition(enclosing, nested)
            self.debug_print(f"Nested definition {nested.qualified_name}")
            self._load_nested(nested, nested_body)

    def _field(self, node: Tree) -> FieldDef:
        name = str(node.children[0])
        if node.data == 'constant':
            type_name = str(node.children[1])
            value = node.children[2].children[0]
            return FieldDef(name, is_literal=True, constant=ConstantValue(value, type_name), line=_line(node))
        return FieldDef(name, type_expr=self._type_expr(node.children[1]), line=_line(node))

    def _type_expr(self, node: Tree) -> TypeExpr:
        inner = node.children[0]
        if inner.data == 'pointer_type':
            pointer_kind = str(inner.children[0])
            return TypeExpr.pointer(self._type_expr(inner.children[1]), is_const=pointer_kind == '*const')
        if inner.data == 'array_type':
            length = inner.children[1]
            if not isinstance(length, int) or length <= 0:
                raise MetadataError(f"{self.source_file}:{_line(inner)}: array length must be a positive integer")
            return TypeExpr.array(self._type_expr(inner.children[0]), length)
        return TypeExpr.named(_dotted_name(inner.children[0]))

    def _attribute(self, node: Tree) -> Attribute:
        name = str(node.children[0])
        args = []
        for args_node in _subtrees(node, 'attribute_args'):
            for arg_node in args_node.children:
                value = arg_node.children[0]
                # NAME tokens are kept as bare names, everything else is already a Python value
                args.append(str(value) if isinstance(value, Token) else value)
        return Attribute(name, args)


def _subtrees(node: Tree, data: str) -> List[Tree]:
    return [c for c in node.children if isinstance(c, Tree) and c.data == data]


def _dotted_name(node: Tree) -> str:
    return '.'.join(str(t) for t in node.children)


def _line(node: Tree) -> int:
    return getattr(node.meta, 'line', None) or -1
