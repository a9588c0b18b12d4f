from lark import Lark, Transformer


# Grammar for the textual metadata format (.mdl)
grammar = r"""
    start: namespace*

    namespace: "namespace" dotted_name "{" definition* "}"

    definition: attribute* WINRT? (struct_def | union_def | enum_def | delegate_def | interface_def | class_def)

    attribute: "[" NAME attribute_args? "]"
    attribute_args: "(" (attribute_arg ("," attribute_arg)*)? ")"
    attribute_arg: STRING | NUMBER | NAME

    struct_def: "struct" NAME generic_params? "{" member* "}"
    union_def: "union" NAME generic_params? "{" member* "}"
    generic_params: "<" NAME ("," NAME)* ">"

    member: field | constant | nested_def
    nested_def: attribute* (struct_def | union_def)
    field: NAME ":" type_expr ";"
    constant: "const" NAME ":" NAME "=" literal ";"
    literal: STRING | NUMBER

    type_expr: pointer_type | array_type | named_type
    pointer_type: POINTER type_expr
    array_type: "[" type_expr ";" NUMBER "]"
    named_type: dotted_name
    dotted_name: NAME ("." NAME)*

    enum_def: "enum" NAME (":" NAME)? "{" (enum_value ("," enum_value)* ","?)? "}"
    enum_value: NAME ("=" NUMBER)?
    delegate_def: "delegate" NAME ";"
    interface_def: "interface" NAME ";"
    class_def: "class" NAME ";"

    WINRT: "winrt"
    POINTER: "*mut" | "*const"
    NUMBER: /-?(0[xX][0-9a-fA-F]+|[0-9]+(\.[0-9]+)?)/
    STRING: /"(\\.|[^"\\])*"/
    NAME: /[a-zA-Z_][a-zA-Z0-9_]*/
    COMMENT: /\/\/[^\n]*/

    %ignore COMMENT
    %import common.WS
    %ignore WS
"""

parser = Lark(
    grammar,
    start='start',
    propagate_positions=True
)


class NormalizeLiterals(Transformer):
    """
    Turn NUMBER tokens into int/float and STRING tokens into unquoted str.
    NAME tokens stay Tokens, so the loader can tell a bare name from a string literal.
    """

    def NUMBER(self, token):
        text = str(token)
        if text.lower().startswith(('0x', '-0x')):
            return int(text, 16)
        if '.' in text:
            return float(text)
        return int(text)

    def STRING(self, token):
        body = str(token)[1:-1]
        return body.replace('\\"', '"').replace('\\\\', '\\')


def parse_metadata_dsl(text):
    tree = parser.parse(text)
    # Literal values are resolved here so the loader only sees Python values
    tree = NormalizeLiterals().transform(tree)
    return tree
