"""Tree-sitter based import extraction for TypeScript and JavaScript modules."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from errors import ParseError
from parse.models import DeclarationKind, ImportDeclaration, ParsedModule

if TYPE_CHECKING:
    from collections.abc import Iterator

# .ts files use the plain TypeScript grammar because `<T>expr` casts are not
# valid TSX; everything else may contain JSX.
_TS_SUFFIXES = (".ts", ".mts", ".cts")
_TSX_SUFFIXES = (".tsx", ".js", ".jsx", ".mjs", ".cjs")

# Top-level statements allowed in a barrel besides re-exports.
_BARREL_NOISE = frozenset({"comment", "hash_bang_line", "empty_statement"})

# Declarations whose `name` field is the exported binding.
_NAMED_DECLARATIONS = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "interface_declaration",
        "type_alias_declaration",
        "enum_declaration",
        "module",
        "internal_module",
        "function_signature",
    }
)

_local = threading.local()


def _get_parser(path: str) -> Parser:
    """Return a per-thread parser for the grammar matching the file suffix."""
    grammar = "typescript" if path.endswith(_TS_SUFFIXES) else "tsx"
    parsers: dict[str, Parser] | None = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = {}
        _local.parsers = parsers
    parser = parsers.get(grammar)
    if parser is None:
        if grammar == "typescript":
            lang = Language(tree_sitter_typescript.language_typescript())
        else:
            lang = Language(tree_sitter_typescript.language_tsx())
        parser = Parser(lang)
        parsers[grammar] = parser
    return parser


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf8", errors="replace")


def _string_value(node: Node | None) -> str | None:
    """Return the literal value of a string or substitution-free template string."""
    if node is None:
        return None
    if node.type == "string":
        return _text(node)[1:-1]
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.children):
            return None
        return _text(node)[1:-1]
    return None


def _position(node: Node) -> tuple[int, int]:
    return node.start_point[0] + 1, node.start_point[1] + 1


def _find_first(node: Node, node_type: str) -> Node | None:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _walk(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _first_error_line(root: Node) -> int | None:
    for node in _walk(root):
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
    return None


def _import_clause_symbols(clause: Node) -> tuple[str, ...]:
    """Names taken from the target by an import clause; empty for `* as ns`."""
    symbols: list[str] = []
    for child in clause.children:
        if child.type == "identifier":
            symbols.append("default")
        elif child.type == "namespace_import":
            return ()
        elif child.type == "named_imports":
            for item in child.children:
                if item.type != "import_specifier":
                    continue
                name = item.child_by_field_name("name")
                value = _string_value(name)
                symbols.append(value if value is not None else _text(name))
    return tuple(symbols)


def _handle_import_statement(node: Node) -> ImportDeclaration | None:
    line, column = _position(node)
    source = node.child_by_field_name("source")
    require_clause = _find_first(node, "import_require_clause")
    if source is None and require_clause is not None:
        source = require_clause.child_by_field_name("source") or _find_first(
            require_clause, "string"
        )
    specifier = _string_value(source)
    if specifier is None:
        return None

    if require_clause is not None:
        return ImportDeclaration(
            specifier=specifier,
            kind=DeclarationKind.REQUIRE,
            line=line,
            column=column,
        )

    clause = _find_first(node, "import_clause")
    symbols = _import_clause_symbols(clause) if clause is not None else ()
    return ImportDeclaration(
        specifier=specifier,
        kind=DeclarationKind.IMPORT,
        line=line,
        column=column,
        symbols=symbols,
    )


def _handle_reexport(node: Node, specifier: str) -> ImportDeclaration:
    line, column = _position(node)
    namespace = _find_first(node, "namespace_export")
    if namespace is not None:
        names = [child for child in namespace.children if child.is_named]
        alias = _string_value(names[-1]) if names else None
        exported = alias if alias is not None else _text(names[-1]) if names else ""
        return ImportDeclaration(
            specifier=specifier,
            kind=DeclarationKind.REEXPORT,
            line=line,
            column=column,
            symbols=("*",),
            exported_as=(exported,) if exported else (),
        )

    clause = _find_first(node, "export_clause")
    if clause is None:
        return ImportDeclaration(
            specifier=specifier,
            kind=DeclarationKind.REEXPORT,
            line=line,
            column=column,
            symbols=("*",),
        )

    symbols: list[str] = []
    exported_as: list[str] = []
    for item in clause.children:
        if item.type != "export_specifier":
            continue
        name = _text(item.child_by_field_name("name")).strip("'\"")
        alias_node = item.child_by_field_name("alias")
        alias = _text(alias_node).strip("'\"") if alias_node is not None else name
        symbols.append(name)
        exported_as.append(alias)
    return ImportDeclaration(
        specifier=specifier,
        kind=DeclarationKind.REEXPORT,
        line=line,
        column=column,
        symbols=tuple(symbols),
        exported_as=tuple(exported_as),
    )


def _local_export_names(node: Node) -> set[str]:
    """Names published by an export statement without a `from` clause."""
    names: set[str] = set()
    if any(child.type == "default" for child in node.children):
        return {"default"}
    if any(child.type == "=" for child in node.children):
        # `export = value` (CommonJS interop)
        return {"default"}

    clause = _find_first(node, "export_clause")
    if clause is not None:
        for item in clause.children:
            if item.type != "export_specifier":
                continue
            alias = item.child_by_field_name("alias") or item.child_by_field_name(
                "name"
            )
            names.add(_text(alias).strip("'\""))
        return names

    declaration = node.child_by_field_name("declaration")
    if declaration is None:
        return names
    if declaration.type in _NAMED_DECLARATIONS:
        name = declaration.child_by_field_name("name")
        if name is not None:
            names.add(_text(name))
    elif declaration.type in ("lexical_declaration", "variable_declaration"):
        for declarator in declaration.children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                names.add(_text(name))
    return names


def _handle_call(node: Node) -> ImportDeclaration | None:
    function = node.child_by_field_name("function")
    if function is None:
        return None
    if function.type == "import":
        kind = DeclarationKind.DYNAMIC
    elif function.type == "identifier" and _text(function) == "require":
        kind = DeclarationKind.REQUIRE
    else:
        return None

    arguments = node.child_by_field_name("arguments")
    first_arg = None
    if arguments is not None:
        named = [child for child in arguments.children if child.is_named]
        first_arg = named[0] if named else None
    specifier = _string_value(first_arg)
    line, column = _position(node)
    if specifier is None:
        # A computed require() is as unknowable as a computed import().
        kind = DeclarationKind.DYNAMIC
    return ImportDeclaration(
        specifier=specifier,
        kind=kind,
        line=line,
        column=column,
    )


def _is_barrel(root: Node) -> bool:
    reexports = 0
    for child in root.named_children:
        if child.type in _BARREL_NOISE:
            continue
        if child.type == "export_statement" and child.child_by_field_name("source"):
            reexports += 1
            continue
        return False
    return reexports > 0


class TreeSitterImportParser:
    """Default front-end: tree-sitter TypeScript/TSX grammars."""

    version = "ts-imports-1"

    def __init__(self, extensions: tuple[str, ...] | list[str] | None = None) -> None:
        self.extensions = tuple(extensions or (*_TS_SUFFIXES, *_TSX_SUFFIXES))

    def supports(self, path: str) -> bool:
        return path.endswith(self.extensions) and not path.endswith(".d.ts")

    def parse(self, source: bytes, path: str) -> ParsedModule:
        """Extract import declarations from module source.

        Raises:
            ParseError: If the grammar reports a syntax error.
        """
        tree = _get_parser(path).parse(source)
        root = tree.root_node
        if root.has_error:
            line = _first_error_line(root)
            raise ParseError(path, "syntax error in module", line=line)

        declarations: list[ImportDeclaration] = []
        exports: set[str] = set()

        for node in _walk(root):
            if node.type == "import_statement":
                decl = _handle_import_statement(node)
                if decl is not None:
                    declarations.append(decl)
            elif node.type == "export_statement":
                specifier = _string_value(node.child_by_field_name("source"))
                if specifier is None:
                    exports.update(_local_export_names(node))
                    continue
                decl = _handle_reexport(node, specifier)
                declarations.append(decl)
                if decl.symbols == ("*",) and not decl.exported_as:
                    exports.add(f"* from {specifier}")
                else:
                    exports.update(decl.exported_as)
            elif node.type == "call_expression":
                decl = _handle_call(node)
                if decl is not None:
                    declarations.append(decl)

        declarations.sort(key=lambda d: (d.line, d.column))
        return ParsedModule(
            declarations=tuple(declarations),
            exports=frozenset(exports),
            is_barrel=_is_barrel(root),
        )


__all__ = ["TreeSitterImportParser"]
