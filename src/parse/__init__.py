"""Import-declaration front-ends for layerguard."""

from parse.base import ImportParser
from parse.models import DeclarationKind, ImportDeclaration, ParsedModule
from parse.treesitter_imports import TreeSitterImportParser

__all__ = [
    "DeclarationKind",
    "ImportDeclaration",
    "ImportParser",
    "ParsedModule",
    "TreeSitterImportParser",
]
