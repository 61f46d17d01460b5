"""Module summary extraction using tree-sitter.

Parses JS/TS/JSX/TSX module text with the tree-sitter-typescript grammars
and pulls out what the graph needs (boundary directive, resolved imports)
and, on demand, what highlighting needs (component definitions and JSX tag
usages with their character ranges).

tree-sitter recovers from syntax errors by wrapping the damage in ERROR
nodes, so a module mid-edit still yields its intact statements.
"""

from __future__ import annotations

import functools
import logging
import os
import threading

import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Parser, Tree

from nextclient.boundary.resolver import SpecifierResolver
from nextclient.config import BOUNDARY_DIRECTIVE, SOURCE_GRAMMARS
from nextclient.errors import ExtractionError
from nextclient.models.module import (
    ComponentDefinition,
    ModuleOutline,
    ModuleRecord,
    SourceRange,
    TagUsage,
)
from nextclient.models.types import GrammarKind

logger = logging.getLogger(__name__)

# Statement kinds that may carry a component definition at top level
_FUNCTION_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
}
_CLASS_DECLARATIONS = {"class_declaration", "abstract_class_declaration", "class"}
_VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}
# "function" is the pre-0.21 grammar name for function_expression
_FUNCTION_VALUES = {"arrow_function", "function_expression", "function"}

_PROLOGUE_SKIP = {"comment", "hash_bang_line"}


@functools.lru_cache(maxsize=None)
def _get_language(kind: GrammarKind) -> Language:
    """Load a tree-sitter-typescript grammar."""
    if kind == GrammarKind.TYPESCRIPT:
        return Language(ts_typescript.language_typescript())
    elif kind == GrammarKind.TSX:
        return Language(ts_typescript.language_tsx())
    else:
        raise ValueError(f"Unsupported grammar: {kind}")


def grammar_for(path: str, grammars: dict[str, GrammarKind] | None = None) -> GrammarKind:
    """Pick the grammar for a file by extension, defaulting to TSX."""
    table = grammars if grammars is not None else SOURCE_GRAMMARS
    _, ext = os.path.splitext(path)
    return table.get(ext.lower(), GrammarKind.TSX)


def _node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _string_value(node: Node, source: bytes) -> str:
    """Unquoted value of a string literal node."""
    text = _node_text(node, source)
    if len(text) >= 2 and text[0] in "'\"" and text[-1] == text[0]:
        return text[1:-1]
    return text.strip("'\"")


def _starts_uppercase(name: str) -> bool:
    return name[:1].isupper()


class _OffsetMap:
    """Converts tree-sitter byte offsets to character offsets."""

    def __init__(self, source: bytes, text: str) -> None:
        self._source = source
        self._ascii = len(source) == len(text)
        self._cache: dict[int, int] = {}

    def char_offset(self, byte_offset: int) -> int:
        if self._ascii:
            return byte_offset
        if byte_offset not in self._cache:
            prefix = self._source[:byte_offset]
            self._cache[byte_offset] = len(prefix.decode("utf-8", errors="replace"))
        return self._cache[byte_offset]

    def range_of(self, node: Node) -> SourceRange:
        return SourceRange(
            start=self.char_offset(node.start_byte),
            end=self.char_offset(node.end_byte),
        )


class ModuleExtractor:
    """Builds ModuleRecords and ModuleOutlines from module text.

    One extractor serves the whole workspace. tree-sitter parsers are not
    thread-safe, so each thread gets its own; languages are shared.
    """

    def __init__(
        self,
        resolver: SpecifierResolver,
        directive: str = BOUNDARY_DIRECTIVE,
        grammars: dict[str, GrammarKind] | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            resolver: Resolver used to turn import specifiers into paths.
            directive: Literal directive marking a client module.
            grammars: Extension -> grammar table. Defaults to SOURCE_GRAMMARS.
        """
        self._resolver = resolver
        self._directive = directive
        self._grammars = grammars if grammars is not None else dict(SOURCE_GRAMMARS)
        self._local = threading.local()

    def extract(self, path: str, content: str) -> ModuleRecord:
        """Summarize a module for the graph.

        Args:
            path: Canonical path of the module.
            content: Full module text (disk or live buffer).

        Returns:
            ModuleRecord with directive flag and resolved import set.

        Raises:
            ExtractionError: If the text can not be parsed at all.
        """
        source, tree = self._parse(path, content)
        root = tree.root_node

        has_directive = self._has_directive(root, source)
        imports: set[str] = set()
        for specifier in self._import_specifiers(root, source):
            resolved = self._resolver.resolve(specifier, path)
            if resolved and resolved != path:
                imports.add(resolved)

        if has_directive:
            logger.debug("boundary_directive_found path=%s", path)

        return ModuleRecord(
            path=path,
            has_boundary_directive=has_directive,
            imports=frozenset(imports),
        )

    def outline(self, path: str, content: str) -> ModuleOutline:
        """Locate component definitions and capitalized JSX tag usages.

        Raises:
            ExtractionError: If the text can not be parsed at all.
        """
        source, tree = self._parse(path, content)
        root = tree.root_node
        offsets = _OffsetMap(source, content)

        return ModuleOutline(
            definitions=self._definitions(root, source, offsets),
            usages=self._usages(root, source, offsets),
        )

    # -- parsing ---------------------------------------------------------

    def _get_parser(self, kind: GrammarKind) -> Parser:
        parsers: dict[GrammarKind, Parser] | None = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = {}
            self._local.parsers = parsers
        if kind not in parsers:
            parsers[kind] = Parser(_get_language(kind))
        return parsers[kind]

    def _parse(self, path: str, content: str) -> tuple[bytes, Tree]:
        """Parse content, raising ExtractionError when nothing usable remains."""
        try:
            source = content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ExtractionError(path, f"undecodable content: {e}") from e

        parser = self._get_parser(grammar_for(path, self._grammars))
        try:
            tree = parser.parse(source)
        except (ValueError, TypeError) as e:
            raise ExtractionError(path, str(e)) from e

        if tree is None or tree.root_node is None:
            raise ExtractionError(path, "parser returned no tree")

        root = tree.root_node
        if root.type == "ERROR":
            raise ExtractionError(path, "unparseable module")
        if root.has_error and source.strip():
            statements = [c for c in root.named_children if c.type not in _PROLOGUE_SKIP]
            if statements and all(c.type == "ERROR" for c in statements):
                raise ExtractionError(path, "no intact statements")

        return source, tree

    # -- graph summary ---------------------------------------------------

    def _has_directive(self, root: Node, source: bytes) -> bool:
        """Check the directive prologue for the boundary marker.

        The prologue is the leading run of statements that are a lone
        string literal. Anything after it is ordinary code, so the marker
        showing up later in a string or comment does not count.
        """
        for child in root.named_children:
            if child.type in _PROLOGUE_SKIP:
                continue
            if child.type != "expression_statement":
                return False
            expressions = [c for c in child.named_children if c.type != "comment"]
            if len(expressions) != 1 or expressions[0].type != "string":
                return False
            if _string_value(expressions[0], source) == self._directive:
                return True
        return False

    def _import_specifiers(self, root: Node, source: bytes) -> list[str]:
        """Raw specifiers of every top-level import declaration."""
        specifiers: list[str] = []
        for child in root.named_children:
            if child.type != "import_statement":
                continue
            source_node = child.child_by_field_name("source")
            if source_node is not None and source_node.type == "string":
                specifiers.append(_string_value(source_node, source))
        return specifiers

    # -- outline ---------------------------------------------------------

    def _definitions(
        self, root: Node, source: bytes, offsets: _OffsetMap
    ) -> list[ComponentDefinition]:
        definitions: list[ComponentDefinition] = []

        for statement in root.named_children:
            declaration = statement
            if statement.type == "export_statement":
                declaration = statement.child_by_field_name("declaration")
                if declaration is None:
                    # export default function Name() {} may parse as a value
                    declaration = statement.child_by_field_name("value")
                if declaration is None:
                    continue

            if declaration.type in _FUNCTION_DECLARATIONS | _CLASS_DECLARATIONS:
                name_node = declaration.child_by_field_name("name")
                if name_node is None:
                    continue
                name = _node_text(name_node, source)
                if _starts_uppercase(name):
                    kind = "class" if declaration.type in _CLASS_DECLARATIONS else "function"
                    definitions.append(
                        ComponentDefinition(name=name, kind=kind, range=offsets.range_of(name_node))
                    )

            elif declaration.type in _VARIABLE_DECLARATIONS:
                for declarator in declaration.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    name_node = declarator.child_by_field_name("name")
                    value_node = declarator.child_by_field_name("value")
                    if (
                        name_node is None
                        or value_node is None
                        or name_node.type != "identifier"
                        or value_node.type not in _FUNCTION_VALUES
                    ):
                        continue
                    name = _node_text(name_node, source)
                    if _starts_uppercase(name):
                        definitions.append(
                            ComponentDefinition(
                                name=name,
                                kind="variable",
                                range=offsets.range_of(name_node),
                            )
                        )

        return definitions

    def _import_bindings(self, root: Node, source: bytes) -> dict[str, str]:
        """Map local names bound by default/named imports to their specifier."""
        bindings: dict[str, str] = {}
        for statement in root.named_children:
            if statement.type != "import_statement":
                continue
            source_node = statement.child_by_field_name("source")
            if source_node is None:
                continue
            specifier = _string_value(source_node, source)

            for clause in statement.named_children:
                if clause.type != "import_clause":
                    continue
                for part in clause.named_children:
                    if part.type == "identifier":
                        bindings[_node_text(part, source)] = specifier
                    elif part.type == "named_imports":
                        for spec in part.named_children:
                            if spec.type != "import_specifier":
                                continue
                            local = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                            if local is not None:
                                bindings[_node_text(local, source)] = specifier
        return bindings

    def _usages(self, root: Node, source: bytes, offsets: _OffsetMap) -> list[TagUsage]:
        bindings = self._import_bindings(root, source)
        usages: list[TagUsage] = []

        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "jsx_element":
                usage = self._element_usage(node, source, offsets, bindings)
                if usage is not None:
                    usages.append(usage)
            elif node.type == "jsx_self_closing_element":
                name_node = node.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier":
                    name = _node_text(name_node, source)
                    if _starts_uppercase(name):
                        usages.append(
                            TagUsage(
                                name=name,
                                specifier=bindings.get(name),
                                opening=offsets.range_of(name_node),
                            )
                        )
            # Reversed so siblings pop in document order
            stack.extend(reversed(node.named_children))

        return usages

    def _element_usage(
        self,
        element: Node,
        source: bytes,
        offsets: _OffsetMap,
        bindings: dict[str, str],
    ) -> TagUsage | None:
        opening = element.child_by_field_name("open_tag")
        closing = element.child_by_field_name("close_tag")
        if opening is None:
            for child in element.named_children:
                if child.type == "jsx_opening_element":
                    opening = child
                elif child.type == "jsx_closing_element":
                    closing = child
        if opening is None:
            return None

        name_node = opening.child_by_field_name("name")
        if name_node is None or name_node.type != "identifier":
            return None
        name = _node_text(name_node, source)
        if not _starts_uppercase(name):
            return None

        closing_range: SourceRange | None = None
        if closing is not None:
            closing_name = closing.child_by_field_name("name")
            if closing_name is not None and _node_text(closing_name, source) == name:
                closing_range = offsets.range_of(closing_name)

        return TagUsage(
            name=name,
            specifier=bindings.get(name),
            opening=offsets.range_of(name_node),
            closing=closing_range,
        )
