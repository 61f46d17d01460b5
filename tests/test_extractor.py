"""Tests for ModuleExtractor: directive, imports, and outline extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from nextclient.boundary.extractor import ModuleExtractor, grammar_for
from nextclient.boundary.resolver import SpecifierResolver
from nextclient.errors import ExtractionError
from nextclient.models.types import GrammarKind


@pytest.fixture
def extractor(tmp_path: Path) -> ModuleExtractor:
    """Extractor with a resolver rooted at tmp_path."""
    return ModuleExtractor(SpecifierResolver(tmp_path))


class TestDirective:
    """Tests for boundary directive recognition."""

    @pytest.mark.parametrize(
        "source",
        [
            '"use client";\nexport default function A() {}\n',
            "'use client'\nexport const A = () => null;\n",
            '// header comment\n"use client";\nimport x from "y";\n',
            '"use strict";\n"use client";\n',
            '#!/usr/bin/env node\n"use client";\n',
        ],
    )
    def test_directive_detected(
        self, extractor: ModuleExtractor, module_path, source: str
    ) -> None:
        """The marker counts anywhere in the directive prologue."""
        record = extractor.extract(module_path("a.tsx"), source)
        assert record.has_boundary_directive is True

    @pytest.mark.parametrize(
        "source",
        [
            '// "use client"\nexport default function A() {}\n',
            'const marker = "use client";\n',
            'import x from "y";\n"use client";\n',
            '/* use client */\nexport const A = 1;\n',
            '"use server";\n',
            '"use client!";\n',
            'console.log("use client");\n',
            "",
        ],
    )
    def test_directive_false_positives(
        self, extractor: ModuleExtractor, module_path, source: str
    ) -> None:
        """The marker in comments, later statements, or other strings is ignored."""
        record = extractor.extract(module_path("a.tsx"), source)
        assert record.has_boundary_directive is False

    def test_custom_directive(self, tmp_path: Path, module_path) -> None:
        """The directive literal is configurable."""
        extractor = ModuleExtractor(SpecifierResolver(tmp_path), directive="use server")
        record = extractor.extract(module_path("a.ts"), '"use server";\n')
        assert record.has_boundary_directive is True


class TestImports:
    """Tests for resolved import sets."""

    def test_resolves_local_imports_only(self, extractor: ModuleExtractor, write_files) -> None:
        """Package, missing, and self imports produce no edges."""
        paths = write_files(
            {
                "app/page.tsx": "",
                "app/Button.tsx": "export function Button() {}\n",
                "lib/helper.ts": "export const helper = 1;\n",
            }
        )
        source = (
            'import React from "react";\n'
            'import Button from "./Button";\n'
            'import "./styles.css";\n'
            'import { helper } from "@/lib/helper";\n'
            'import type { Props } from "./Button";\n'
            'import Self from "./page";\n'
            'import Missing from "./Missing";\n'
        )

        record = extractor.extract(paths["app/page.tsx"], source)

        assert record.imports == frozenset({paths["app/Button.tsx"], paths["lib/helper.ts"]})
        assert paths["app/page.tsx"] not in record.imports

    def test_extraction_is_idempotent(self, extractor: ModuleExtractor, write_files) -> None:
        """Same content twice gives equal records."""
        paths = write_files({"a.tsx": "", "b.tsx": ""})
        source = '"use client";\nimport B from "./b";\nimport B2 from "./b.tsx";\n'

        first = extractor.extract(paths["a.tsx"], source)
        second = extractor.extract(paths["a.tsx"], source)

        assert first == second
        assert first.imports == frozenset({paths["b.tsx"]})

    def test_partial_source_keeps_intact_statements(
        self, extractor: ModuleExtractor, write_files
    ) -> None:
        """A module mid-edit still yields its directive and imports."""
        paths = write_files({"a.tsx": "", "b.tsx": ""})
        source = '"use client";\nimport B from "./b";\nconst x = ;\nexport const C = 1;\n'

        record = extractor.extract(paths["a.tsx"], source)

        assert record.has_boundary_directive is True
        assert record.imports == frozenset({paths["b.tsx"]})

    def test_undecodable_content_raises(self, extractor: ModuleExtractor, module_path) -> None:
        """Text that can not be encoded is a total parse failure."""
        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(module_path("a.tsx"), '"use client";\n\ud800')
        assert exc_info.value.source_path == module_path("a.tsx")

    def test_plain_typescript_casts(self, extractor: ModuleExtractor, write_files) -> None:
        """.ts files use the grammar that accepts angle-bracket casts."""
        paths = write_files({"util.ts": "", "dep.ts": ""})
        source = 'import dep from "./dep";\nconst n = <number>dep;\n'

        record = extractor.extract(paths["util.ts"], source)

        assert record.imports == frozenset({paths["dep.ts"]})


class TestGrammarSelection:
    """Tests for grammar_for."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("a.ts", GrammarKind.TYPESCRIPT),
            ("a.tsx", GrammarKind.TSX),
            ("a.js", GrammarKind.TSX),
            ("a.jsx", GrammarKind.TSX),
            ("a.mjs", GrammarKind.TSX),
        ],
    )
    def test_grammar_for(self, name: str, expected: GrammarKind) -> None:
        """Extension picks the grammar; unknown extensions fall back to TSX."""
        assert grammar_for(name) == expected


class TestOutline:
    """Tests for component definitions and tag usages."""

    def test_component_definitions(self, extractor: ModuleExtractor, module_path) -> None:
        """Capitalized function-valued top-level declarations are components."""
        source = (
            "export default function Page() { return null; }\n"
            "export const Card = () => null;\n"
            "const helper = () => 1;\n"
            "class Widget extends React.Component {}\n"
            "function lower() {}\n"
            "const Value = 42;\n"
            "let Legacy = function () { return null; };\n"
        )

        outline = extractor.outline(module_path("components.tsx"), source)

        names = [(d.name, d.kind) for d in outline.definitions]
        assert names == [
            ("Page", "function"),
            ("Card", "variable"),
            ("Widget", "class"),
            ("Legacy", "variable"),
        ]

    def test_definition_ranges_cover_identifier(
        self, extractor: ModuleExtractor, module_path
    ) -> None:
        """Ranges are character offsets of the identifier."""
        source = "export function Button() {}\n"

        outline = extractor.outline(module_path("Button.tsx"), source)

        rng = outline.definitions[0].range
        assert source[rng.start : rng.end] == "Button"
        assert (rng.start, rng.end) == (16, 22)

    def test_ranges_are_character_offsets(
        self, extractor: ModuleExtractor, module_path
    ) -> None:
        """Multi-byte characters before a node do not skew offsets."""
        source = "// héllo wörld\nexport function Button() {}\n"

        outline = extractor.outline(module_path("Button.tsx"), source)

        rng = outline.definitions[0].range
        assert source[rng.start : rng.end] == "Button"

    def test_nested_functions_are_not_definitions(
        self, extractor: ModuleExtractor, module_path
    ) -> None:
        """Only top-level declarations count."""
        source = "export function Outer() {\n  function Inner() {}\n  return null;\n}\n"

        outline = extractor.outline(module_path("a.tsx"), source)

        assert [d.name for d in outline.definitions] == ["Outer"]

    def test_tag_usages(self, extractor: ModuleExtractor, module_path) -> None:
        """Capitalized tags map to the specifier their name is imported from."""
        source = (
            'import Button from "./Button";\n'
            'import { Card as Tile } from "@/components/Card";\n'
            "export default function Page() {\n"
            "  return (\n"
            "    <div>\n"
            "      <Button>Go</Button>\n"
            "      <Tile />\n"
            "      <Local />\n"
            "      <span>text</span>\n"
            "    </div>\n"
            "  );\n"
            "}\n"
        )

        outline = extractor.outline(module_path("app/page.tsx"), source)

        usages = {u.name: u for u in outline.usages}
        assert [u.name for u in outline.usages] == ["Button", "Tile", "Local"]
        assert usages["Button"].specifier == "./Button"
        assert usages["Tile"].specifier == "@/components/Card"
        assert usages["Local"].specifier is None

        button = usages["Button"]
        assert source[button.opening.start : button.opening.end] == "Button"
        assert button.closing is not None
        assert source[button.closing.start : button.closing.end] == "Button"
        assert button.closing.start > button.opening.start
        assert usages["Tile"].closing is None

    def test_member_expression_tags_skipped(
        self, extractor: ModuleExtractor, module_path
    ) -> None:
        """Only plain identifier tag names are usages."""
        source = (
            'import Menu from "./Menu";\n'
            "export const A = () => <Menu.Item />;\n"
        )

        outline = extractor.outline(module_path("a.tsx"), source)

        assert outline.usages == []
