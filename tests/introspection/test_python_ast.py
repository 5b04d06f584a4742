"""Tests for the ast based source introspector."""

from __future__ import annotations

import pytest

from chaingen.errors import DiscoveryError, ModifierSyntaxError
from chaingen.models import ANY, BUILTINS, ParamKind, TypeRef
from tests._fixtures.source_builder import SourceTreeBuilder

SHAPES = """
    from __future__ import annotations

    from dataclasses import dataclass, field
    from typing import ClassVar, List, Optional, Self

    from .parts import Part


    @dataclass
    class Shape:
        part: Part = field(default_factory=Part)
        hidden: Part = field(default_factory=Part, metadata={"chaingen": "-"})
        tagged: Part = field(default_factory=Part, metadata={"chaingen": "-build,*"})
        size: int = 0
        registry: ClassVar[Part]

        def resize(self, size: int, /, scale: float = 1.0, *, keep: bool = False) -> Shape:
            \"\"\"resize changes the size.\"\"\"
            return self

        def extend(self, *items: Part, **extra: str) -> Self:
            return self

        def pair(self) -> tuple[int, str]:
            return 0, ""

        def reset(self) -> None:
            pass

        def loose(self, value):
            return value

        def _internal(self) -> Optional[List[Part]]:
            return None

        @property
        def area(self) -> int:
            return 0

        @staticmethod
        def make() -> Shape:
            return Shape()

        async def fetch(self) -> int:
            return 0

        def __len__(self) -> int:
            return 0
"""

PARTS = """
    class Part:
        def build(self) -> str:
            return ""
"""


@pytest.fixture
def shapes(source_builder: SourceTreeBuilder) -> SourceTreeBuilder:
    source_builder.write({"geo/shapes.py": SHAPES, "geo/parts.py": PARTS})
    return source_builder


def test_describe_collects_instance_methods(shapes: SourceTreeBuilder) -> None:
    info = shapes.introspector().describe(TypeRef("Shape", "geo.shapes"))

    assert [operation.name for operation in info.operations] == [
        "resize",
        "extend",
        "pair",
        "reset",
        "loose",
        "_internal",
    ]
    internal = info.operations[-1]
    assert internal.exported is False


def test_parameters_keep_kinds_and_defaults(shapes: SourceTreeBuilder) -> None:
    info = shapes.introspector().describe(TypeRef("Shape", "geo.shapes"))
    resize, extend = info.operations[0], info.operations[1]

    assert [(param.name, param.kind, param.default) for param in resize.params] == [
        ("size", ParamKind.POSITIONAL_ONLY, None),
        ("scale", ParamKind.POSITIONAL, "1.0"),
        ("keep", ParamKind.KEYWORD_ONLY, "False"),
    ]
    assert resize.params[0].type == TypeRef("int", BUILTINS)
    assert [param.kind for param in extend.params] == [ParamKind.VAR_POSITIONAL, ParamKind.VAR_KEYWORD]
    assert extend.params[0].type == TypeRef("Part", "geo.parts")


def test_results_follow_return_annotations(shapes: SourceTreeBuilder) -> None:
    info = shapes.introspector().describe(TypeRef("Shape", "geo.shapes"))
    results = {operation.name: operation.results for operation in info.operations}

    shape = TypeRef("Shape", "geo.shapes")
    assert results["resize"] == [shape]
    assert results["extend"] == [shape]
    assert results["pair"] == [TypeRef("int", BUILTINS), TypeRef("str", BUILTINS)]
    assert results["reset"] == []
    assert results["loose"] == [ANY]
    assert results["_internal"][0].key == "typing.Optional[typing.List[geo.parts.Part]]"


def test_edges_use_field_metadata_and_component_types(shapes: SourceTreeBuilder) -> None:
    info = shapes.introspector().describe(TypeRef("Shape", "geo.shapes"))

    assert [(edge.name, edge.child.key, edge.annotation) for edge in info.edges] == [
        ("part", "geo.parts.Part", ""),
        ("tagged", "geo.parts.Part", "-build,*"),
    ]


def test_custom_tag_is_read_from_metadata(source_builder: SourceTreeBuilder) -> None:
    source_builder.write(
        {
            "app/models.py": """
                from dataclasses import dataclass, field


                class Child:
                    def run(self) -> None:
                        pass


                @dataclass
                class Parent:
                    child: Child = field(default_factory=Child, metadata={"compose": "run=start"})
            """
        }
    )

    info = source_builder.introspector(tag="compose").describe(TypeRef("Parent", "app.models"))

    assert info.edges[0].annotation == "run=start"


def test_documentation_by_position(shapes: SourceTreeBuilder) -> None:
    introspector = shapes.introspector()
    info = introspector.describe(TypeRef("Shape", "geo.shapes"))

    assert info.operations[0].position is not None
    assert introspector.documentation(info.operations[0].position) == "resize changes the size."
    assert introspector.documentation(info.operations[1].position) is None


def test_locate_without_names_returns_composed_classes(shapes: SourceTreeBuilder) -> None:
    roots = shapes.introspector().locate([])

    assert [ref.key for ref in roots] == ["geo.shapes.Shape"]


def test_locate_by_name_and_qualified_name(shapes: SourceTreeBuilder) -> None:
    introspector = shapes.introspector()

    assert introspector.locate(["Part"]) == [TypeRef("Part", "geo.parts")]
    assert introspector.locate(["geo.shapes.Shape"]) == [TypeRef("Shape", "geo.shapes")]
    with pytest.raises(DiscoveryError, match="unable to find component type"):
        introspector.locate(["Missing"])


def test_describe_unknown_type_raises(shapes: SourceTreeBuilder) -> None:
    with pytest.raises(DiscoveryError, match="could not discover source"):
        shapes.introspector().describe(TypeRef("Missing", "geo.shapes"))


def test_reexported_names_resolve_to_defining_module(source_builder: SourceTreeBuilder) -> None:
    source_builder.write(
        {
            "shop/inner/impl.py": """
                class Cart:
                    def add(self, item: str) -> "Cart":
                        return self
            """,
            "shop/inner/__init__.py": "from .impl import Cart\n",
            "shop/store.py": """
                from dataclasses import dataclass

                from shop.inner import Cart


                @dataclass
                class Store:
                    cart: Cart
            """,
        }
    )

    info = source_builder.introspector().describe(TypeRef("Store", "shop.store"))

    assert info.edges[0].child == TypeRef("Cart", "shop.inner.impl")


def test_generated_and_excluded_files_are_skipped(source_builder: SourceTreeBuilder) -> None:
    source_builder.write(
        {
            "pkg/thing.py": "class Thing:\n    pass\n",
            "pkg/thing_chain.py": "class ThingChain:\n    pass\n",
            "pkg/build/old.py": "class Old:\n    pass\n",
        }
    )

    introspector = source_builder.introspector(exclude_paths=["pkg/build/"])

    assert "pkg.thing" in introspector.modules
    assert "pkg.thing_chain" not in introspector.modules
    assert "pkg.build.old" not in introspector.modules


def test_type_annotations_come_from_dunder_attribute(source_builder: SourceTreeBuilder) -> None:
    source_builder.write(
        {
            "db/client.py": """
                class Connection:
                    def close(self) -> None:
                        pass


                class Client:
                    __chaingen__ = ("ext(connection):*", "export(ping)")

                    def connection(self) -> Connection:
                        return Connection()

                    def ping(self) -> bool:
                        return True
            """
        }
    )

    introspector = source_builder.introspector()
    info = introspector.describe(TypeRef("Client", "db.client"))

    assert info.annotations == ["ext(connection):*", "export(ping)"]
    assert introspector.locate([]) == [TypeRef("Client", "db.client")]


def test_malformed_dunder_attribute_raises(source_builder: SourceTreeBuilder) -> None:
    source_builder.write({"bad/mod.py": "class Bad:\n    __chaingen__ = 42\n"})

    with pytest.raises(ModifierSyntaxError):
        source_builder.introspector().describe(TypeRef("Bad", "bad.mod"))


def test_syntax_errors_are_discovery_errors(source_builder: SourceTreeBuilder) -> None:
    source_builder.write({"broken/mod.py": "class Broken(:\n"})

    with pytest.raises(DiscoveryError, match="error loading source"):
        source_builder.introspector()
