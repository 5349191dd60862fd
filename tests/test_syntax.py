"""Tests for the offset-preserving nuspec parser."""

import textwrap

import pytest

from nuspec_ls import syntax

_MANIFEST = textwrap.dedent("""\
    <?xml version="1.0" encoding="utf-8"?>
    <!-- generated by choco new -->
    <package xmlns="http://schemas.microsoft.com/packaging/2015/06/nuspec.xsd">
      <metadata>
        <id>mytool</id>
        <tags>cli admin</tags>
        <dependencies />
      </metadata>
      <files>
        <file src='tools\\**' target="tools" />
      </files>
    </package>
""")


def _elements(node: syntax.Node) -> list[str]:
    return [element.name for element in syntax.descendants(node, syntax.is_element)]


def _element(node: syntax.Node, name: str) -> syntax.Node:
    return next(
        element
        for element in syntax.descendants(node, syntax.is_element)
        if element.name == name
    )


class TestStructure:
    def test_document_spans_whole_text(self) -> None:
        tree = syntax.parse(_MANIFEST)
        assert tree.kind is syntax.NodeKind.DOCUMENT
        assert (tree.start, tree.end) == (0, len(_MANIFEST))

    def test_elements_in_document_order(self) -> None:
        tree = syntax.parse(_MANIFEST)
        assert _elements(tree) == [
            "package",
            "metadata",
            "id",
            "tags",
            "dependencies",
            "files",
            "file",
        ]

    def test_element_offsets(self) -> None:
        tree = syntax.parse(_MANIFEST)
        element = _element(tree, "id")
        assert _MANIFEST[element.start : element.end] == "<id>mytool</id>"
        assert element.start_tag_end == _MANIFEST.index("mytool")
        assert element.end_tag_start == _MANIFEST.index("</id>")

    def test_text_node_offsets_and_value(self) -> None:
        tree = syntax.parse(_MANIFEST)
        (text,) = _element(tree, "tags").children
        assert text.kind is syntax.NodeKind.TEXT
        assert text.value == "cli admin"
        assert _MANIFEST[text.start : text.end] == "cli admin"

    def test_whitespace_runs_are_text_nodes(self) -> None:
        tree = syntax.parse("<a>\n  <b/>\n</a>")
        (element,) = tree.children
        assert [child.kind for child in element.children] == [
            syntax.NodeKind.TEXT,
            syntax.NodeKind.ELEMENT,
            syntax.NodeKind.TEXT,
        ]

    def test_tag_case_is_preserved(self) -> None:
        tree = syntax.parse("<Description>x</Description>")
        assert _elements(tree) == ["Description"]


class TestSelfClosingAndAttributes:
    def test_self_closing_element(self) -> None:
        tree = syntax.parse(_MANIFEST)
        element = _element(tree, "dependencies")
        assert element.self_closing
        assert element.children == []
        assert _MANIFEST[element.start : element.end] == "<dependencies />"

    def test_attributes(self) -> None:
        tree = syntax.parse(_MANIFEST)
        element = _element(tree, "file")
        assert [(attr.name, attr.value) for attr in element.attributes] == [
            ("src", "tools\\**"),
            ("target", "tools"),
        ]
        src = element.attributes[0]
        assert src.kind is syntax.NodeKind.ATTRIBUTE
        assert _MANIFEST[src.start : src.end] == "src='tools\\**'"

    def test_attribute_without_value(self) -> None:
        (element,) = syntax.parse("<a flag>x</a>").children
        assert [(attr.name, attr.value) for attr in element.attributes] == [("flag", "")]

    def test_gt_inside_quoted_attribute(self) -> None:
        tree = syntax.parse('<a title="x > y">body</a>')
        (element,) = tree.children
        assert element.attributes[0].value == "x > y"
        assert element.content_value() == "body"

    def test_attributes_are_not_descendants(self) -> None:
        tree = syntax.parse('<a b="c"/>')
        kinds = {node.kind for node in syntax.descendants(tree)}
        assert syntax.NodeKind.ATTRIBUTE not in kinds


class TestSkippedMarkup:
    def test_comments_and_declarations_produce_no_nodes(self) -> None:
        text = '<?xml version="1.0"?><!DOCTYPE package><!-- tag1 --><a/>'
        tree = syntax.parse(text)
        assert [child.kind for child in tree.children] == [syntax.NodeKind.ELEMENT]

    def test_comment_splits_text(self) -> None:
        (element,) = syntax.parse("<d>ab<!-- c -->cd</d>").children
        assert [child.value for child in element.children] == ["ab", "cd"]
        assert element.content_value() == "abcd"

    def test_cdata_becomes_text_over_inner_content(self) -> None:
        text = "<d><![CDATA[x < y]]></d>"
        (element,) = syntax.parse(text).children
        (cdata,) = element.children
        assert cdata.kind is syntax.NodeKind.TEXT
        assert cdata.value == "x < y"
        assert text[cdata.start : cdata.end] == "x < y"

    def test_entities_are_not_decoded(self) -> None:
        (element,) = syntax.parse("<d>a &amp; b</d>").children
        assert element.content_value() == "a &amp; b"


class TestRecovery:
    def test_unclosed_element_runs_to_end_of_text(self) -> None:
        text = "<a><b>text"
        tree = syntax.parse(text)
        element = _element(tree, "b")
        assert element.end == len(text)
        assert element.end_tag_start is None
        assert element.content_span() == (6, len(text))

    def test_closing_tag_closes_intermediate_elements(self) -> None:
        text = "<a><b>x</a>"
        tree = syntax.parse(text)
        outer = _element(tree, "a")
        inner = _element(tree, "b")
        assert inner.end == text.index("</a>")
        assert inner.end_tag_start is None
        assert outer.end_tag_start == text.index("</a>")
        assert outer.end == len(text)

    def test_text_only_document(self) -> None:
        tree = syntax.parse("just words")
        assert [child.value for child in tree.children] == ["just words"]

    def test_empty_document(self) -> None:
        tree = syntax.parse("")
        assert tree.children == []
        assert tree.end == 0

    def test_stray_closing_tag_is_ignored(self) -> None:
        text = "<a>x</b>y</a>"
        tree = syntax.parse(text)
        (element,) = tree.children
        assert [child.value for child in element.children] == ["x", "y"]
        assert element.end_tag_start == text.index("</a>")
        assert element.end == len(text)

    def test_closing_tag_without_any_open_element(self) -> None:
        tree = syntax.parse("</a><b/>")
        assert _elements(tree) == ["b"]

    def test_closing_tag_matches_case_insensitively(self) -> None:
        text = "<Owners>me</owners>"
        (element,) = syntax.parse(text).children
        assert element.end_tag_start == text.index("</owners>")
        assert element.end == len(text)
        assert element.content_value() == "me"

    def test_exact_case_match_is_preferred(self) -> None:
        text = "<a><A>x</a>"
        tree = syntax.parse(text)
        outer = _element(tree, "a")
        inner = _element(tree, "A")
        assert outer.end_tag_start == text.index("</a>")
        assert inner.end_tag_start is None
        assert inner.end == text.index("</a>")

    @pytest.mark.parametrize(
        ("text", "content"),
        [
            ("<a>1 < 2</a>", "1 < 2"),
            ("<a>x<</a>", "x<"),
            ("<a>x <", "x <"),
            ("<a>see <3</a>", "see <3"),
        ],
    )
    def test_lt_that_opens_no_tag_is_text(self, text: str, content: str) -> None:
        (element,) = syntax.parse(text).children
        assert element.content_value() == content
        assert len(element.children) == 1

    def test_unterminated_tag_is_text(self) -> None:
        tree = syntax.parse("<a><own\n<b/></a>")
        outer = _element(tree, "a")
        assert outer.children[0].value == "<own\n"
        assert _elements(tree) == ["a", "b"]

    @pytest.mark.parametrize(
        "text",
        [
            "<a><!-- never closed",
            "<a><![CDATA[never closed",
            "<?xml version='1.0'",
            "<!DOCTYPE package",
        ],
    )
    def test_unterminated_special_markup_raises(self, text: str) -> None:
        with pytest.raises(syntax.ParseError):
            syntax.parse(text)

    def test_parse_error_carries_offset(self) -> None:
        with pytest.raises(syntax.ParseError) as excinfo:
            syntax.parse("<a>ok<!-- open")
        assert excinfo.value.offset == 5


class TestContent:
    def test_content_span_is_between_tags(self) -> None:
        text = "<description>  hello  </description>"
        (element,) = syntax.parse(text).children
        start, end = element.content_span()
        assert text[start:end] == "  hello  "

    def test_content_span_of_empty_element(self) -> None:
        text = "<description></description>"
        (element,) = syntax.parse(text).children
        assert element.content_span() == (13, 13)

    def test_content_span_of_self_closing_element_is_whole_tag(self) -> None:
        (element,) = syntax.parse("<description/>").children
        assert element.content_span() == (0, 14)

    def test_content_value_includes_nested_text(self) -> None:
        (element,) = syntax.parse("<d>ab<b>cd</b>ef</d>").children
        assert element.content_value() == "abcdef"


class TestDescendants:
    def test_include_self(self) -> None:
        tree = syntax.parse("<a/>")
        found = list(syntax.descendants(tree, include_self=True))
        assert found[0] is tree
        assert len(found) == 2

    def test_predicate_filters(self) -> None:
        tree = syntax.parse("<a>x<b>y</b></a>")
        assert [node.value for node in syntax.descendants(tree, syntax.is_text)] == [
            "x",
            "y",
        ]

    def test_is_lazy(self) -> None:
        tree = syntax.parse("<a><b/></a>")
        walker = syntax.descendants(tree)
        assert next(walker).name == "a"
        assert next(walker).name == "b"
        with pytest.raises(StopIteration):
            next(walker)

    def test_deep_nesting_does_not_recurse(self) -> None:
        depth = 5000
        tree = syntax.parse("<a>" * depth + "x" + "</a>" * depth)
        assert len(list(syntax.descendants(tree, syntax.is_element))) == depth
