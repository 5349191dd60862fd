"""Lenient, offset-preserving parser for nuspec (XML) documents.

The tree keeps the absolute character offset of every node so that rules can
point diagnostics at the exact text they are about. Only as much of XML is
understood as is needed to build that tree: entity references are left as-is,
comments and processing instructions are skipped, mismatched nesting is
repaired where a closing tag can be matched to an open element, and stray
closing tags are dropped.
"""

import collections.abc
import dataclasses
import enum
import re
import typing

_START_TAG_PAT = re.compile(
    r"<(?P<name>[^\s/<>!?\"'=]+)"
    r"(?P<attrs>(?:[^<>\"']|\"[^\"]*\"|'[^']*')*?)"
    r"(?P<close>/?)>"
)
_END_TAG_PAT = re.compile(r"</(?P<name>[^\s<>]+)\s*>")
_ATTR_PAT = re.compile(
    r"(?P<name>[^\s=\"'/]+)"
    r"(?:\s*=\s*(?P<value>\"[^\"]*\"|'[^']*'|[^\s\"']+))?"
)

_CDATA_OPEN = "<![CDATA["
_CDATA_CLOSE = "]]>"


class NodeKind(enum.Enum):
    """Closed set of node kinds produced by the parser."""

    DOCUMENT = "document"
    ELEMENT = "element"
    ATTRIBUTE = "attribute"
    TEXT = "text"


class ParseError(ValueError):
    """Raised when the text cannot be structured into a tree."""

    def __init__(self, message: str, offset: int) -> None:
        """Initialize with a description and the offset where parsing stopped.

        Args:
            message: Human-readable reason.
            offset: Absolute character offset of the offending markup.
        """
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset


@dataclasses.dataclass(eq=False)
class Node:
    """A node of the parsed document.

    Attributes:
        kind: What this node is.
        start: Offset of the first character (inclusive).
        end: Offset just past the last character (exclusive).
        name: Tag or attribute name; empty for text and document nodes.
        value: Raw text for text nodes, unquoted value for attributes.
        children: Elements and text nodes in document order.
        attributes: Attribute nodes of an element.
        start_tag_end: Offset just past the ``>`` of an element's opening tag.
        end_tag_start: Offset of the ``<`` of the closing tag, or ``None``
            when the element is self-closing or was never closed.
        self_closing: True for ``<name/>`` elements.
    """

    kind: NodeKind
    start: int
    end: int
    name: str = ""
    value: str = ""
    children: list["Node"] = dataclasses.field(default_factory=list)
    attributes: list["Node"] = dataclasses.field(default_factory=list)
    start_tag_end: int | None = None
    end_tag_start: int | None = None
    self_closing: bool = False

    def content_value(self) -> str:
        """Return the concatenated text of every text node below this one."""
        return "".join(node.value for node in descendants(self, is_text))

    def content_span(self) -> tuple[int, int]:
        """Return the offsets strictly between the opening and closing tags.

        Self-closing elements have no content region, so the whole tag is
        returned instead. Elements left open run to their implicit end.
        """
        if self.self_closing:
            return self.start, self.end
        content_start = self.start if self.start_tag_end is None else self.start_tag_end
        content_end = self.end if self.end_tag_start is None else self.end_tag_start
        return content_start, content_end


def is_text(node: Node) -> bool:
    """Return True for text-bearing leaf nodes."""
    return node.kind is NodeKind.TEXT


def is_element(node: Node) -> bool:
    """Return True for element nodes."""
    return node.kind is NodeKind.ELEMENT


def descendants(
    node: Node,
    predicate: typing.Callable[[Node], bool] | None = None,
    *,
    include_self: bool = False,
) -> collections.abc.Iterator[Node]:
    """Yield the nodes below *node* in document order.

    Attributes are not visited; they hang off ``Node.attributes``.

    Args:
        node: Where to start.
        predicate: Only nodes for which this returns True are yielded.
        include_self: Whether *node* itself is a candidate.

    Yields:
        Matching nodes, pre-order.
    """
    pending = [node] if include_self else list(reversed(node.children))
    while pending:
        current = pending.pop()
        if predicate is None or predicate(current):
            yield current
        pending.extend(reversed(current.children))


def _skip_past(text: str, pos: int, terminator: str, what: str) -> int:
    found = text.find(terminator, pos)
    if found == -1:
        raise ParseError(f"Unterminated {what}", pos)
    return found + len(terminator)


def _parse_attributes(match: re.Match[str]) -> list[Node]:
    base_offset = match.start("attrs")
    attributes: list[Node] = []
    for attr_match in _ATTR_PAT.finditer(match.group("attrs")):
        raw_value = attr_match.group("value") or ""
        if raw_value[:1] in {'"', "'"}:
            raw_value = raw_value[1:-1]
        attributes.append(
            Node(
                kind=NodeKind.ATTRIBUTE,
                start=base_offset + attr_match.start(),
                end=base_offset + attr_match.end(),
                name=attr_match.group("name"),
                value=raw_value,
            )
        )
    return attributes


def _append_text(parent: Node, text: str, start: int, end: int) -> None:
    previous = parent.children[-1] if parent.children else None
    if previous is not None and is_text(previous) and previous.end == start:
        previous.end = end
        previous.value = text[previous.start : end]
        return
    parent.children.append(
        Node(kind=NodeKind.TEXT, start=start, end=end, value=text[start:end])
    )


def _open_element(text: str, pos: int, stack: list[Node]) -> int | None:
    match = _START_TAG_PAT.match(text, pos)
    if match is None:
        return None
    element = Node(
        kind=NodeKind.ELEMENT,
        start=pos,
        end=match.end(),
        name=match.group("name"),
        start_tag_end=match.end(),
        self_closing=bool(match.group("close")),
    )
    element.attributes = _parse_attributes(match)
    stack[-1].children.append(element)
    if not element.self_closing:
        stack.append(element)
    return match.end()


def _find_open(stack: list[Node], name: str) -> int | None:
    """Return the depth of the innermost open element called *name*.

    An exact match wins; failing that, names are compared case-insensitively.
    ``stack[0]`` is the document node, which no closing tag can match.
    """
    for depth in range(len(stack) - 1, 0, -1):
        if stack[depth].name == name:
            return depth
    folded = name.lower()
    for depth in range(len(stack) - 1, 0, -1):
        if stack[depth].name.lower() == folded:
            return depth
    return None


def _close_element(text: str, pos: int, stack: list[Node]) -> int | None:
    match = _END_TAG_PAT.match(text, pos)
    if match is None:
        return None
    depth = _find_open(stack, match.group("name"))
    if depth is None:
        # Stray closing tag: nothing to close.
        return match.end()
    for unclosed in stack[depth + 1 :]:
        unclosed.end = pos
    element = stack[depth]
    element.end_tag_start = pos
    element.end = match.end()
    del stack[depth:]
    return match.end()


def _read_markup(text: str, pos: int, stack: list[Node]) -> int | None:
    """Consume the markup starting at ``text[pos] == "<"``.

    Returns:
        The offset just past the markup, or None when the ``<`` does not
        begin a tag and should be read as text.

    Raises:
        ParseError: If a comment, CDATA section, processing instruction or
            declaration is never terminated.
    """
    if text.startswith("<!--", pos):
        return _skip_past(text, pos, "-->", "comment")
    if text.startswith(_CDATA_OPEN, pos):
        content_start = pos + len(_CDATA_OPEN)
        content_end = text.find(_CDATA_CLOSE, content_start)
        if content_end == -1:
            raise ParseError("Unterminated CDATA section", pos)
        stack[-1].children.append(
            Node(
                kind=NodeKind.TEXT,
                start=content_start,
                end=content_end,
                value=text[content_start:content_end],
            )
        )
        return content_end + len(_CDATA_CLOSE)
    if text.startswith("<?", pos):
        return _skip_past(text, pos, "?>", "processing instruction")
    if text.startswith("<!", pos):
        return _skip_past(text, pos, ">", "declaration")
    if text.startswith("</", pos):
        return _close_element(text, pos, stack)
    return _open_element(text, pos, stack)


def parse(text: str) -> Node:
    """Parse *text* into a tree rooted at a document node.

    Broken tags do not stop the parse: a ``<`` that does not begin a
    well-formed tag is kept as text, a closing tag with no matching open
    element is ignored, and elements still open at the end of the text run
    to its end.

    Args:
        text: The full document text.

    Returns:
        The document node, spanning the whole text.

    Raises:
        ParseError: If a comment, CDATA section, processing instruction or
            declaration is left unterminated.
    """
    document = Node(kind=NodeKind.DOCUMENT, start=0, end=len(text))
    stack = [document]
    pos = 0
    while pos < len(text):
        next_pos = _read_markup(text, pos, stack) if text[pos] == "<" else None
        if next_pos is None:
            next_pos = text.find("<", pos + 1)
            if next_pos == -1:
                next_pos = len(text)
            _append_text(stack[-1], text, pos, next_pos)
        pos = next_pos

    for unclosed in stack[1:]:
        unclosed.end = len(text)
    return document
