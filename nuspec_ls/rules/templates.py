"""Template leftover rules: NUS001."""

from __future__ import annotations

import typing

from nuspec_ls import syntax
from nuspec_ls.rules import base

if typing.TYPE_CHECKING:
    from nuspec_ls import positions

# Placeholders emitted by `choco new`; matched as plain substrings, any case.
_TEMPLATED_VALUES: tuple[str, ...] = ("__replace", "space_separated", "tag1")


def _has_templated_value(text: str) -> bool:
    """Return True if text contains any known template placeholder."""
    lowered = text.lower()
    return any(placeholder in lowered for placeholder in _TEMPLATED_VALUES)


class NUS001:
    """Flag text content still holding a package template placeholder.

    Every text node is checked, wherever it sits in the document. The match
    is a case-insensitive substring test, so an identifier that merely
    contains a placeholder (``mytag1``) is flagged too. A node with several
    placeholders is reported once. Attribute values are not checked.

    Allowed:
        <tags>admin cli</tags>

    Flagged:
        <tags>space_separated tag1 tag2</tags>
        <projectUrl>__REPLACE_ME__</projectUrl>
    """

    def check(
        self,
        tree: syntax.Node,
        index: positions.PositionIndex,
    ) -> typing.Iterator[base.Diagnostic]:
        """Yield a diagnostic for each text node holding a placeholder."""
        for node in syntax.descendants(tree, syntax.is_text, include_self=True):
            if not _has_templated_value(node.value):
                continue
            yield base.Diagnostic(
                rule_id="NUS001",
                message="Templated value which should be removed",
                range=index.to_range(node.start, node.end),
                severity=base.Severity.ERROR,
            )
