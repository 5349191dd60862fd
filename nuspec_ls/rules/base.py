"""Base abstractions for nuspec-ls rules."""

from __future__ import annotations

import dataclasses
import enum
import typing

if typing.TYPE_CHECKING:
    from nuspec_ls import positions, syntax


class Severity(enum.Enum):
    """LSP diagnostic severity levels."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclasses.dataclass(frozen=True)
class Diagnostic:
    """A single diagnostic emitted by a rule."""

    rule_id: str
    message: str
    range: positions.Range
    severity: Severity


class Rule(typing.Protocol):
    """Anything that can check a parsed document."""

    def check(
        self,
        tree: syntax.Node,
        index: positions.PositionIndex,
    ) -> typing.Iterable[Diagnostic]:
        """Analyze the tree and yield any diagnostics.

        Args:
            tree: The document node of the parsed manifest.
            index: Position index over the same text, for building ranges.

        Returns:
            Diagnostics in emission order. The engine consumes them once.
        """
        ...


@typing.runtime_checkable
class ConfigurableRule(Rule, typing.Protocol):
    """A rule that accepts per-project options."""

    def configure(self, options: dict[str, int | str | bool]) -> Rule:
        """Return a copy of this rule with *options* applied.

        Raises:
            ValueError: If an option value is out of range.
        """
        ...
