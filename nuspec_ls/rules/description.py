"""Package description rules: NUS002."""

from __future__ import annotations

import typing

from nuspec_ls import syntax
from nuspec_ls.rules import base

if typing.TYPE_CHECKING:
    from nuspec_ls import positions

_DEFAULT_MIN_LENGTH: int = 30
_DEFAULT_MAX_LENGTH: int = 4000

_WIKI = "https://github.com/chocolatey/package-validator/wiki"
_REQUIRED_MESSAGE = f"Description is required. See {_WIKI}/DescriptionNotEmpty"
_TOO_SHORT_MESSAGE = (
    "Description should be sufficient to explain the software."
    f" See {_WIKI}/DescriptionCharacterCountMinimum"
)


def _is_description(node: syntax.Node) -> bool:
    """Return True for a ``<description>`` element, in any case."""
    return syntax.is_element(node) and node.name.lower() == "description"


def _find_description(tree: syntax.Node) -> syntax.Node | None:
    """Return the first description element in document order, if any."""
    return next(syntax.descendants(tree, _is_description), None)


def _option_as_length(
    options: dict[str, int | str | bool], key: str, default: int
) -> int:
    value = options.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"NUS002 option `{key}` must be an integer, got {value!r}"
        raise ValueError(msg)  # noqa: TRY004
    if value < 0:
        msg = f"NUS002 option `{key}` must not be negative, got {value}"
        raise ValueError(msg)
    return value


class NUS002:
    """Flag a missing, empty, too short or too long package description.

    The first ``<description>`` element anywhere in the document is checked
    (tag name compared case-insensitively). Its text content is trimmed and
    measured in characters; at most one diagnostic is produced:

    - no element at all: error over the whole document
    - empty content: error over the content region
    - 1 to ``min_length`` characters (default 30): warning
    - more than ``max_length`` characters (default 4000): error

    The content region is the text between the opening and closing tags.

    Allowed:
        <description>Command line tool that keeps your machines patched.</description>

    Flagged:
        <description></description>
        <description>A tool</description>
    """

    def __init__(
        self,
        min_length: int = _DEFAULT_MIN_LENGTH,
        max_length: int = _DEFAULT_MAX_LENGTH,
    ) -> None:
        """Initialise with the description length bounds.

        Args:
            min_length: Longest description still reported as too short.
            max_length: Longest description accepted.

        Raises:
            ValueError: If min_length is not below max_length.
        """
        if min_length >= max_length:
            msg = (
                f"NUS002 min_length ({min_length}) must be lower than"
                f" max_length ({max_length})"
            )
            raise ValueError(msg)
        self._min_length = min_length
        self._max_length = max_length

    def configure(self, options: dict[str, int | str | bool]) -> base.Rule:
        """Return a new NUS002 with options applied.

        Args:
            options: Recognises ``min_length`` and ``max_length`` (int).

        Returns:
            A new NUS002 instance with the configured bounds.

        Raises:
            ValueError: If an option is not a non-negative integer, or the
                bounds are inverted.
        """
        return NUS002(
            min_length=_option_as_length(options, "min_length", self._min_length),
            max_length=_option_as_length(options, "max_length", self._max_length),
        )

    def _diagnostic(
        self,
        index: positions.PositionIndex,
        span: tuple[int, int],
        message: str,
        severity: base.Severity,
    ) -> base.Diagnostic:
        return base.Diagnostic(
            rule_id="NUS002",
            message=message,
            range=index.to_range(*span),
            severity=severity,
        )

    def check(
        self,
        tree: syntax.Node,
        index: positions.PositionIndex,
    ) -> typing.Iterator[base.Diagnostic]:
        """Yield at most one diagnostic about the package description."""
        element = _find_description(tree)
        if element is None:
            yield self._diagnostic(
                index, (0, tree.end), _REQUIRED_MESSAGE, base.Severity.ERROR
            )
            return

        length = len(element.content_value().strip())
        span = element.content_span()
        if length == 0:
            yield self._diagnostic(index, span, _REQUIRED_MESSAGE, base.Severity.ERROR)
        elif length <= self._min_length:
            yield self._diagnostic(index, span, _TOO_SHORT_MESSAGE, base.Severity.WARNING)
        elif length > self._max_length:
            yield self._diagnostic(
                index,
                span,
                (
                    f"Description should not exceed {self._max_length} characters."
                    f" See {_WIKI}/DescriptionCharacterCountMaximum"
                ),
                base.Severity.ERROR,
            )
