"""Orchestrates rule execution against a parsed manifest."""

from __future__ import annotations

import logging
import typing

from nuspec_ls import positions, syntax

if typing.TYPE_CHECKING:
    from nuspec_ls.rules import base

logger = logging.getLogger(__name__)

# Receives (uri, diagnostics); whatever it returns is ignored.
Publisher = typing.Callable[[str, list["base.Diagnostic"]], object]


class Analyzer:
    """Runs all registered rules against a manifest."""

    def __init__(self, rules: list[base.Rule]) -> None:
        """Initialize with a list of rule instances.

        Args:
            rules: Rule instances to run, in order, on every analysis request.
        """
        self.rules = rules

    def analyze(self, source: str) -> list[base.Diagnostic]:
        """Parse source and run every rule against it.

        Args:
            source: Raw manifest text to analyze.

        Returns:
            Diagnostics in rule order, then in the order each rule emitted
            them. Returns an empty list if the source cannot be parsed.
        """
        try:
            tree = syntax.parse(source)
        except syntax.ParseError as exc:
            logger.debug("Skipping analysis, document does not parse: %s", exc)
            return []

        index = positions.build(source)
        diagnostics: list[base.Diagnostic] = []
        for rule in self.rules:
            try:
                found = list(rule.check(tree, index))
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Rule %s failed; ignoring its results", type(rule).__name__
                )
                continue
            diagnostics.extend(found)
        return diagnostics

    def publish(self, uri: str, source: str, publisher: Publisher) -> None:
        """Analyze source and hand the complete batch to publisher in one call.

        Args:
            uri: Identity of the document, passed through untouched.
            source: Current text of the document.
            publisher: Delivers the batch to the client.
        """
        publisher(uri, self.analyze(source))
