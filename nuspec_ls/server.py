"""pygls LSP server for nuspec-ls."""

from __future__ import annotations

import functools
import logging
import pathlib
import typing

from lsprotocol import types
from pygls import uris
from pygls.lsp import server as pygls_server

from nuspec_ls import analyzer as nuspec_analyzer
from nuspec_ls import config as nuspec_config
from nuspec_ls import rules
from nuspec_ls.rules import base

if typing.TYPE_CHECKING:
    from pygls import workspace

logger = logging.getLogger(__name__)

# Maps a manifest path (None for unsaved documents) to the rules to run.
RuleLoader = typing.Callable[[pathlib.Path | None], list[base.Rule]]

_SEVERITY_MAP = {
    base.Severity.ERROR: types.DiagnosticSeverity.Error,
    base.Severity.WARNING: types.DiagnosticSeverity.Warning,
    base.Severity.INFORMATION: types.DiagnosticSeverity.Information,
    base.Severity.HINT: types.DiagnosticSeverity.Hint,
}


def to_lsp(
    diag: base.Diagnostic,
    document: workspace.TextDocument,
) -> types.Diagnostic:
    """Convert a nuspec-ls Diagnostic to an LSP Diagnostic.

    Characters are counted in code points by the position index; the
    document's codec rewrites them in the encoding negotiated with the client.
    """
    code_point_range = types.Range(
        start=types.Position(
            line=diag.range.start.line, character=diag.range.start.character
        ),
        end=types.Position(line=diag.range.end.line, character=diag.range.end.character),
    )
    return types.Diagnostic(
        range=document.position_codec.range_to_client_units(
            document.lines, code_point_range
        ),
        message=diag.message,
        severity=_SEVERITY_MAP[diag.severity],
        code=diag.rule_id,
        source="nuspec-ls",
    )


def _send(
    ls: pygls_server.LanguageServer,
    document: workspace.TextDocument,
    uri: str,
    diagnostics: list[base.Diagnostic],
) -> None:
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(
            uri=uri,
            diagnostics=[to_lsp(diag, document) for diag in diagnostics],
            version=document.version,
        )
    )


def configured_rules(manifest: pathlib.Path | None) -> list[base.Rule]:
    """Return the rules configured for *manifest*, or every rule.

    Documents without a filesystem path, and documents whose configuration
    is invalid, are checked with every registered rule.
    """
    if manifest is None:
        return list(rules.ALL_RULES)
    try:
        return nuspec_config.rules_for(manifest)
    except ValueError as exc:
        logger.warning(
            "Invalid configuration for %s, running every rule: %s", manifest, exc
        )
        return list(rules.ALL_RULES)


def _manifest_path(uri: str) -> pathlib.Path | None:
    fs_path = uris.to_fs_path(uri)
    return pathlib.Path(fs_path) if fs_path else None


class NuspecLanguageServer(pygls_server.LanguageServer):
    """Language server that picks the rules to run for each document."""

    def __init__(self, rule_loader: RuleLoader = configured_rules) -> None:
        """Initialize the server.

        Args:
            rule_loader: Returns the rules for a manifest path, or for ``None``
                when the document has no filesystem path.
        """
        super().__init__("nuspec-ls", "v0.1.0")
        self.rule_loader = rule_loader


def _publish(ls: NuspecLanguageServer, uri: str) -> None:
    """Analyze a document and publish diagnostics to the client."""
    document = ls.workspace.get_text_document(uri)
    logger.debug("Publishing diagnostics for %s (version %s)", uri, document.version)
    analyzer = nuspec_analyzer.Analyzer(rules=ls.rule_loader(_manifest_path(uri)))
    analyzer.publish(uri, document.source, functools.partial(_send, ls, document))


def did_open(
    ls: NuspecLanguageServer,
    params: types.DidOpenTextDocumentParams,
) -> None:
    """Analyze a newly opened document."""
    _publish(ls, params.text_document.uri)


def did_change(
    ls: NuspecLanguageServer,
    params: types.DidChangeTextDocumentParams,
) -> None:
    """Re-analyze a document after every change."""
    _publish(ls, params.text_document.uri)


def did_save(
    ls: NuspecLanguageServer,
    params: types.DidSaveTextDocumentParams,
) -> None:
    """Re-analyze a document once it is written to disk."""
    _publish(ls, params.text_document.uri)


def did_close(
    ls: NuspecLanguageServer,
    params: types.DidCloseTextDocumentParams,
) -> None:
    """Clear diagnostics when a document is closed."""
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


_HANDLERS = {
    types.TEXT_DOCUMENT_DID_OPEN: did_open,
    types.TEXT_DOCUMENT_DID_CHANGE: did_change,
    types.TEXT_DOCUMENT_DID_SAVE: did_save,
    types.TEXT_DOCUMENT_DID_CLOSE: did_close,
}


def create_server(
    rule_loader: RuleLoader = configured_rules,
) -> NuspecLanguageServer:
    """Return a server with the document handlers registered.

    Args:
        rule_loader: Chooses the rules for each document; see
            ``NuspecLanguageServer``.
    """
    ls = NuspecLanguageServer(rule_loader)
    for method, handler in _HANDLERS.items():
        ls.feature(method)(handler)
    return ls


def start() -> None:
    """Start the LSP server over stdio."""
    logger.info(
        "Starting nuspec-ls; registered rules: %s",
        ", ".join(type(rule).__name__ for rule in rules.ALL_RULES),
    )
    create_server().start_io()
