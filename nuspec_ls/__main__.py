"""Entry point: nuspec-ls [check <path>... | serve]."""

import logging
import pathlib
import sys
import typing

import typer

if typing.TYPE_CHECKING:
    from nuspec_ls.rules import base

app = typer.Typer()

# Directories that never hold manifests worth checking.
_SKIP_DIRS: frozenset[str] = frozenset(
    {".venv", "venv", "__pycache__", ".git", "node_modules", "build", "dist", ".tox"}
)


def _collect_manifests(root: pathlib.Path) -> list[pathlib.Path]:
    """Recursively find .nuspec files under root, skipping non-source directories."""
    return sorted(
        manifest
        for manifest in root.rglob("*.nuspec")
        if not any(part in _SKIP_DIRS for part in manifest.parts)
    )


def _resolve_files(paths: list[pathlib.Path]) -> list[pathlib.Path]:
    """Expand directories into a deduplicated list of manifest files."""
    candidates: list[pathlib.Path] = []
    for raw_path in paths:
        if raw_path.is_dir():
            candidates.extend(_collect_manifests(raw_path))
        else:
            candidates.append(raw_path)
    seen: set[pathlib.Path] = set()
    unique: list[pathlib.Path] = []
    for file_path in candidates:
        resolved = file_path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique.append(file_path)
    return unique


def _load_rules(manifest: pathlib.Path) -> list["base.Rule"]:
    """Return the rules configured for *manifest*, exiting if the config is invalid.

    Raises:
        typer.Exit: With code 2 if the configuration is rejected.
    """
    from nuspec_ls import config as nuspec_config  # noqa: PLC0415

    try:
        return nuspec_config.rules_for(manifest)
    except ValueError as exc:
        typer.echo(f"error: invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc


@app.command(no_args_is_help=True)
def check(
    paths: typing.Annotated[
        list[pathlib.Path],
        typer.Argument(help="Manifest files or directories to check."),
    ],
) -> None:
    """Check one or more .nuspec files/directories for rule violations.

    Each manifest is checked with the configuration found next to it or in
    one of its parent directories.

    Raises:
        typer.Exit: With code 1 if any violations were reported.
    """
    from nuspec_ls import analyzer as nuspec_analyzer  # noqa: PLC0415

    found_any = False

    for file_path in _resolve_files(paths):
        try:
            source = file_path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            typer.echo(f"error: {file_path}: {e}", err=True)
            continue

        analyzer = nuspec_analyzer.Analyzer(rules=_load_rules(file_path))
        diagnostics = analyzer.analyze(source)
        for diag in diagnostics:
            start = diag.range.start
            typer.echo(
                f"{file_path}:{start.line + 1}:{start.character + 1}:"
                f" {diag.rule_id} {diag.message}"
            )
        if diagnostics:
            found_any = True

    if found_any:
        raise typer.Exit(code=1)


@app.command()
def serve(
    log_level: typing.Annotated[
        str,
        typer.Option("--log-level", help="Logging level written to stderr."),
    ] = "WARNING",
) -> None:
    """Run the LSP server over stdio."""
    from nuspec_ls import server  # noqa: PLC0415

    # stdout carries the protocol stream.
    logging.basicConfig(
        level=log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server.start()


def main() -> None:
    """Dispatch to CLI check mode or LSP server mode."""
    app()


if __name__ == "__main__":
    main()
