"""Per-package configuration.

Chocolatey repositories usually keep one directory per package, so settings
are looked up from the manifest being checked rather than from where the
tool was started. The nearest ``.nuspec-ls.toml`` (or ``nuspec-ls.toml``) in
the manifest's directory or one of its parents applies; the search stops at
the repository root, the first directory holding ``.git``.

A configuration file looks like::

    select = ["NUS001", "NUS002"]
    ignore = ["NUS001"]

    [rules.NUS002]
    min_length = 50
"""

from __future__ import annotations

import collections.abc
import dataclasses
import logging
import pathlib
import tomllib

from nuspec_ls import rules
from nuspec_ls.rules import base

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".nuspec-ls.toml", "nuspec-ls.toml")
_KNOWN_KEYS = frozenset({"select", "ignore", "rules"})

RuleOptions = dict[str, int | str | bool]


@dataclasses.dataclass(frozen=True)
class Config:
    """Settings that apply to one manifest.

    Attributes:
        select: Rule IDs to run. ``None`` means every registered rule.
        ignore: Rule IDs never to run, even when selected.
        rule_options: Per-rule option tables keyed by rule ID.
        source: The file the settings were read from, if any.
    """

    select: frozenset[str] | None = None
    ignore: frozenset[str] = frozenset()
    rule_options: dict[str, RuleOptions] = dataclasses.field(
        default_factory=dict, hash=False
    )
    source: pathlib.Path | None = None

    def is_enabled(self, rule_id: str) -> bool:
        """Return True if *rule_id* passes both ``select`` and ``ignore``."""
        if self.select is not None and rule_id not in self.select:
            return False
        return rule_id not in self.ignore


def _search_dirs(manifest: pathlib.Path) -> collections.abc.Iterator[pathlib.Path]:
    directory = manifest if manifest.is_dir() else manifest.parent
    directory = directory.absolute()
    for candidate in [directory, *directory.parents]:
        yield candidate
        if (candidate / ".git").exists():
            return


def find_config_file(manifest: pathlib.Path) -> pathlib.Path | None:
    """Return the configuration file governing *manifest*, if there is one.

    Args:
        manifest: A manifest file, or a directory to search from.
    """
    for directory in _search_dirs(manifest):
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def _known_rule_ids() -> frozenset[str]:
    return frozenset(type(rule).__name__ for rule in rules.ALL_RULES)


def _warn_unknown_ids(source: pathlib.Path, key: str, rule_ids: set[str]) -> None:
    unknown = sorted(rule_ids - _known_rule_ids())
    if unknown:
        logger.warning(
            "%s: unknown rule IDs in `%s`: %s", source, key, ", ".join(unknown)
        )


def _rule_ids(
    table: dict[str, object], key: str, source: pathlib.Path
) -> frozenset[str] | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        msg = f"{source}: `{key}` must be a list of rule IDs, got {value!r}"
        raise ValueError(msg)  # noqa: TRY004
    rule_ids = {item.upper() for item in value}
    _warn_unknown_ids(source, key, rule_ids)
    return frozenset(rule_ids)


def _rule_options(
    table: dict[str, object], source: pathlib.Path
) -> dict[str, RuleOptions]:
    value = table.get("rules", {})
    if not isinstance(value, dict):
        msg = f"{source}: `rules` must be a table keyed by rule ID"
        raise ValueError(msg)  # noqa: TRY004
    options: dict[str, RuleOptions] = {}
    for rule_id, rule_table in value.items():
        if not isinstance(rule_table, dict):
            msg = f"{source}: `rules.{rule_id}` must be a table of options"
            raise ValueError(msg)  # noqa: TRY004
        options[rule_id.upper()] = rule_table
    _warn_unknown_ids(source, "rules", set(options))
    return options


def read_config(path: pathlib.Path) -> Config:
    """Parse the configuration file at *path*.

    Raises:
        ValueError: If the file cannot be read, is not valid TOML, or holds a
            setting of the wrong type.
    """
    try:
        with path.open("rb") as fh:
            table = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"{path}: {exc}"
        raise ValueError(msg) from exc

    for key in sorted(set(table) - _KNOWN_KEYS):
        logger.warning("%s: ignoring unknown setting `%s`", path, key)

    return Config(
        select=_rule_ids(table, "select", path),
        ignore=_rule_ids(table, "ignore", path) or frozenset(),
        rule_options=_rule_options(table, path),
        source=path,
    )


def load_config(manifest: pathlib.Path) -> Config:
    """Return the settings that apply to *manifest*.

    Args:
        manifest: The manifest being checked, or a directory to search from.

    Returns:
        The Config read from the nearest configuration file, or the defaults
        (every rule enabled, no options) when none is found.

    Raises:
        ValueError: If the configuration file found is invalid.
    """
    path = find_config_file(manifest)
    if path is None:
        return Config()
    logger.debug("Using %s for %s", path, manifest)
    return read_config(path)


def build_rules(
    config: Config, available: list[base.Rule] | None = None
) -> list[base.Rule]:
    """Return the enabled rules, with their options applied, in registry order.

    Args:
        config: Settings to apply.
        available: Rules to choose from. Defaults to every registered rule.

    Raises:
        ValueError: If a rule rejects its options.
    """
    candidates = rules.ALL_RULES if available is None else available
    active: list[base.Rule] = []
    for rule in candidates:
        rule_id = type(rule).__name__
        if not config.is_enabled(rule_id):
            continue
        options = config.rule_options.get(rule_id)
        if options and isinstance(rule, base.ConfigurableRule):
            active.append(rule.configure(options))
        else:
            active.append(rule)
    return active


def rules_for(manifest: pathlib.Path) -> list[base.Rule]:
    """Return the rules to run against *manifest*.

    Raises:
        ValueError: If the applicable configuration is invalid.
    """
    return build_rules(load_config(manifest))
