"""All nuspec-ls rules."""

from nuspec_ls.rules import base, description, templates

ALL_RULES: list[base.Rule] = [
    templates.NUS001(),
    description.NUS002(),
]

__all__ = ["ALL_RULES"]
