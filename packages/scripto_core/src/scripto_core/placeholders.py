from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from scripto_core.models import PlaceholderSpec

# %%                          bare positional
# %name%                      named, no description/default
# %name:description:default%  any field may be empty; `\:` escapes a colon
_PLACEHOLDER_RE = re.compile(
    r"%%"
    r"|%(?P<name>[^:%]*)"
    r"(?::(?P<description>(?:\\:|[^:%])*))?"
    r"(?::(?P<default>(?:\\:|[^%])*))?"
    r"%"
)

POSITIONAL_PREFIX = "arg"


@dataclass(frozen=True)
class PlaceholderOccurrence:
    """One literal placeholder token in a template."""

    start: int
    end: int
    token: str
    spec: PlaceholderSpec

    @property
    def key(self) -> str:
        return self.spec.name


def _unescape(value: str | None) -> str:
    if not value:
        return ""
    return value.replace("\\:", ":")


def iter_occurrences(template_text: str) -> Iterator[PlaceholderOccurrence]:
    """
    Yield every placeholder token in template order.

    Positional tokens (bare `%%` or an empty name) get the synthetic key `arg<N>`,
    where N counts positional tokens seen so far. Unbalanced `%` sequences are left
    alone rather than rejected.
    """

    positional_counter = 0
    for match in _PLACEHOLDER_RE.finditer(template_text):
        token = match.group(0)
        raw_name = match.group("name") if token != "%%" else ""
        if raw_name:
            spec = PlaceholderSpec(
                name=raw_name,
                description=_unescape(match.group("description")),
                default=_unescape(match.group("default")) or None,
                positional=False,
            )
        else:
            positional_counter += 1
            spec = PlaceholderSpec(
                name=f"{POSITIONAL_PREFIX}{positional_counter}",
                description=_unescape(match.group("description")),
                default=_unescape(match.group("default")) or None,
                positional=True,
            )
        yield PlaceholderOccurrence(
            start=match.start(),
            end=match.end(),
            token=token,
            spec=spec,
        )


def extract_placeholders(template_text: str) -> list[PlaceholderSpec]:
    """Return the template's placeholders in first-occurrence order, one per name."""

    specs: dict[str, PlaceholderSpec] = {}
    for occurrence in iter_occurrences(template_text):
        specs.setdefault(occurrence.key, occurrence.spec)
    return list(specs.values())


def has_positional(specs: list[PlaceholderSpec]) -> bool:
    return any(spec.positional for spec in specs)


def find_placeholder_tokens(text: str) -> list[str]:
    return [occurrence.token for occurrence in iter_occurrences(text)]
