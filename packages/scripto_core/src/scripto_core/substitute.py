from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass

from scripto_core.errors import SubstitutionWarning
from scripto_core.models import BoundArgument, PlaceholderSpec, Provenance
from scripto_core.placeholders import iter_occurrences

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Substitution:
    text: str
    unexpanded: tuple[str, ...]


def quote_value(value: str) -> str:
    # Embedded quotes are not escaped.
    if " " in value and not value.startswith('"'):
        return f'"{value}"'
    return value


def _resolve_value(
    bound: Mapping[str, BoundArgument | str],
    spec: PlaceholderSpec,
) -> str | None:
    entry = bound.get(spec.name)
    if isinstance(entry, BoundArgument):
        if entry.provenance is Provenance.EXPLICIT and entry.value is not None:
            return entry.value
        if entry.spec.default is not None:
            return entry.spec.default
        return None
    if isinstance(entry, str):
        return entry
    return spec.default


def render(template_text: str, bound: Mapping[str, BoundArgument | str]) -> Substitution:
    """
    Replace every placeholder token with its value (explicit, then default).

    Tokens without a value are left as-is and reported in `unexpanded`.
    """

    first_specs: dict[str, PlaceholderSpec] = {}
    pieces: list[str] = []
    unexpanded: list[str] = []
    cursor = 0

    for occurrence in iter_occurrences(template_text):
        spec = first_specs.setdefault(occurrence.key, occurrence.spec)
        pieces.append(template_text[cursor : occurrence.start])
        cursor = occurrence.end

        value = _resolve_value(bound, spec)
        if value is None:
            pieces.append(occurrence.token)
            unexpanded.append(occurrence.token)
            continue
        pieces.append(quote_value(value))

    pieces.append(template_text[cursor:])
    return Substitution(text="".join(pieces), unexpanded=tuple(unexpanded))


def substitute(template_text: str, bound: Mapping[str, BoundArgument | str]) -> str:
    result = render(template_text, bound)
    if result.unexpanded:
        leftover = ", ".join(result.unexpanded)
        logger.warning("Unexpanded placeholders after substitution: %s", leftover)
        warnings.warn(
            f"Unexpanded placeholders after substitution: {leftover}",
            SubstitutionWarning,
            stacklevel=2,
        )
    return result.text
