from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence

from scripto_core.errors import ScriptNotFoundError
from scripto_core.models import MatchResult, MatchType, ResolvedScript, ScriptDefinition
from scripto_core.scopes import resolve_all

logger = logging.getLogger(__name__)

EXACT_NAME_CONFIDENCE = 1.0


def _exact_name_candidates(
    resolved: Sequence[ResolvedScript], invocation: str
) -> list[tuple[int, MatchResult]]:
    out: list[tuple[int, MatchResult]] = []
    for position, entry in enumerate(resolved):
        if entry.script.name and entry.script.name == invocation:
            out.append(
                (
                    position,
                    MatchResult(
                        type=MatchType.EXACT_NAME,
                        script=entry.script,
                        scope=entry.scope,
                        confidence=EXACT_NAME_CONFIDENCE,
                    ),
                )
            )
    return out


def rank_candidates(candidates: Sequence[tuple[int, MatchResult]]) -> list[MatchResult]:
    """
    Order candidates by confidence (highest first), then by resolution position.

    Resolution position is scope priority: `resolve_all` lists the current directory,
    then ancestors nearest first, then `global`.
    """

    ranked = sorted(candidates, key=lambda item: (-item[1].confidence, item[0]))
    return [result for _position, result in ranked]


def match(resolved: Sequence[ResolvedScript], invocation: str) -> MatchResult:
    """Find the script whose name equals `invocation` exactly. Command text is never searched."""

    ranked = rank_candidates(_exact_name_candidates(resolved, invocation))
    if not ranked:
        logger.debug("No script named %r", invocation)
        return MatchResult(type=MatchType.NO_MATCH)

    best = ranked[0]
    logger.debug("Matched %r in scope %s", invocation, best.scope)
    return best


class ScriptMatcher:
    """Matcher over one store snapshot, seen from one working directory."""

    def __init__(
        self,
        store_data: Mapping[str, Sequence[ScriptDefinition]],
        cwd: str | os.PathLike[str] | None = None,
    ) -> None:
        self._store_data = store_data
        self._cwd = cwd

    def find_all(self) -> list[ResolvedScript]:
        return resolve_all(self._store_data, self._cwd)

    def match(self, invocation: str) -> MatchResult:
        return match(self.find_all(), invocation)

    def require(self, invocation: str) -> MatchResult:
        result = self.match(invocation)
        if not result.matched:
            raise ScriptNotFoundError(invocation)
        return result
