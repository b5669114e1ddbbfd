from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

GLOBAL_SCOPE = "global"


@dataclass(frozen=True)
class ScriptDefinition:
    name: str = ""
    description: str = ""
    file_path: str = ""
    scope: str = ""

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.file_path:
            return Path(self.file_path).name
        return "<unnamed>"


@dataclass(frozen=True)
class ResolvedScript:
    scope: str
    script: ScriptDefinition


@dataclass(frozen=True)
class PlaceholderSpec:
    name: str
    description: str = ""
    default: str | None = None
    positional: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not None


class Provenance(str, Enum):
    EXPLICIT = "explicit"
    DEFAULT = "default"
    MISSING = "missing"


@dataclass(frozen=True)
class BoundArgument:
    spec: PlaceholderSpec
    value: str | None
    provenance: Provenance

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def is_missing(self) -> bool:
        return self.provenance is Provenance.MISSING


@dataclass(frozen=True)
class ProcessResult:
    bound: dict[str, BoundArgument]
    missing: list[PlaceholderSpec]
    final_command: str | None = None
    unexpanded: tuple[str, ...] = field(default_factory=tuple)

    @property
    def complete(self) -> bool:
        return not self.missing

    def values(self) -> dict[str, str]:
        """Resolved value per placeholder, skipping the missing ones."""
        return {
            name: arg.value
            for name, arg in self.bound.items()
            if arg.value is not None and not arg.is_missing
        }


class MatchType(str, Enum):
    NO_MATCH = "no_match"
    EXACT_NAME = "exact_name"


@dataclass(frozen=True)
class MatchResult:
    type: MatchType
    script: ScriptDefinition | None = None
    scope: str | None = None
    confidence: float = 0.0

    @property
    def matched(self) -> bool:
        return self.type is not MatchType.NO_MATCH
