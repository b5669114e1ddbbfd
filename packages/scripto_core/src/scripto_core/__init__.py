from scripto_core.binding import bind, parse_tokens, process_arguments, retry_tokens
from scripto_core.config import ScriptoConfig, load_config
from scripto_core.errors import (
    ConfigError,
    MissingArgumentsError,
    ScriptFileError,
    ScriptNotFoundError,
    ScriptoError,
    StoreReadError,
    StoreWriteError,
    SubstitutionWarning,
    ValidationError,
)
from scripto_core.matcher import ScriptMatcher, match
from scripto_core.models import (
    GLOBAL_SCOPE,
    BoundArgument,
    MatchResult,
    MatchType,
    PlaceholderSpec,
    ProcessResult,
    Provenance,
    ResolvedScript,
    ScriptDefinition,
)
from scripto_core.placeholders import extract_placeholders
from scripto_core.scopes import resolve_all, scope_priority
from scripto_core.store import ScriptStore, read_template
from scripto_core.substitute import substitute

__version__ = "0.3.0"

__all__ = [
    "GLOBAL_SCOPE",
    "BoundArgument",
    "ConfigError",
    "MatchResult",
    "MatchType",
    "MissingArgumentsError",
    "PlaceholderSpec",
    "ProcessResult",
    "Provenance",
    "ResolvedScript",
    "ScriptDefinition",
    "ScriptFileError",
    "ScriptMatcher",
    "ScriptNotFoundError",
    "ScriptStore",
    "ScriptoConfig",
    "ScriptoError",
    "StoreReadError",
    "StoreWriteError",
    "SubstitutionWarning",
    "ValidationError",
    "bind",
    "extract_placeholders",
    "load_config",
    "match",
    "parse_tokens",
    "process_arguments",
    "read_template",
    "resolve_all",
    "retry_tokens",
    "scope_priority",
    "substitute",
]
