from __future__ import annotations

from typing import Any


class ScriptoError(ValueError):
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigError(ScriptoError):
    pass


class StoreReadError(ScriptoError):
    pass


class StoreWriteError(ScriptoError):
    pass


class ScriptFileError(ScriptoError):
    pass


class ScriptNotFoundError(ScriptoError):
    def __init__(self, invocation: str) -> None:
        super().__init__(
            f"command not found: {invocation}",
            code="script_not_found",
            details={"invocation": invocation},
        )
        self.invocation = invocation


class ValidationError(ScriptoError):
    pass


class MissingArgumentsError(ScriptoError):
    """Raised by callers that cannot prompt for the missing placeholders."""

    def __init__(self, missing: list[Any]) -> None:
        names = [spec.name for spec in missing]
        super().__init__(
            f"missing arguments: {', '.join(names)}",
            code="missing_arguments",
            details={"names": names},
        )
        self.missing = list(missing)


class SubstitutionWarning(UserWarning):
    pass
