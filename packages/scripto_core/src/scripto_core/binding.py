from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from scripto_core.errors import MissingArgumentsError, ValidationError
from scripto_core.models import BoundArgument, PlaceholderSpec, ProcessResult, Provenance
from scripto_core.placeholders import extract_placeholders, has_positional
from scripto_core.substitute import render

logger = logging.getLogger(__name__)

NAMED_PREFIX = "--"


@dataclass(frozen=True)
class ParsedArguments:
    positional: list[str] = field(default_factory=list)
    named: dict[str, str] = field(default_factory=dict)


def parse_tokens(tokens: Sequence[str]) -> ParsedArguments:
    """
    Split invocation tokens into positional values and `--key=value` / `--key value` pairs.

    A `--key` followed by another `--` token (or by nothing) has no value and is rejected.
    Repeating a key keeps the last value.
    """

    positional: list[str] = []
    named: dict[str, str] = {}

    idx = 0
    while idx < len(tokens):
        token = tokens[idx]
        idx += 1
        if not token.startswith(NAMED_PREFIX):
            positional.append(token)
            continue

        body = token[len(NAMED_PREFIX) :]
        if "=" in body:
            key, value = body.split("=", 1)
        else:
            key = body
            if idx >= len(tokens) or tokens[idx].startswith(NAMED_PREFIX):
                raise ValidationError(
                    f"missing value for argument: --{key}",
                    code="missing_named_value",
                    details={"key": key},
                )
            value = tokens[idx]
            idx += 1

        if not key:
            raise ValidationError(
                f"invalid argument: {token}",
                code="empty_argument_name",
                details={"token": token},
            )
        named[key] = value

    return ParsedArguments(positional=positional, named=named)


def _validate(specs: Sequence[PlaceholderSpec], parsed: ParsedArguments) -> None:
    # Named arguments are refused outright for templates with positional placeholders,
    # even when the key would match a named placeholder.
    if has_positional(list(specs)) and parsed.named:
        raise ValidationError(
            "named arguments not allowed when script contains positional placeholders",
            code="named_with_positional",
            details={"named": sorted(parsed.named)},
        )

    known = {spec.name for spec in specs}
    for key in parsed.named:
        if key not in known:
            raise ValidationError(
                f"unknown argument: --{key}",
                code="unknown_argument",
                details={"key": key, "known": sorted(known)},
            )

    if len(parsed.positional) > len(specs):
        raise ValidationError(
            f"too many arguments provided: expected {len(specs)}, got {len(parsed.positional)}",
            code="too_many_arguments",
            details={"expected": len(specs), "got": len(parsed.positional)},
        )


def bind(
    specs: Sequence[PlaceholderSpec],
    tokens: Sequence[str],
    *,
    template: str | None = None,
) -> ProcessResult:
    """
    Bind invocation tokens to placeholder specs.

    Named values bind first by key, then the remaining placeholders consume positional
    tokens in declaration order, falling back to their default. Anything left is reported
    in `missing`; the final command is rendered only when `template` is given and nothing
    is missing. Binding has no side effects, so it can be re-run after prompting.
    """

    parsed = parse_tokens(tokens)
    _validate(specs, parsed)

    positional_values = iter(parsed.positional)
    bound: dict[str, BoundArgument] = {}
    missing: list[PlaceholderSpec] = []

    for spec in specs:
        if spec.name in parsed.named:
            bound[spec.name] = BoundArgument(spec, parsed.named[spec.name], Provenance.EXPLICIT)
            continue

        value = next(positional_values, None)
        if value is not None:
            bound[spec.name] = BoundArgument(spec, value, Provenance.EXPLICIT)
        elif spec.default is not None:
            bound[spec.name] = BoundArgument(spec, spec.default, Provenance.DEFAULT)
        else:
            bound[spec.name] = BoundArgument(spec, None, Provenance.MISSING)
            missing.append(spec)

    logger.debug(
        "Bound %d placeholder(s), %d missing: %s",
        len(bound),
        len(missing),
        {name: (arg.value, arg.provenance.value) for name, arg in bound.items()},
    )

    if template is None or missing:
        return ProcessResult(bound=bound, missing=missing)

    rendered = render(template, bound)
    logger.debug("Final command: %s", rendered.text)
    return ProcessResult(
        bound=bound,
        missing=missing,
        final_command=rendered.text,
        unexpanded=rendered.unexpanded,
    )


def process_arguments(template_text: str, tokens: Sequence[str]) -> ProcessResult:
    return bind(extract_placeholders(template_text), tokens, template=template_text)


def retry_tokens(
    specs: Sequence[PlaceholderSpec],
    tokens: Sequence[str],
    result: ProcessResult,
    prompted: Mapping[str, str],
) -> list[str]:
    """
    Build the token list to re-bind with after prompting for missing values.

    Positional templates get one positional token per placeholder in declaration order,
    so defaults that were applied earlier keep their slot. Named templates keep the
    original tokens and append `--name=value` for each prompted value.

    A prompted positional value starting with `--` would be read back as a named
    argument, so it is rejected with a ValidationError naming the placeholder.
    """

    if has_positional(list(specs)):
        out: list[str] = []
        for spec in specs:
            arg = result.bound.get(spec.name)
            if arg is not None and arg.provenance is Provenance.EXPLICIT and arg.value is not None:
                out.append(arg.value)
            elif spec.name in prompted:
                value = prompted[spec.name]
                if value.startswith(NAMED_PREFIX):
                    raise ValidationError(
                        f"value for positional argument {spec.name} cannot start with "
                        f"'{NAMED_PREFIX}': {value}",
                        code="positional_value_looks_named",
                        details={"name": spec.name, "value": value},
                    )
                out.append(value)
            elif spec.default is not None:
                out.append(spec.default)
            else:
                break
        return out

    extra = [
        f"{NAMED_PREFIX}{spec.name}={prompted[spec.name]}" for spec in specs if spec.name in prompted
    ]
    return [*tokens, *extra]


def require_complete(result: ProcessResult) -> str:
    if result.missing:
        raise MissingArgumentsError(result.missing)
    if result.final_command is None:
        raise ValueError("ProcessResult has no final command; bind() was called without a template.")
    return result.final_command
