"""Placeholder resolution and substitution.

Templates reference parameters as `{name}` where `name` matches
`[A-Za-z0-9_]+`. Substitution is a single pass: a substituted value is never
re-scanned, and tokens naming unknown (or `None`) parameters are left exactly
as written.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

ParamMap = dict[str, str | None]

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z0-9_]+)\}")

OUTDIR_PARAM = "outdir"
OUTDIR_ROOT = "./out"
OUTDIR_FALLBACK = "target"
OUTDIR_FILLER = "_"

# Anything outside this set is replaced by OUTDIR_FILLER in derived directory names.
# "." is deliberately not in it: example.com derives ./out/example_com.
_OUTDIR_UNSAFE = re.compile(r"[^A-Za-z0-9-]")


def substitute(text: str, params: Mapping[str, object]) -> str:
    """Replace `{name}` tokens in `text` with values from `params`."""

    def _replace(match: re.Match[str]) -> str:
        value = params.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def substitute_all(templates: Iterable[object] | None, params: Mapping[str, object]) -> list[str]:
    """Substitute every template, keeping count and order."""

    if templates is None:
        return []
    return [substitute(str(t), params) for t in templates]


def derive_outdir(value: str | None) -> str:
    """Derive a filesystem-safe output directory from a parameter value."""

    sanitized = _OUTDIR_UNSAFE.sub(OUTDIR_FILLER, value or "")
    return f"{OUTDIR_ROOT}/{sanitized or OUTDIR_FALLBACK}"


def resolve(
    base: Mapping[str, str | None],
    overrides: Mapping[str, str | None] | None = None,
    *,
    derive_from: str = "domain",
) -> ParamMap:
    """Merge overrides over base parameters and compute derived parameters.

    Blank overrides (empty or whitespace-only) do not replace the base value,
    which gives "leave blank to use the default" semantics.

    Args:
        base: Catalogue-level defaults.
        overrides: User-supplied values.
        derive_from: Parameter the output directory is derived from.

    Returns:
        A new parameter map; neither input is modified.
    """

    params: ParamMap = dict(base)
    for name, value in (overrides or {}).items():
        if value is None:
            continue
        text = str(value).strip()
        if text:
            params[name] = text

    params[OUTDIR_PARAM] = derive_outdir(params.get(derive_from))
    return params
