"""Parsers for type-checker and linter output.

The type checker prints diagnostics as plain text::

    ui/elements/Button/Button.tsx(3,5): error TS2322: Type 'string' is not assignable.
      Type 'string' is not assignable to type 'number'.

A line carrying a ``(line,col):`` position marker starts a diagnostic and
the lines after it, up to the next marker or a blank line, belong to it.
The linter is run with a JSON formatter and parsed with ``json``.

Attribution to an artifact is best-effort: the file path must sit under one
of the tier folders, either as ``<tier>/<Name>/<file>`` or ``<tier>/<Name>.tsx``.
Anything that cannot be attributed is kept under ``UNATTRIBUTED`` rather
than dropped.
"""

import json
import logging
import re
from collections.abc import Callable, Iterable

from uiforge.config import STORY_MARKER, Severity, Tier
from uiforge.diagnostics.models import Diagnostic
from uiforge.exceptions import DiagnosticParseError

logger = logging.getLogger(__name__)

UNATTRIBUTED = "<unattributed>"

_TIER_ALTERNATION = "|".join(re.escape(tier.value) for tier in Tier)

# <tier>/<Name>/<anything> and <tier>/<Name>.tsx
_NESTED_ARTIFACT_RE = re.compile(rf"(?:^|[/\\])(?:{_TIER_ALTERNATION})[/\\]([^/\\(]+)[/\\][^/\\(]+$")
_FLAT_ARTIFACT_RE = re.compile(rf"(?:^|[/\\])(?:{_TIER_ALTERNATION})[/\\]([^/\\(]+)\.[jt]sx?$")
# "Button.stories" in the flat layout is the story for "Button"
_STORY_STEM_SUFFIX = STORY_MARKER.rstrip(".")

_POSITION_MARKER_RE = re.compile(r"\(\d+,\d+\):")
_POSITION_LINE_RE = re.compile(
    r"^\s*(?P<file>[^\s(][^(]*?)\((?P<line>\d+),(?P<column>\d+)\):\s*"
    r"(?:(?P<severity>error|warning)\s+(?:(?P<code>TS\d+)\s*:\s*)?)?"
    r"(?P<message>.*)$"
)

# Re-wrapped explanation lines that belong to the previous diagnostic
_CONTINUATION_PREFIXES = ("Type ", "Its ")


# =============================================================================
# Path Helpers
# =============================================================================


def normalize_path(path: str) -> str:
    normalized = path.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/")


def artifact_name_for_path(path: str) -> str | None:
    """Return the artifact name a file path belongs to, or None.

    A flat story file belongs to the artifact it sits beside.

    >>> artifact_name_for_path("ui/elements/Button/Button.tsx")
    'Button'
    >>> artifact_name_for_path("ui/icons/Star.tsx")
    'Star'
    >>> artifact_name_for_path("ui/elements/Button.stories.tsx")
    'Button'
    """
    path = path.strip()
    match = _NESTED_ARTIFACT_RE.search(path)
    if match:
        return match.group(1)
    match = _FLAT_ARTIFACT_RE.search(path)
    if match:
        return match.group(1).removesuffix(_STORY_STEM_SUFFIX)
    return None


def _leading_file(line: str) -> str | None:
    match = _POSITION_LINE_RE.match(line)
    return match.group("file").strip() if match else None


def _is_position_line(line: str) -> bool:
    return bool(_POSITION_MARKER_RE.search(line))


# =============================================================================
# Type Checker Output
# =============================================================================


def parse_type_errors(raw_output: str) -> dict[str, list[str]]:
    """Group type-checker output lines by artifact name.

    Each group holds the diagnostic line plus its continuation lines.
    Diagnostics whose path matches no tier folder are grouped under
    ``UNATTRIBUTED``.
    """
    groups: dict[str, list[str]] = {}
    current: str | None = None
    last_artifact: str | None = None

    for raw_line in raw_output.splitlines():
        line = raw_line.strip()
        if not line:
            current = None
            continue

        if _is_position_line(line):
            file_path = _leading_file(line)
            name = artifact_name_for_path(file_path) if file_path else None
            current = name or UNATTRIBUTED
            groups.setdefault(current, []).append(line)
            if name:
                last_artifact = name
            continue

        if current is not None:
            groups[current].append(line)
        elif line.startswith(_CONTINUATION_PREFIXES) and last_artifact is not None:
            groups[last_artifact].append(line)

    return groups


def parse_type_diagnostics(raw_output: str) -> list[Diagnostic]:
    """Parse type-checker output into structured diagnostics."""
    diagnostics: list[Diagnostic] = []
    current: Diagnostic | None = None

    for raw_line in raw_output.splitlines():
        line = raw_line.strip()
        if not line:
            current = None
            continue

        match = _POSITION_LINE_RE.match(line)
        if match:
            current = Diagnostic(
                file=match.group("file").strip(),
                line=int(match.group("line")),
                column=int(match.group("column")),
                message=match.group("message").strip(),
                severity=Severity(match.group("severity") or Severity.ERROR),
                code=match.group("code"),
            )
            diagnostics.append(current)
        elif current is not None:
            current.continuation.append(line)
        elif line.startswith(_CONTINUATION_PREFIXES) and diagnostics:
            diagnostics[-1].continuation.append(line)

    return diagnostics


def _collect(raw_output: str, select: Callable[[str], bool]) -> list[str]:
    """Keep selected diagnostic lines together with their continuations."""
    kept: list[str] = []
    keeping = False
    for raw_line in raw_output.splitlines():
        line = raw_line.rstrip()
        if not line.strip():
            keeping = False
            continue
        if _is_position_line(line):
            keeping = select(line)
            if keeping:
                kept.append(line)
        elif keeping:
            kept.append(line)
    return kept


def filter_by_path(raw_output: str, path_prefix: str) -> list[str]:
    """Keep diagnostics whose file equals or lives under ``path_prefix``.

    An empty result means the target has no diagnostics, which callers treat
    as a pass. A prefix of ``""`` or ``"."`` is the project root: every
    diagnostic with a path inside it is kept.
    """
    prefix = normalize_path(path_prefix)
    whole_tree = prefix in ("", ".")

    def _under_prefix(line: str) -> bool:
        file_path = _leading_file(line)
        if file_path is None:
            return False
        normalized = normalize_path(file_path)
        if whole_tree:
            return not normalized.startswith(("/", "../"))
        return normalized == prefix or normalized.startswith(prefix + "/")

    return _collect(raw_output, _under_prefix)


def extract_file_errors(raw_output: str, file_path: str) -> list[str]:
    """Return diagnostics (with continuations) mentioning ``file_path``."""
    needle = normalize_path(file_path)
    return _collect(raw_output, lambda line: needle in line.replace("\\", "/"))


# =============================================================================
# Linter Output
# =============================================================================


def parse_lint_json(raw_json: str) -> list[Diagnostic]:
    """Flatten an ESLint JSON report into diagnostics.

    Severity 2 is an error, 1 a warning; anything else is skipped.

    Raises:
        DiagnosticParseError: If the output is not a JSON list of file reports.
    """
    try:
        report = json.loads(raw_json)
    except json.JSONDecodeError as e:
        raise DiagnosticParseError(f"Lint output is not valid JSON: {e}", raw_json) from e

    if not isinstance(report, list):
        raise DiagnosticParseError(
            f"Lint report must be a list, got {type(report).__name__}", raw_json
        )

    diagnostics: list[Diagnostic] = []
    for entry in report:
        if not isinstance(entry, dict):
            raise DiagnosticParseError("Lint report entry is not an object", raw_json)
        file_path = entry.get("filePath", "")
        for message in entry.get("messages") or []:
            severity = message.get("severity")
            if severity == 2:
                level = Severity.ERROR
            elif severity == 1:
                level = Severity.WARNING
            else:
                continue
            diagnostics.append(
                Diagnostic(
                    file=file_path,
                    line=message.get("line") or 0,
                    column=message.get("column") or 0,
                    message=message.get("message", ""),
                    rule=message.get("ruleId"),
                    severity=level,
                )
            )

    return diagnostics


def group_by_artifact(
    diagnostics: Iterable[Diagnostic],
) -> tuple[dict[str, list[Diagnostic]], list[Diagnostic]]:
    """Split diagnostics into per-artifact groups and an unattributed list."""
    grouped: dict[str, list[Diagnostic]] = {}
    unattributed: list[Diagnostic] = []
    for diagnostic in diagnostics:
        name = artifact_name_for_path(diagnostic.file)
        if name is None:
            unattributed.append(diagnostic)
        else:
            grouped.setdefault(name, []).append(diagnostic)
    return grouped, unattributed


def format_diagnostics(diagnostics: Iterable[Diagnostic]) -> str:
    """Render diagnostics one per line for fix prompts and summaries."""
    lines = []
    for d in diagnostics:
        text = f"Line {d.line}:{d.column} [{d.severity.upper()}] "
        if d.code:
            text += f"{d.code}: "
        text += d.message
        if d.rule:
            text += f" ({d.rule})"
        lines.append(text)
        lines.extend(f"    {extra}" for extra in d.continuation)
    return "\n".join(lines)
