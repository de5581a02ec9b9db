"""Static-analysis diagnostics: parsing tool output and running the tools."""

from uiforge.diagnostics.models import (
    Diagnostic,
    QualityResult,
    ValidationOutcome,
    ValidationResult,
)
from uiforge.diagnostics.parser import (
    UNATTRIBUTED,
    artifact_name_for_path,
    extract_file_errors,
    filter_by_path,
    format_diagnostics,
    group_by_artifact,
    parse_lint_json,
    parse_type_diagnostics,
    parse_type_errors,
)
from uiforge.diagnostics.runner import (
    SubprocessToolRunner,
    ToolRun,
    ToolRunner,
    combine_results,
    run_lint,
    run_type_check,
)

__all__ = [
    "Diagnostic",
    "QualityResult",
    "SubprocessToolRunner",
    "ToolRun",
    "ToolRunner",
    "UNATTRIBUTED",
    "ValidationOutcome",
    "ValidationResult",
    "artifact_name_for_path",
    "combine_results",
    "extract_file_errors",
    "filter_by_path",
    "format_diagnostics",
    "group_by_artifact",
    "parse_lint_json",
    "parse_type_diagnostics",
    "parse_type_errors",
    "run_lint",
    "run_type_check",
]
