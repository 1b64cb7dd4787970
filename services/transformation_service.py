"""
Transformation of raw path values into displayed values.

Regex rules come from tenant configuration and are treated as untrusted
input: each rule is compiled once and cached, and a rule that fails to
compile renders as REGEX_ERROR instead of raising into the renderer.
"""

from functools import lru_cache
from typing import Any, Optional
import re
import structlog

from models.field_definition import FieldDefinition, OutputFormat, TransformationKind

logger = structlog.get_logger(__name__)

NO_MATCH = "No match found"
REGEX_ERROR = "Regex error"

_DATE_DMY = re.compile(r"(\d{2})/(\d{2})/(\d{4})")
_TIME_HM = re.compile(r"\d{2}:\d{2}")


class _InvalidRule:
    """Cached marker for a rule that does not compile."""

    def __init__(self, error: str):
        self.error = error


@lru_cache(maxsize=256)
def compile_rule(rule: str):
    """
    Compile a transformation rule, caching the outcome per rule string.

    Returns:
        Compiled pattern, or an _InvalidRule marker
    """
    try:
        return re.compile(rule)
    except re.error as e:
        logger.warning("transformation_rule_invalid", rule=rule, error=str(e))
        return _InvalidRule(str(e))


def apply_transformation(
    value: Any,
    kind: TransformationKind,
    rule: Optional[str] = None,
    output_format: OutputFormat = OutputFormat.NONE,
) -> Any:
    """
    Turn a raw value into its rendered form.

    Args:
        value: Raw value from the path resolver
        kind: Transformation kind
        rule: Regex source (extract only)
        output_format: Formatting applied to the first match

    Returns:
        Rendered value, NO_MATCH, REGEX_ERROR, or None
    """
    if kind != TransformationKind.EXTRACT:
        # none passes through; transform is reserved for future rule types
        return value

    if not rule:
        return value

    pattern = compile_rule(rule)
    if isinstance(pattern, _InvalidRule):
        return REGEX_ERROR

    return _extract(value, pattern, output_format)


def apply_field_transformation(value: Any, field: FieldDefinition) -> Any:
    """apply_transformation with the settings of one field definition."""
    return apply_transformation(
        value,
        field.transformation_kind,
        field.transformation_rule,
        field.output_format,
    )


def format_output(match: str, output_format: OutputFormat) -> str:
    """
    Apply an output format to an extracted match.

    date: dd/mm/yyyy -> yyyy-mm-dd (non-conforming input unchanged)
    time: narrow to the first hh:mm substring, if any
    timeslot: unchanged
    """
    if output_format == OutputFormat.DATE:
        found = _DATE_DMY.search(match)
        if found:
            day, month, year = found.groups()
            return f"{year}-{month}-{day}"
        return match

    if output_format == OutputFormat.TIME:
        found = _TIME_HM.search(match)
        return found.group(0) if found else match

    return match


def _extract(value: Any, pattern: re.Pattern, output_format: OutputFormat) -> Any:
    if value is None:
        return None

    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and pattern.search(item):
                return format_output(item, output_format)
        return None

    text = value if isinstance(value, str) else str(value)
    matches = [m.group(0) for m in pattern.finditer(text)]
    if not matches:
        return NO_MATCH

    return format_output(matches[0], output_format)
